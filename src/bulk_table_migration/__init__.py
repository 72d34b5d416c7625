"""Migration job metadata store for bulk table migration."""

__version__ = "0.1.0"

__all__ = ["__version__"]
