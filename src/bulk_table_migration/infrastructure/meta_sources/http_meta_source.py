"""HTTP client for a source catalog service."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from bulk_table_migration.domain.catalog_models import TableMetaModel
from bulk_table_migration.domain.errors import MetaSourceError, TableNotFoundError
from bulk_table_migration.domain.ports import MetaSource


class HttpMetaSource(MetaSource):
    """Wrapper around catalog endpoints `/namespaces/{ns}/tables[/{table}]`."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = self._normalize_base_url(base_url)
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def list_tables(self, namespace: str) -> list[str]:
        """Call `GET /namespaces/{namespace}/tables`."""

        response = self._get(f"/namespaces/{quote(namespace, safe='')}/tables")
        self._ensure_success(response)
        payload = self._json(response)
        tables = payload.get("tables") if isinstance(payload, dict) else payload
        if not isinstance(tables, list) or not all(isinstance(name, str) for name in tables):
            raise MetaSourceError(f"Unexpected table list payload from {response.request.url}.")
        return tables

    def has_table(self, namespace: str, table: str) -> bool:
        try:
            self.get_table_meta(namespace, table)
        except TableNotFoundError:
            return False
        return True

    def get_table_meta(self, namespace: str, table: str) -> TableMetaModel:
        """Call `GET /namespaces/{namespace}/tables/{table}`."""

        response = self._get(
            f"/namespaces/{quote(namespace, safe='')}/tables/{quote(table, safe='')}"
        )
        if response.status_code == 404:
            raise TableNotFoundError(f"Table '{namespace}.{table}' does not exist.")
        self._ensure_success(response)
        try:
            return TableMetaModel.model_validate(self._json(response))
        except ValidationError as exc:
            raise MetaSourceError(
                f"Unexpected table metadata payload for '{namespace}.{table}': {exc}"
            ) from exc

    def _get(self, path: str) -> httpx.Response:
        url = self._endpoint(path)
        try:
            with httpx.Client(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as http_client:
                return http_client.get(url)
        except httpx.HTTPError as exc:
            raise MetaSourceError(f"GET {url} failed: {exc}") from exc

    def _endpoint(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _ensure_success(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        message = self._detail_from_response(response)
        raise MetaSourceError(
            f"{response.request.method} {response.request.url} failed: "
            f"{response.status_code} {message}"
        )

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MetaSourceError(
                f"{response.request.method} {response.request.url} returned invalid JSON."
            ) from exc

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            detail = payload.get("detail")
            if isinstance(detail, str):
                return detail
        return str(payload)

    def _normalize_base_url(self, base_url: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise MetaSourceError("Meta source endpoint cannot be empty.")
        return normalized


__all__ = ["HttpMetaSource"]
