"""
Remote storage backend for a hosted PostgREST service.

Talks to the service's REST endpoint (``{url}/rest/v1/{table}``) with
httpx. Filters are sent in PostgREST syntax (``column=op.value``) and
writes ask for the affected rows back so callers get ids and counts.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional, Sequence

import httpx

from .base import Filter, QueryError, StorageBackend, StorageConnectionError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
REST_PATH = "/rest/v1"


def _format_scalar(value: Any) -> str:
    """Render a value the way PostgREST expects it in a query string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _format_in_list(values: Sequence[Any]) -> str:
    """Render an 'in' list, quoting items so commas inside values survive."""
    items = []
    for value in values:
        text = _format_scalar(value).replace('"', '\\"')
        items.append(f'"{text}"')
    return f"({','.join(items)})"


def filter_to_param(flt: Filter) -> tuple[str, str]:
    """Convert a Filter to a (column, 'op.value') query parameter."""
    if flt.op == "in":
        return flt.column, f"in.{_format_in_list(flt.value)}"
    if flt.op == "eq" and flt.value is None:
        return flt.column, "is.null"
    return flt.column, f"{flt.op}.{_format_scalar(flt.value)}"


def _to_json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class RemoteBackend(StorageBackend):
    """
    Storage backend backed by a hosted PostgREST API.

    Table creation is managed on the service side, so initialize() has
    nothing to create.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize remote backend.

        Args:
            url: Service base URL (e.g., https://project.example.co)
            api_key: API key sent as ``apikey`` and bearer token
            timeout: Request timeout in seconds
            client: Pre-built httpx client (optional, used in tests). It is
                used as is; the service URL and auth headers are sent with
                each request, and the caller stays responsible for closing it.
        """
        if not url:
            raise StorageConnectionError("Remote backend requires a service URL")

        self.url = url.rstrip("/")
        self._base_url = self.url + REST_PATH
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        if client is not None:
            self._client = client
            self._owns_client = False
        else:
            self._client = httpx.Client(timeout=timeout)
            self._owns_client = True

    @property
    def backend_type(self) -> str:
        """Return backend type identifier."""
        return "remote"

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[list[tuple[str, str]]] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request and translate transport and HTTP errors."""
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = self._client.request(
                method,
                f"{self._base_url}/{table}",
                params=params,
                json=json_body,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise StorageConnectionError(
                f"Request to {self.url} failed: {e}"
            ) from e

        if response.status_code >= 400:
            raise QueryError(
                f"{method} {table} failed with HTTP {response.status_code}: "
                f"{response.text[:500]}"
            )
        return response

    def initialize(self) -> None:
        """Remote tables are managed by the service; nothing to create."""
        logger.info(f"Using remote storage at {self.url}")

    def close(self) -> None:
        """Close the HTTP client if this backend created it."""
        if self._owns_client:
            self._client.close()
            logger.debug("Remote client closed")

    def select(
        self,
        table: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Read rows with PostgREST filters."""
        params = [("select", "*")]
        params.extend(filter_to_param(flt) for flt in filters or [])
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(int(limit))))

        response = self._request("GET", table, params=params)
        return response.json()

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """Insert rows and return them as stored by the service."""
        if not rows:
            return []

        body = [{k: _to_json_value(v) for k, v in row.items()} for row in rows]
        response = self._request(
            "POST", table, json_body=body, prefer="return=representation"
        )
        inserted = response.json()
        logger.debug(f"Inserted {len(inserted)} rows into {table}")
        return inserted

    def update(self, table: str, row_id: str, values: dict) -> int:
        """Update a row by id. Returns number of affected rows."""
        body = {k: _to_json_value(v) for k, v in values.items() if k != "id"}
        if not body:
            return 0

        response = self._request(
            "PATCH",
            table,
            params=[("id", f"eq.{row_id}")],
            json_body=body,
            prefer="return=representation",
        )
        return len(response.json())

    def delete(self, table: str, row_id: str) -> int:
        """Delete a row by id. Returns number of affected rows."""
        response = self._request(
            "DELETE",
            table,
            params=[("id", f"eq.{row_id}")],
            prefer="return=representation",
        )
        return len(response.json())

    def table_exists(self, table_name: str) -> bool:
        """Check if the service exposes a table."""
        try:
            self._request("GET", table_name, params=[("select", "*"), ("limit", "0")])
            return True
        except QueryError:
            return False

    def health_check(self) -> dict:
        """Health check with the remote URL attached."""
        base_check = super().health_check()
        base_check["details"]["url"] = self.url
        return base_check
