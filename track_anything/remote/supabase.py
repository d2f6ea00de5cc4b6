"""
Supabase (PostgREST) remote data source

Talks to the project's REST endpoint with httpx. Every request is
authenticated with the project key and the signed-in user's access token.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Optional

import httpx

from track_anything.config import REQUEST_TIMEOUT_SECONDS, SUPABASE_ANON_KEY, SUPABASE_URL
from track_anything.exceptions import RecordNotFoundError, wrap_external_exception
from track_anything.monitoring import track_remote_request
from track_anything.remote.base import Row

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def format_filter_value(value: Any) -> str:
    """Render a Python value as a PostgREST filter operand"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if value is None:
        return "null"
    return str(value)


def _jsonable(row: Row) -> Row:
    return {
        key: value.isoformat() if isinstance(value, (datetime, date)) else value
        for key, value in row.items()
    }


class SupabaseDataSource:
    """PostgREST client for the events, logs and notes tables"""

    def __init__(
        self,
        url: str = SUPABASE_URL,
        anon_key: str = SUPABASE_ANON_KEY,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            url: Supabase project URL (https://<ref>.supabase.co)
            anon_key: Project anon/public key
            token_provider: Returns the current access token, or None
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.anon_key = anon_key
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self.rest_url,
            timeout=timeout,
            transport=transport,
        )

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        operation: str,
        params: Optional[list[tuple[str, str]]] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        with track_remote_request(table, operation):
            try:
                response = await self._client.request(
                    method,
                    f"/{table}",
                    params=params,
                    json=json_body,
                    headers=self._headers(prefer),
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise wrap_external_exception(e, operation=operation, table=table) from e

            logger.debug(f"{method} {table} ({operation}) -> {response.status_code}")
            if not response.content:
                return None
            return response.json()

    async def select(
        self,
        table: str,
        *,
        user_id: Optional[str] = None,
        eq: Optional[dict[str, Any]] = None,
        gte: Optional[dict[str, Any]] = None,
        lte: Optional[dict[str, Any]] = None,
        order_by: str = "created_at",
        ascending: bool = False,
    ) -> list[Row]:
        """
        Select rows with equality and range filters.

        Returns:
            Rows ordered by order_by
        """
        params: list[tuple[str, str]] = [("select", "*")]
        if user_id is not None:
            params.append(("user_id", f"eq.{user_id}"))
        for column, value in (eq or {}).items():
            params.append((column, f"eq.{format_filter_value(value)}"))
        for column, value in (gte or {}).items():
            params.append((column, f"gte.{format_filter_value(value)}"))
        for column, value in (lte or {}).items():
            params.append((column, f"lte.{format_filter_value(value)}"))
        params.append(("order", f"{order_by}.{'asc' if ascending else 'desc'}"))

        rows = await self._request("GET", table, "select", params=params)
        return rows or []

    async def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return it as stored (server-assigned id/timestamps)"""
        result = await self._request(
            "POST", table, "insert",
            json_body=_jsonable(row),
            prefer="return=representation",
        )
        if isinstance(result, list):
            result = result[0] if result else None
        if not result:
            raise RecordNotFoundError(
                f"Insert into {table} returned no row",
                table=table,
                operation="insert",
            )
        return result

    async def update(self, table: str, id: str, patch: Row) -> Row:
        """
        Update one row by id.

        Raises:
            RecordNotFoundError: no row with that id is visible to the user
        """
        rows = await self._request(
            "PATCH", table, "update",
            params=[("id", f"eq.{id}")],
            json_body=_jsonable(patch),
            prefer="return=representation",
        )
        if not rows:
            raise RecordNotFoundError(
                f"No {table} row with id {id}",
                record_id=id,
                table=table,
                operation="update",
            )
        return rows[0]

    async def update_where(self, table: str, column: str, value: Any, patch: Row) -> list[Row]:
        """Update every row where column equals value"""
        rows = await self._request(
            "PATCH", table, "update_where",
            params=[(column, f"eq.{format_filter_value(value)}")],
            json_body=_jsonable(patch),
            prefer="return=representation",
        )
        return rows or []

    async def delete(self, table: str, id: str) -> None:
        await self._request("DELETE", table, "delete", params=[("id", f"eq.{id}")])

    async def aclose(self) -> None:
        """Close the underlying HTTP client"""
        await self._client.aclose()
