"""Remote data source interface"""
from typing import Any, Optional, Protocol

Row = dict[str, Any]


class RemoteDataSource(Protocol):
    """
    Authenticated CRUD + filter queries over the backend tables.

    The backend enforces per-user row isolation; user_id filters are sent
    anyway so queries stay explicit. Failures raise BackendError subclasses.
    """

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
        ...

    async def insert(self, table: str, row: Row) -> Row:
        ...

    async def update(self, table: str, id: str, patch: Row) -> Row:
        ...

    async def update_where(self, table: str, column: str, value: Any, patch: Row) -> list[Row]:
        ...

    async def delete(self, table: str, id: str) -> None:
        ...
