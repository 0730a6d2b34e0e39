"""
Backend interface shared by the remote and in-memory implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..models import QueryPage, SecondaryIndex, TableDefinition


class StoreBackend(ABC):
    """
    Item and control-plane operations against one store.

    Callers receive one instance at startup and never look at which
    implementation they hold.
    """

    # ---------- Items ----------
    @abstractmethod
    async def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> None: ...

    @abstractmethod
    async def get_item(
        self, table: str, key: dict[str, Any], consistent_read: bool = False
    ) -> dict[str, Any] | None: ...

    @abstractmethod
    async def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        values: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
    ) -> dict[str, Any] | None: ...

    @abstractmethod
    async def delete_item(self, table: str, key: dict[str, Any]) -> None: ...

    @abstractmethod
    async def query(
        self,
        table: str,
        key_condition: str,
        values: dict[str, Any],
        index_name: str | None = None,
        filter_expression: str | None = None,
        names: dict[str, str] | None = None,
        cursor: dict[str, Any] | None = None,
        scan_forward: bool | None = None,
        limit: int | None = None,
    ) -> QueryPage: ...

    async def set_attribute(
        self,
        table: str,
        key: dict[str, Any],
        attribute: str,
        value: Any,
        condition: str | None = None,
    ) -> dict[str, Any] | None:
        """Set one attribute on an item (SET #attr = :value)."""
        return await self.update_item(
            table,
            key,
            "SET #attr = :value",
            {":value": value},
            condition=condition,
            names={"#attr": attribute},
        )

    async def query_all(
        self,
        table: str,
        key_condition: str,
        values: dict[str, Any],
        index_name: str | None = None,
        filter_expression: str | None = None,
        names: dict[str, str] | None = None,
        scan_forward: bool | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Follow the cursor until every matching item is collected.

        Args:
            limit: Page size for each underlying Query call and overall cap
        """
        items: list[dict[str, Any]] = []
        cursor: dict[str, Any] | None = None
        while True:
            page = await self.query(
                table,
                key_condition,
                values,
                index_name=index_name,
                filter_expression=filter_expression,
                names=names,
                cursor=cursor,
                scan_forward=scan_forward,
                limit=limit,
            )
            items.extend(page.items)
            cursor = page.cursor
            if not cursor or (limit and len(items) >= limit):
                break
        if limit:
            return items[:limit]
        return items

    # ---------- Control plane ----------
    @abstractmethod
    async def describe_table(self, table: str) -> dict[str, Any] | None:
        """Return the table description, or None if the table does not exist."""

    @abstractmethod
    async def create_table(self, definition: TableDefinition) -> None: ...

    @abstractmethod
    async def add_index(self, definition: TableDefinition, index: SecondaryIndex) -> None: ...

    @abstractmethod
    async def describe_time_to_live(self, table: str) -> dict[str, Any] | None:
        """Return the TimeToLiveDescription, or None if the table does not exist."""

    @abstractmethod
    async def update_time_to_live(self, table: str, attribute: str) -> None: ...

    async def aclose(self) -> None:
        """Release transport resources."""

    async def __aenter__(self) -> "StoreBackend":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
