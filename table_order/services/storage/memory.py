"""
In-Memory Store Implementations

Process-local stores used when STORAGE_BACKEND=memory, and by the unit
tests. Rows are kept in the same encoded shape the SQL tables use, so the
catalog assembler sees identical data from both backends.

Every method completes without awaiting, so no other coroutine can observe
a half-applied write.
"""

import copy
import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from table_order.core.errors import DuplicateId, NotFound
from table_order.models import OrderStatus
from table_order.schemas import MenuItemCreate, OrderLineItem, OrderRead
from table_order.services.storage.base import (
    BaseCatalogStore,
    BaseOrderStore,
    encode_items,
    encode_menu_changes,
    encode_menu_row,
    decode_items,
)

logger = logging.getLogger(__name__)


class MemoryCatalogStore(BaseCatalogStore):
    """Menu rows in an insertion-ordered dict."""

    def __init__(self):
        self._rows: dict[str, dict[str, Any]] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    async def create(self, item: MenuItemCreate) -> str:
        if item.id in self._rows:
            raise DuplicateId(f"Menu item '{item.id}' already exists")
        self._rows[item.id] = encode_menu_row(item)
        return item.id

    async def update(self, item_id: str, changes: dict[str, Any]) -> str:
        row = self._rows.get(item_id)
        if row is None:
            raise NotFound(f"Menu item '{item_id}' not found")
        row.update(encode_menu_changes(changes))
        return item_id

    async def delete(self, item_id: str) -> str:
        if self._rows.pop(item_id, None) is None:
            raise NotFound(f"Menu item '{item_id}' not found")
        return item_id

    async def list_all(self) -> list[dict[str, Any]]:
        return [dict(row) for row in self._rows.values()]

    async def count(self) -> int:
        return len(self._rows)


class MemoryOrderStore(BaseOrderStore):
    """Orders in a list, ids from a counter starting at 1."""

    def __init__(self):
        self._rows: list[dict[str, Any]] = []
        self._ids = itertools.count(1)

    @property
    def backend_name(self) -> str:
        return "memory"

    @staticmethod
    def _to_read(row: dict[str, Any]) -> OrderRead:
        return OrderRead(
            id=row["id"],
            table_number=row["table_number"],
            items=decode_items(row["items"]),
            total_price=row["total_price"],
            status=row["status"],
            timestamp=row["timestamp"],
        )

    def _find(self, order_id: int) -> Optional[dict[str, Any]]:
        return next((row for row in self._rows if row["id"] == order_id), None)

    async def insert(
        self,
        table_number: int,
        items: list[OrderLineItem],
        total_price: float,
        status: OrderStatus,
    ) -> OrderRead:
        row = {
            "id": next(self._ids),
            "table_number": table_number,
            "items": encode_items(items),
            "total_price": total_price,
            "status": status,
            "timestamp": datetime.now(timezone.utc),
        }
        self._rows.append(row)
        logger.debug(f"Stored order #{row['id']} in memory")
        return self._to_read(copy.copy(row))

    async def update_status(self, order_id: int, status: OrderStatus) -> None:
        row = self._find(order_id)
        if row is None:
            raise NotFound(f"Order #{order_id} not found")
        row["status"] = status

    async def get(self, order_id: int) -> Optional[OrderRead]:
        row = self._find(order_id)
        return self._to_read(row) if row is not None else None

    async def list_for_table(
        self,
        table_number: int,
        exclude_status: OrderStatus,
    ) -> list[OrderRead]:
        rows = [
            row for row in self._rows
            if row["table_number"] == table_number and row["status"] != exclude_status
        ]
        rows.sort(key=lambda r: (r["timestamp"], r["id"]), reverse=True)
        return [self._to_read(row) for row in rows]

    async def list_by_statuses(self, statuses: Iterable[OrderStatus]) -> list[OrderRead]:
        wanted = set(statuses)
        rows = [row for row in self._rows if row["status"] in wanted]
        rows.sort(key=lambda r: (r["timestamp"], r["id"]))
        return [self._to_read(row) for row in rows]

    async def distinct_tables(self, exclude_status: OrderStatus) -> list[int]:
        return sorted({
            row["table_number"] for row in self._rows
            if row["status"] != exclude_status
        })
