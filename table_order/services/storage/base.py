"""
Storage Abstract Base Classes

Defines the persistence contracts used by the ordering engine. Both the
SQL stores and the in-memory stores implement these, so catalog and order
logic never depends on which backend is active.

Row formats:
    Catalog rows are plain dicts in their stored shape: ``options`` is a
    JSON string and ``is_recommended`` a 0/1 integer. Decoding them is the
    catalog assembler's job.

    Orders come back as ``OrderRead`` models with their items decoded.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from table_order.models import OrderStatus
from table_order.schemas import MenuItemCreate, OrderLineItem, OrderRead

MENU_COLUMNS = (
    "id",
    "name",
    "description",
    "price",
    "image",
    "category",
    "options",
    "is_recommended",
)


def encode_options(options: Iterable[Any]) -> str:
    """Serialize option models or dicts to the stored JSON blob."""
    return json.dumps(
        [o.model_dump() if hasattr(o, "model_dump") else dict(o) for o in options],
        ensure_ascii=False,
    )


def encode_menu_row(item: MenuItemCreate) -> dict[str, Any]:
    """Stored shape of a new menu item."""
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "image": item.image,
        "category": item.category,
        "options": encode_options(item.options),
        "is_recommended": 1 if item.is_recommended else 0,
    }


def encode_menu_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Stored shape of a partial update; keys not present stay untouched."""
    encoded = {k: v for k, v in changes.items() if k in MENU_COLUMNS and k != "id"}
    if "options" in encoded:
        encoded["options"] = encode_options(encoded["options"])
    if "is_recommended" in encoded:
        encoded["is_recommended"] = 1 if encoded["is_recommended"] else 0
    return encoded


def encode_items(items: Iterable[OrderLineItem]) -> str:
    return json.dumps(
        [item.model_dump(by_alias=True) for item in items],
        ensure_ascii=False,
    )


def decode_items(raw: str) -> list[OrderLineItem]:
    return [OrderLineItem.model_validate(item) for item in json.loads(raw or "[]")]


class BaseCatalogStore(ABC):
    """Holds menu item rows keyed by their caller-assigned id."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name (e.g. "sql", "memory")."""
        pass

    @abstractmethod
    async def create(self, item: MenuItemCreate) -> str:
        """
        Insert a new menu item.

        Raises:
            DuplicateId: An item with the same id already exists
            StoreError: Persistence failure
        """
        pass

    @abstractmethod
    async def update(self, item_id: str, changes: dict[str, Any]) -> str:
        """
        Apply a field-by-field merge of ``changes`` onto an existing item.

        Raises:
            NotFound: No item with this id
            StoreError: Persistence failure
        """
        pass

    @abstractmethod
    async def delete(self, item_id: str) -> str:
        """
        Remove an item.

        Raises:
            NotFound: No item with this id
            StoreError: Persistence failure
        """
        pass

    @abstractmethod
    async def list_all(self) -> list[dict[str, Any]]:
        """Every row, in no particular order."""
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


class BaseOrderStore(ABC):
    """Holds orders keyed by a store-assigned, increasing integer id."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        pass

    @abstractmethod
    async def insert(
        self,
        table_number: int,
        items: list[OrderLineItem],
        total_price: float,
        status: OrderStatus,
    ) -> OrderRead:
        """
        Persist a new order and return it with its id and timestamp.

        The returned record is read back after the write, so callers see
        exactly what was stored.
        """
        pass

    @abstractmethod
    async def update_status(self, order_id: int, status: OrderStatus) -> None:
        """
        Overwrite the status of an order (last write wins).

        Raises:
            NotFound: No order with this id
        """
        pass

    @abstractmethod
    async def get(self, order_id: int) -> Optional[OrderRead]:
        pass

    @abstractmethod
    async def list_for_table(
        self,
        table_number: int,
        exclude_status: OrderStatus,
    ) -> list[OrderRead]:
        """Orders of one table not in ``exclude_status``, newest first."""
        pass

    @abstractmethod
    async def list_by_statuses(self, statuses: Iterable[OrderStatus]) -> list[OrderRead]:
        """Orders whose status is one of ``statuses``, oldest first."""
        pass

    @abstractmethod
    async def distinct_tables(self, exclude_status: OrderStatus) -> list[int]:
        """Distinct table numbers of orders not in ``exclude_status``, ascending."""
        pass
