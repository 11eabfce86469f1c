"""
SQL Store Implementations

SQLAlchemy async stores bound to one ``AsyncSession`` (one per request).
Every write commits before returning; any ``SQLAlchemyError`` rolls the
session back and surfaces as ``StoreError`` with the cause logged here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, NoReturn, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from table_order.core.errors import DuplicateId, NotFound, StoreError
from table_order.models import Menu, Order, OrderStatus
from table_order.schemas import MenuItemCreate, OrderLineItem, OrderRead
from table_order.services.storage.base import (
    BaseCatalogStore,
    BaseOrderStore,
    MENU_COLUMNS,
    encode_items,
    encode_menu_changes,
    encode_menu_row,
    decode_items,
)

logger = logging.getLogger(__name__)


class _SqlStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def backend_name(self) -> str:
        return "sql"

    async def _fail(self, action: str, exc: SQLAlchemyError) -> NoReturn:
        await self.session.rollback()
        logger.error(f"Database error while trying to {action}: {exc}")
        raise StoreError("Database error") from exc


class SqlCatalogStore(_SqlStore, BaseCatalogStore):
    """Catalog rows in the ``menus`` table."""

    @staticmethod
    def _to_row(menu: Menu) -> dict[str, Any]:
        return {column: getattr(menu, column) for column in MENU_COLUMNS}

    async def create(self, item: MenuItemCreate) -> str:
        try:
            if await self.session.get(Menu, item.id) is not None:
                raise DuplicateId(f"Menu item '{item.id}' already exists")
            self.session.add(Menu(**encode_menu_row(item)))
            await self.session.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent insert of the same id
            await self.session.rollback()
            raise DuplicateId(f"Menu item '{item.id}' already exists") from e
        except SQLAlchemyError as e:
            await self._fail(f"create menu item '{item.id}'", e)
        return item.id

    async def update(self, item_id: str, changes: dict[str, Any]) -> str:
        try:
            menu = await self.session.get(Menu, item_id)
            if menu is None:
                raise NotFound(f"Menu item '{item_id}' not found")
            for column, value in encode_menu_changes(changes).items():
                setattr(menu, column, value)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail(f"update menu item '{item_id}'", e)
        return item_id

    async def delete(self, item_id: str) -> str:
        try:
            menu = await self.session.get(Menu, item_id)
            if menu is None:
                raise NotFound(f"Menu item '{item_id}' not found")
            await self.session.delete(menu)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail(f"delete menu item '{item_id}'", e)
        return item_id

    async def list_all(self) -> list[dict[str, Any]]:
        try:
            result = await self.session.execute(select(Menu))
            return [self._to_row(menu) for menu in result.scalars().all()]
        except SQLAlchemyError as e:
            await self._fail("list menu items", e)

    async def count(self) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(Menu))
            return result.scalar() or 0
        except SQLAlchemyError as e:
            await self._fail("count menu items", e)


class SqlOrderStore(_SqlStore, BaseOrderStore):
    """Orders in the ``orders`` table, items as a JSON text column."""

    @staticmethod
    def _to_read(order: Order) -> OrderRead:
        timestamp = order.timestamp
        if timestamp is not None and timestamp.tzinfo is None:
            # SQLite drops the offset; stored values are UTC
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return OrderRead(
            id=order.id,
            table_number=order.table_number,
            items=decode_items(order.items),
            total_price=order.total_price,
            status=order.status,
            timestamp=timestamp,
        )

    async def insert(
        self,
        table_number: int,
        items: list[OrderLineItem],
        total_price: float,
        status: OrderStatus,
    ) -> OrderRead:
        order = Order(
            table_number=table_number,
            items=encode_items(items),
            total_price=total_price,
            status=status,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            self.session.add(order)
            await self.session.commit()
            await self.session.refresh(order)
        except SQLAlchemyError as e:
            await self._fail(f"insert order for table {table_number}", e)
        return self._to_read(order)

    async def update_status(self, order_id: int, status: OrderStatus) -> None:
        try:
            result = await self.session.execute(
                update(Order).where(Order.id == order_id).values(status=status)
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise NotFound(f"Order #{order_id} not found")
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail(f"update status of order #{order_id}", e)

    async def get(self, order_id: int) -> Optional[OrderRead]:
        try:
            order = await self.session.get(Order, order_id)
        except SQLAlchemyError as e:
            await self._fail(f"load order #{order_id}", e)
        return self._to_read(order) if order is not None else None

    async def list_for_table(
        self,
        table_number: int,
        exclude_status: OrderStatus,
    ) -> list[OrderRead]:
        query = (
            select(Order)
            .where(Order.table_number == table_number, Order.status != exclude_status)
            .order_by(Order.timestamp.desc(), Order.id.desc())
        )
        return await self._fetch(query, f"list orders of table {table_number}")

    async def list_by_statuses(self, statuses: Iterable[OrderStatus]) -> list[OrderRead]:
        query = (
            select(Order)
            .where(Order.status.in_(list(statuses)))
            .order_by(Order.timestamp.asc(), Order.id.asc())
        )
        return await self._fetch(query, "list orders by status")

    async def distinct_tables(self, exclude_status: OrderStatus) -> list[int]:
        query = (
            select(Order.table_number)
            .where(Order.status != exclude_status)
            .distinct()
            .order_by(Order.table_number)
        )
        try:
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self._fail("list active tables", e)

    async def _fetch(self, query, action: str) -> list[OrderRead]:
        try:
            result = await self.session.execute(query)
            return [self._to_read(order) for order in result.scalars().all()]
        except SQLAlchemyError as e:
            await self._fail(action, e)
