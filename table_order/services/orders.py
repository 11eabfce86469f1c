"""
Order Lifecycle Manager

Validates new orders, prices them, and moves them through the status
workflow:

    RECEIVED → PREPARING → READY → SERVED → SETTLED
    CALLED (staff call), CANCELLED, KITCHEN_DONE (kitchen display closed it)

Any status of the enumeration may be set from any other; the workflow
order above is not enforced.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from table_order.core.errors import InvalidInput, InvalidStatus
from table_order.models import OrderStatus
from table_order.schemas import OrderCreate, OrderLineItem, OrderRead, TableRequest
from table_order.services.pricing import order_total
from table_order.services.storage.base import BaseOrderStore

logger = logging.getLogger(__name__)

# Statuses shown on the kitchen display
KITCHEN_STATUSES = (
    OrderStatus.RECEIVED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.CALLED,
)

STAFF_CALL_ITEM_ID = "staff-call"


def parse_status(value: Any) -> OrderStatus:
    """
    Raises:
        InvalidStatus: ``value`` is not one of the OrderStatus values
    """
    try:
        return OrderStatus(value)
    except (ValueError, TypeError):
        allowed = [s.value for s in OrderStatus]
        raise InvalidStatus(f"Invalid status {value!r}. Options: {allowed}")


def parse_table_number(value: Any) -> int:
    """
    Raises:
        InvalidInput: missing, not an integer, or below 1
    """
    if value is None:
        raise InvalidInput("tableNumber is required")
    try:
        return TableRequest.model_validate({"table_number": value}).table_number
    except ValidationError as e:
        raise InvalidInput.from_validation_error(e) from e


class OrderLifecycleManager:
    """
    Order operations on top of an order store.

    Example:
        >>> manager = OrderLifecycleManager(get_order_store(session))
        >>> order = await manager.create_order(5, [{"price": 500, "quantity": 2}])
        >>> order.total_price, order.status
        (1000.0, <OrderStatus.RECEIVED: 'RECEIVED'>)
    """

    def __init__(self, store: BaseOrderStore, staff_call_label: str = "Staff call"):
        self.store = store
        self.staff_call_label = staff_call_label

    async def create_order(self, table_number: Any, items: Optional[list[Any]]) -> OrderRead:
        """
        Validate, price and persist a new order with status RECEIVED.

        Everything is checked before the store is touched.

        Raises:
            InvalidInput: bad table number, no items, or an invalid line item
        """
        try:
            payload = OrderCreate.model_validate(
                {"table_number": table_number, "items": items}
            )
        except ValidationError as e:
            raise InvalidInput.from_validation_error(e) from e

        total = order_total(payload.items)
        order = await self.store.insert(
            table_number=payload.table_number,
            items=payload.items,
            total_price=total,
            status=OrderStatus.RECEIVED,
        )
        logger.info(
            f"Order #{order.id} created for table {order.table_number} "
            f"({len(order.items)} lines, total {order.total_price:g})"
        )
        return order

    async def create_staff_call(self, table_number: Any) -> OrderRead:
        """
        Record a staff call as a zero-price order with status CALLED.

        It shows up on the kitchen display and keeps the table active like
        any other open order.
        """
        table = parse_table_number(table_number)
        call_item = OrderLineItem(
            menu_item_id=STAFF_CALL_ITEM_ID,
            name=self.staff_call_label,
            price=0,
            quantity=1,
        )
        order = await self.store.insert(
            table_number=table,
            items=[call_item],
            total_price=0.0,
            status=OrderStatus.CALLED,
        )
        logger.info(f"🔔 Staff call #{order.id} from table {table}")
        return order

    async def set_status(self, order_id: int, new_status: Any) -> dict[str, Any]:
        """
        Raises:
            InvalidStatus: unknown status (checked before any lookup)
            NotFound: no order with ``order_id``
        """
        status = parse_status(new_status)
        await self.store.update_status(order_id, status)
        logger.info(f"Order #{order_id} → {status.value}")
        return {"id": order_id, "status": status}

    async def list_for_table(self, table_number: Any) -> list[OrderRead]:
        """Open (not SETTLED) orders of a table, newest first."""
        table = parse_table_number(table_number)
        return await self.store.list_for_table(table, exclude_status=OrderStatus.SETTLED)

    async def list_for_kitchen(self) -> list[OrderRead]:
        """Orders the kitchen still has to act on, longest waiting first."""
        return await self.store.list_by_statuses(KITCHEN_STATUSES)
