"""
Pricing Engine

    line total  = (item price + sum of selected option prices) * quantity
    order total = sum of line totals

Totals are computed once when an order is created and stored with it.
"""

import math
from typing import Any, Iterable

from table_order.core.errors import InvalidInput
from table_order.schemas import OrderLineItem


def _check_price(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{what} must be a number")
    if not math.isfinite(value) or value < 0:
        raise InvalidInput(f"{what} must be a finite non-negative number")
    return float(value)


def _check_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInput("quantity must be a positive integer")
    return value


def line_total(item: OrderLineItem) -> float:
    """Effective price of one line, options included."""
    unit_price = _check_price(item.price, "price")
    for option in item.selected_options:
        unit_price += _check_price(option.price, f"option '{option.name}' price")
    return unit_price * _check_quantity(item.quantity)


def order_total(items: Iterable[OrderLineItem]) -> float:
    return sum((line_total(item) for item in items), 0.0)
