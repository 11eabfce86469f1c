"""
Table Activity Tracker

A table is active while it has at least one order that is not SETTLED.
Computed from the order store on every call; nothing is cached.
"""

from table_order.models import OrderStatus
from table_order.services.storage.base import BaseOrderStore


class TableActivityTracker:

    def __init__(self, store: BaseOrderStore):
        self.store = store

    async def active_tables(self) -> list[int]:
        """Distinct occupied table numbers, ascending."""
        return await self.store.distinct_tables(exclude_status=OrderStatus.SETTLED)
