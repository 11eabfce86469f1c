"""
SQLAlchemy Database Models

Two independent tables:
- menus: the catalog, keyed by a caller-assigned id
- orders: table orders and staff calls, keyed by an autoincrement id

Orders embed a JSON copy of the purchased items; there is no foreign key
to menus, so catalog edits never rewrite order history.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, Enum, Index

from table_order.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    RECEIVED = "RECEIVED"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    SETTLED = "SETTLED"
    CALLED = "CALLED"
    CANCELLED = "CANCELLED"
    KITCHEN_DONE = "KITCHEN_DONE"


class Menu(Base):
    """
    Catalog entry.

    ``options`` holds a JSON array of ``{"name", "price"}`` objects and
    ``is_recommended`` a 0/1 integer; both are decoded by the catalog
    assembler when the menu is served.
    """
    __tablename__ = "menus"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    image = Column(String(255), nullable=False, default="")
    category = Column(String(64), nullable=False, index=True)
    options = Column(Text, nullable=False, default="[]")
    is_recommended = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Menu {self.id} - {self.name} - {self.category}>"


class Order(Base):
    """
    One customer request (or staff call) for a table.

    Status is the only column updated after insert.
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_table_number_status", "table_number", "status"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_number = Column(Integer, nullable=False, index=True)
    items = Column(Text, nullable=False)  # JSON string of ordered items
    total_price = Column(Float, nullable=False)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.RECEIVED,
        nullable=False,
        index=True
    )
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table_number} - {self.status.value}>"
