"""
                        Services Module

Business logic of the ordering engine. Storage has SQL and in-memory
implementations selected by configuration.

Services:
    - storage: catalog and order stores (SQL / in-memory)
    - catalog: menu administration, seeding, category assembly
    - orders: order validation and status lifecycle
    - pricing: line and order totals
    - tables: active table tracking
    - images: menu picture conversion
"""

from table_order.services.catalog import CatalogService, assemble_catalog, ensure_seeded
from table_order.services.orders import OrderLifecycleManager
from table_order.services.pricing import line_total, order_total
from table_order.services.tables import TableActivityTracker

__all__ = [
    "CatalogService",
    "assemble_catalog",
    "ensure_seeded",
    "OrderLifecycleManager",
    "line_total",
    "order_total",
    "TableActivityTracker",
]
