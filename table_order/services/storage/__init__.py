"""
Storage Factory

Provides a single entry point for obtaining catalog and order stores.
The rest of the application stays agnostic about which backend is used.

Usage:
    from table_order.services.storage import get_catalog_store, get_order_store

    # SqlCatalogStore bound to the request session, or the shared
    # MemoryCatalogStore, depending on STORAGE_BACKEND
    store = get_catalog_store(session)

Backend Switching:
    - STORAGE_BACKEND=sql → SqlCatalogStore / SqlOrderStore (default)
    - STORAGE_BACKEND=memory → MemoryCatalogStore / MemoryOrderStore
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from table_order.core.config import get_settings
from table_order.services.storage.base import BaseCatalogStore, BaseOrderStore
from table_order.services.storage.memory import MemoryCatalogStore, MemoryOrderStore
from table_order.services.storage.sql import SqlCatalogStore, SqlOrderStore

logger = logging.getLogger(__name__)


@lru_cache()
def _memory_stores() -> tuple[MemoryCatalogStore, MemoryOrderStore]:
    """The in-memory stores live as long as the process (singleton)."""
    logger.info("Storage: Using in-memory stores")
    return MemoryCatalogStore(), MemoryOrderStore()


def get_catalog_store(session: Optional[AsyncSession] = None) -> BaseCatalogStore:
    """
    Get the configured catalog store.

    Args:
        session: Database session; required for the SQL backend

    Raises:
        ValueError: SQL backend selected but no session given
    """
    if get_settings().uses_memory_storage:
        return _memory_stores()[0]
    if session is None:
        raise ValueError("The SQL catalog store needs a database session")
    return SqlCatalogStore(session)


def get_order_store(session: Optional[AsyncSession] = None) -> BaseOrderStore:
    """Get the configured order store (see ``get_catalog_store``)."""
    if get_settings().uses_memory_storage:
        return _memory_stores()[1]
    if session is None:
        raise ValueError("The SQL order store needs a database session")
    return SqlOrderStore(session)


def reset_memory_stores() -> None:
    """
    Drop the cached in-memory stores.

    The next call to a factory creates empty stores.
    """
    _memory_stores.cache_clear()
    logger.debug("In-memory stores cleared")


__all__ = [
    "get_catalog_store",
    "get_order_store",
    "reset_memory_stores",
    "BaseCatalogStore",
    "BaseOrderStore",
    "MemoryCatalogStore",
    "MemoryOrderStore",
    "SqlCatalogStore",
    "SqlOrderStore",
]
