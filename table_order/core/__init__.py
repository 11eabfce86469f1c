"""
Core module initialization.
Exports configuration, logging utilities and domain errors.
"""

from table_order.core.config import get_settings, Settings, EnvironmentMode, StorageBackend
from table_order.core.errors import (
    OrderingError,
    InvalidInput,
    InvalidStatus,
    NotFound,
    DuplicateId,
    StoreError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "StorageBackend",
    "OrderingError",
    "InvalidInput",
    "InvalidStatus",
    "NotFound",
    "DuplicateId",
    "StoreError",
]
