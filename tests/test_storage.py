import pytest
from sqlalchemy.exc import OperationalError

from table_order.core.config import StorageBackend, get_settings
from table_order.core.errors import StoreError
from table_order.models import OrderStatus
from table_order.schemas import MenuItemCreate, OrderLineItem
from table_order.services.storage import (
    MemoryCatalogStore,
    MemoryOrderStore,
    SqlCatalogStore,
    SqlOrderStore,
    get_catalog_store,
    get_order_store,
    reset_memory_stores,
)
from tests.conftest import run


@pytest.fixture
def memory_backend(monkeypatch):
    monkeypatch.setattr(get_settings(), "storage_backend", StorageBackend.MEMORY)
    reset_memory_stores()
    yield
    reset_memory_stores()


def test_memory_stores_are_shared(memory_backend):
    assert isinstance(get_catalog_store(), MemoryCatalogStore)
    assert isinstance(get_order_store(), MemoryOrderStore)
    assert get_catalog_store() is get_catalog_store()


def test_reset_gives_fresh_stores(memory_backend):
    before = get_order_store()
    reset_memory_stores()
    assert get_order_store() is not before


def test_sql_backend_needs_session(monkeypatch):
    monkeypatch.setattr(get_settings(), "storage_backend", StorageBackend.SQL)
    with pytest.raises(ValueError):
        get_catalog_store()
    with pytest.raises(ValueError):
        get_order_store()


def test_sql_backend_wraps_session(monkeypatch):
    monkeypatch.setattr(get_settings(), "storage_backend", StorageBackend.SQL)
    session = object()
    store = get_catalog_store(session)
    assert isinstance(store, SqlCatalogStore)
    assert store.backend_name == "sql"


class BrokenSession:
    """Session whose commit fails the way a locked or full database does."""

    def __init__(self):
        self.added = []
        self.rolled_back = False

    def add(self, instance):
        self.added.append(instance)

    async def get(self, *args):
        return None

    async def commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    async def rollback(self):
        self.rolled_back = True


def test_failed_menu_insert_rolls_back(caplog):
    session = BrokenSession()
    store = SqlCatalogStore(session)
    item = MenuItemCreate(id="m1", name="Tea", price=300, category="Drinks")

    with pytest.raises(StoreError) as excinfo:
        run(store.create(item))

    assert session.rolled_back
    assert excinfo.value.message == "Database error"
    assert "disk I/O error" in caplog.text


def test_failed_order_insert_rolls_back():
    session = BrokenSession()
    store = SqlOrderStore(session)

    with pytest.raises(StoreError):
        run(store.insert(
            table_number=5,
            items=[OrderLineItem(name="Tea", price=500, quantity=2)],
            total_price=1000.0,
            status=OrderStatus.RECEIVED,
        ))
    assert session.rolled_back
