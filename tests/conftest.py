import asyncio
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import table_order.database as database
from table_order.core.config import StorageBackend, get_settings
from table_order.main import app
from table_order.services.storage import MemoryCatalogStore, MemoryOrderStore


def run(coro):
    """Drive one coroutine of the async core from a plain test."""
    return asyncio.run(coro)


@pytest.fixture
def catalog_store():
    return MemoryCatalogStore()


@pytest.fixture
def order_store():
    return MemoryOrderStore()


@pytest.fixture
def png_bytes():
    """A tiny valid PNG upload."""
    buffer = io.BytesIO()
    Image.new("RGBA", (4, 4), (200, 30, 30, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sql_app(monkeypatch, tmp_path):
    """The FastAPI app pointed at a fresh in-memory SQLite database.

    Uses StaticPool so every session shares the same in-memory database.
    Tables are created by the app's own startup (init_db).
    """
    settings = get_settings()
    monkeypatch.setattr(settings, "storage_backend", StorageBackend.SQL)
    monkeypatch.setattr(settings, "menu_seed_file", str(tmp_path / "no-menu.json"))
    monkeypatch.setattr(settings, "asset_directories", f"{tmp_path / 'assets'},{tmp_path / 'front'}")

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "async_session_maker", session_maker)
    return app


@pytest.fixture
def client(sql_app):
    """Shared TestClient; startup and shutdown run around each test."""
    with TestClient(sql_app) as test_client:
        yield test_client
