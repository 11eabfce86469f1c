"""
FastAPI Application Entry Point

Table Ordering System - tablet ordering, kitchen display and menu admin.

Endpoints:
    - GET /api/menu: Category-grouped catalog
    - POST /api/menu: Add a menu item (multipart, optional image)
    - PUT /api/menu/{id}: Partially update a menu item
    - DELETE /api/menu/{id}: Remove a menu item
    - POST /api/orders: Place an order from a table
    - GET /api/orders?tableNumber=: Open orders of a table
    - GET /api/kitchen/orders: Kitchen display queue
    - PUT /api/orders/{id}/status: Change order status
    - POST /api/call: Call staff to a table
    - GET /api/tables: Active tables
    - GET /health: System health check

Version: 1.0.0
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, Depends, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from table_order import database
from table_order.core.config import get_settings, setup_logging
from table_order.core.errors import InvalidInput, OrderingError, StoreError
from table_order.database import get_db
from table_order.schemas import (
    CatalogResponse,
    ErrorResponse,
    HealthResponse,
    MenuWriteResponse,
    OrderCreate,
    OrderRead,
    StaffCallResponse,
    StatusUpdate,
    StatusUpdateResponse,
    TableRequest,
)
from table_order.services.catalog import CatalogService, ensure_seeded
from table_order.services.orders import OrderLifecycleManager
from table_order.services.storage import get_catalog_store, get_order_store
from table_order.services.tables import TableActivityTracker

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

async def seed_catalog() -> int:
    """Run the one-time catalog bootstrap against the configured store."""
    settings = get_settings()
    if settings.uses_memory_storage:
        return await ensure_seeded(get_catalog_store(), settings.menu_seed_file)
    async with database.async_session_maker() as session:
        return await ensure_seeded(get_catalog_store(session), settings.menu_seed_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    settings = get_settings()

    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Storage: {settings.storage_backend.value}")
    logger.info("=" * 60)

    if not settings.uses_memory_storage:
        await database.init_db()
        logger.info("✅ Database initialized")

    # The catalog is served only once seeding has finished (or failed)
    await seed_catalog()

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await database.engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "In-restaurant ordering: table tablets place orders and call staff, "
        "the kitchen display advances order status, admins edit the menu."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Menu pictures, reachable under the paths older clients use
_asset_dir = settings.asset_paths[0]
_asset_dir.mkdir(parents=True, exist_ok=True)
for _mount in ("static", "assets", "images"):
    app.mount(f"/{_mount}", StaticFiles(directory=str(_asset_dir)), name=_mount)


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    settings = get_settings()
    return CatalogService(
        get_catalog_store(db),
        asset_directories=settings.asset_paths,
        jpeg_quality=settings.image_jpeg_quality,
    )


async def get_order_manager(db: AsyncSession = Depends(get_db)) -> OrderLifecycleManager:
    return OrderLifecycleManager(
        get_order_store(db),
        staff_call_label=get_settings().staff_call_label,
    )


async def get_table_tracker(db: AsyncSession = Depends(get_db)) -> TableActivityTracker:
    return TableActivityTracker(get_order_store(db))


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def menu_form_fields(
    *,
    id: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    price: Optional[str] = None,
    category: Optional[str] = None,
    options: Optional[str] = None,
    is_recommended: Optional[str] = None,
    image: Optional[str] = None,
) -> dict[str, Any]:
    """
    Turn multipart form values into menu fields.

    Absent values are left out so updates stay partial. ``options`` is a
    JSON array and ``isRecommended`` counts as true for "true" or "1".
    """
    fields: dict[str, Any] = {}
    for key, value in (
        ("id", id),
        ("name", name),
        ("description", description),
        ("price", price),
        ("category", category),
        ("image", image),
    ):
        if value is not None:
            fields[key] = value
    if options:
        try:
            fields["options"] = json.loads(options)
        except ValueError:
            raise InvalidInput("options must be a JSON array")
    if is_recommended is not None:
        fields["is_recommended"] = is_recommended in ("true", "1")
    return fields


async def read_upload(upload: Optional[UploadFile]) -> Optional[bytes]:
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return data or None


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Verify the database is reachable."""
    settings = get_settings()

    db_status = "healthy"
    if settings.uses_memory_storage:
        db_status = "not used"
    else:
        try:
            await db.execute(text("SELECT 1"))
        except Exception as e:
            db_status = f"unhealthy: {str(e)}"
            logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="degraded" if db_status.startswith("unhealthy") else "operational",
        database=db_status,
        storage_backend=settings.storage_backend.value,
        timestamp=datetime.now(),
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=CatalogResponse,
    tags=["Menu"],
    summary="Category-grouped menu",
)
async def list_catalog(
    catalog: CatalogService = Depends(get_catalog_service),
) -> CatalogResponse:
    return CatalogResponse(categories=await catalog.list_catalog())


@app.post(
    "/api/menu",
    status_code=201,
    response_model=MenuWriteResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Add a menu item",
)
async def create_menu_item(
    id: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    description: str = Form(""),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    options: Optional[str] = Form(None),
    is_recommended: Optional[str] = Form(None, alias="isRecommended"),
    image_file: Optional[UploadFile] = File(None, alias="imageFile"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> MenuWriteResponse:
    """
    Create a menu item from a multipart form.

    An optional ``imageFile`` is converted to JPEG and stored as
    ``menu_<id>.jpeg``.
    """
    fields = menu_form_fields(
        id=id,
        name=name,
        description=description,
        price=price,
        category=category,
        options=options,
        is_recommended=is_recommended,
    )
    item_id = await catalog.create_menu_item(fields, await read_upload(image_file))
    return MenuWriteResponse(message="Menu item added", id=item_id)


@app.put(
    "/api/menu/{item_id}",
    response_model=MenuWriteResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Update a menu item",
)
async def update_menu_item(
    item_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    options: Optional[str] = Form(None),
    is_recommended: Optional[str] = Form(None, alias="isRecommended"),
    image: Optional[str] = Form(None),
    image_file: Optional[UploadFile] = File(None, alias="imageFile"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> MenuWriteResponse:
    """
    Partially update a menu item; fields not sent keep their value.

    A new ``imageFile`` replaces the picture; otherwise ``image`` (when
    sent) sets the reference directly.
    """
    fields = menu_form_fields(
        name=name,
        description=description,
        price=price,
        category=category,
        options=options,
        is_recommended=is_recommended,
        image=image,
    )
    await catalog.update_menu_item(item_id, fields, await read_upload(image_file))
    return MenuWriteResponse(message="Menu item updated", id=item_id)


@app.delete(
    "/api/menu/{item_id}",
    response_model=MenuWriteResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Delete a menu item",
)
async def delete_menu_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> MenuWriteResponse:
    await catalog.delete_menu_item(item_id)
    return MenuWriteResponse(message="Menu item deleted", id=item_id)


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    status_code=201,
    response_model=OrderRead,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Place an order",
)
async def create_order(
    order_data: OrderCreate,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderRead:
    """Create an order for a table; the total is computed server-side."""
    return await manager.create_order(order_data.table_number, order_data.items)


@app.get(
    "/api/orders",
    response_model=list[OrderRead],
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Open orders of a table",
)
async def list_orders_for_table(
    table_number: Optional[int] = Query(None, alias="tableNumber"),
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> list[OrderRead]:
    """Orders of one table that are not settled yet, newest first."""
    return await manager.list_for_table(table_number)


@app.get(
    "/api/kitchen/orders",
    response_model=list[OrderRead],
    tags=["Kitchen"],
    summary="Kitchen display queue",
)
async def list_kitchen_orders(
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> list[OrderRead]:
    """Orders the kitchen still works on, oldest first."""
    return await manager.list_for_kitchen()


@app.put(
    "/api/orders/{order_id}/status",
    response_model=StatusUpdateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Change order status",
)
async def set_order_status(
    order_id: int,
    update: Optional[StatusUpdate] = None,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> StatusUpdateResponse:
    """A missing or non-string status is reported as InvalidStatus."""
    result = await manager.set_status(order_id, update.status if update else None)
    return StatusUpdateResponse(id=result["id"], status=result["status"])


@app.post(
    "/api/call",
    status_code=201,
    response_model=StaffCallResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Call staff to a table",
)
async def create_staff_call(
    request_data: TableRequest,
    manager: OrderLifecycleManager = Depends(get_order_manager),
) -> StaffCallResponse:
    order = await manager.create_staff_call(request_data.table_number)
    return StaffCallResponse(id=order.id)


@app.get(
    "/api/tables",
    response_model=list[int],
    tags=["Tables"],
    summary="Active tables",
)
async def list_active_tables(
    tracker: TableActivityTracker = Depends(get_table_tracker),
) -> list[int]:
    """Tables with at least one order that is not settled."""
    return await tracker.active_tables()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Domain errors keep their kind; store failures are already logged."""
    if isinstance(exc, StoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.kind, detail=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are InvalidInput, same as core validation failures."""
    return await ordering_error_handler(request, InvalidInput.from_errors(exc.errors()))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if get_settings().debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
