"""
FastAPI Application Entry Point

Food ordering backend: menu management, order submission with
restaurant notification, and meal photo uploads.
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - POST /order: Submit an order from the cart
    - GET /admin/orders: Order history with recomputed totals
    - /api/categories, /api/dishes, /api/menu: Menu management
    - /api/images: Image compression and upload
    - GET /api/storage/status: Storage availability probe
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, File, Header, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from foodcart.core.config import get_settings, setup_logging
from foodcart.core.exceptions import FoodCartError, NotFoundError
from foodcart.core.locks import PendingOperations, get_pending_operations
from foodcart.database import get_db, init_db, engine
from foodcart.pricing import to_money
from foodcart.repositories import MenuRepository, OrderRepository
from foodcart.schemas import (
    CategoryCreate,
    CategoryResponse,
    DeleteResponse,
    DishCreate,
    DishCreateResponse,
    DishRowResponse,
    ErrorResponse,
    HealthResponse,
    ImagePreviewResponse,
    ImageUploadResponse,
    MenuDishResponse,
    MenuResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderLineResponse,
    OrderListResponse,
    OrderResponse,
    PhotoUploadResponse,
    StorageStatusResponse,
)
from foodcart.services.cart import HistoryEntry, OrderHistoryView, history_entry_from_order
from foodcart.services.images import ImageProcessor, data_url_size, get_image_processor
from foodcart.services.menu import MenuService
from foodcart.services.notifications import BaseNotificationService, get_notification_service
from foodcart.services.orders import OrderService
from foodcart.services.storage import (
    BaseStorageService,
    MockStorageService,
    StorageUploader,
    build_uploader,
    get_storage_service,
)

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Initialize database
    await init_db()
    logger.info("✅ Database initialized")

    # Log service configuration
    storage_service = get_storage_service()
    notification_service = get_notification_service()
    logger.info(f"✅ Storage Service: {storage_service.provider_name} (bucket {settings.storage_bucket})")
    logger.info(f"✅ Notification Service: {notification_service.provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await storage_service.close()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend with menu management, order notifications "
        "and image storage. Supports mock services for development and real APIs "
        "for production."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_uploader(
    storage: BaseStorageService = Depends(get_storage_service),
) -> StorageUploader:
    return build_uploader(storage)


def get_menu_repository(
    db: AsyncSession = Depends(get_db),
    locks: PendingOperations = Depends(get_pending_operations),
) -> MenuRepository:
    return MenuRepository(db, locks)


def get_menu_service(
    repository: MenuRepository = Depends(get_menu_repository),
    uploader: StorageUploader = Depends(get_uploader),
    processor: ImageProcessor = Depends(get_image_processor),
) -> MenuService:
    return MenuService(repository, uploader, processor, settings)


def get_order_repository(db: AsyncSession = Depends(get_db)) -> OrderRepository:
    return OrderRepository(db)


def get_order_service(
    repository: OrderRepository = Depends(get_order_repository),
    notifier: BaseNotificationService = Depends(get_notification_service),
    uploader: StorageUploader = Depends(get_uploader),
    processor: ImageProcessor = Depends(get_image_processor),
    locks: PendingOperations = Depends(get_pending_operations),
) -> OrderService:
    return OrderService(repository, notifier, uploader, processor, locks, settings)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def order_response(entry: HistoryEntry) -> OrderResponse:
    """Serialize a history entry with its recomputed total."""
    return OrderResponse(
        id=entry.id,
        customer_name=entry.customer_name,
        customer_email=entry.customer_email,
        notes=entry.notes,
        created_at=entry.created_at,
        items=[
            OrderLineResponse(
                dish_id=line.dish_id,
                dish_name=line.dish_name,
                quantity=line.quantity,
                price=line.price,
                subtotal=line.subtotal,
                note=line.note,
            )
            for line in entry.lines
        ],
        total=entry.total,
        images=entry.images,
    )


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
async def health_check(
    db: AsyncSession = Depends(get_db),
    storage: BaseStorageService = Depends(get_storage_service),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    storage_status = "healthy" if await storage.health_check() else "unhealthy"
    notification_status = "healthy" if await notifier.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, storage_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        storage_service=storage_status,
        notification_service=notification_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/order",
    response_model=OrderCreateResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Submit Order",
)
async def submit_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service),
    x_session_id: Optional[str] = Header(None),
) -> OrderCreateResponse:
    """
    Persist the cart as an order and email the restaurant.

    The email is best effort: the order is saved even when it fails.
    """
    logger.info(f"Order submitted by: {order_data.customer_name or 'Customer'}")

    order_id = await service.submit_order(
        order_data.items,
        order_data.customer_name,
        customer_email=order_data.customer_email,
        notes=order_data.notes,
        session_key=x_session_id,
    )

    return OrderCreateResponse(
        success=True,
        message="Order submitted successfully",
        order_id=order_id,
    )


@app.get(
    "/admin/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="Order History",
)
async def list_orders(
    repository: OrderRepository = Depends(get_order_repository),
) -> OrderListResponse:
    """All orders, newest first, totals recomputed from the items."""
    entries = await OrderHistoryView(repository).fetch_history()
    return OrderListResponse(orders=[order_response(entry) for entry in entries])


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    repository: OrderRepository = Depends(get_order_repository),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await repository.get(order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return order_response(history_entry_from_order(order))


@app.post(
    "/api/orders/{order_id}/photos",
    response_model=PhotoUploadResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Attach Meal Photo",
)
async def attach_order_photo(
    order_id: int,
    file: UploadFile = File(...),
    service: OrderService = Depends(get_order_service),
) -> PhotoUploadResponse:
    """Compress, upload and attach a photo of the meal."""
    content = await file.read()
    url = await service.attach_meal_photo(order_id, content)
    return PhotoUploadResponse(order_id=order_id, url=url)


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get("/api/categories", response_model=list[CategoryResponse], tags=["Menu"])
async def list_categories(
    repository: MenuRepository = Depends(get_menu_repository),
) -> list[CategoryResponse]:
    categories = await repository.list_categories()
    return [CategoryResponse.model_validate(category) for category in categories]


@app.post(
    "/api/categories",
    response_model=CategoryResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def create_category(
    data: CategoryCreate,
    repository: MenuRepository = Depends(get_menu_repository),
) -> CategoryResponse:
    """Create a category; the id defaults to the slug of the name."""
    if data.id:
        category = await repository.create_category(data.id, data.name, data.color, data.description)
    else:
        category = await repository.create_category_from_name(data.name, data.color, data.description)
    return CategoryResponse.model_validate(category)


@app.delete(
    "/api/categories/{category_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def delete_category(
    category_id: str,
    repository: MenuRepository = Depends(get_menu_repository),
) -> DeleteResponse:
    """Delete a category together with its dish rows."""
    removed = await repository.delete_category(category_id)
    return DeleteResponse(deleted=removed)


@app.get("/api/dishes", response_model=list[DishRowResponse], tags=["Menu"])
async def list_dishes(
    category: Optional[str] = Query(None),
    repository: MenuRepository = Depends(get_menu_repository),
) -> list[DishRowResponse]:
    """Flat dish rows, optionally for one category."""
    if category:
        rows = await repository.list_dishes_by_category(category)
    else:
        rows = await repository.list_dishes()
    return [DishRowResponse.model_validate(row) for row in rows]


@app.post(
    "/api/dishes",
    response_model=DishCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def create_dish(
    data: DishCreate,
    service: MenuService = Depends(get_menu_service),
) -> DishCreateResponse:
    """Create a dish in every selected category."""
    created = await service.create_dish(
        data.name,
        data.description,
        data.price,
        data.image,
        data.category_ids,
        allow_placeholder=data.allow_placeholder,
    )
    return DishCreateResponse(
        image=created.image,
        image_degraded=created.image_degraded,
        rows=[DishRowResponse.model_validate(row) for row in created.rows],
    )


@app.delete(
    "/api/dishes/groups/{group_key}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def delete_dish_group(
    group_key: str,
    repository: MenuRepository = Depends(get_menu_repository),
) -> DeleteResponse:
    """Delete a dish from every category it appears in."""
    removed = await repository.delete_dish_group(group_key)
    return DeleteResponse(deleted=removed)


@app.delete(
    "/api/dishes/{dish_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def delete_dish(
    dish_id: int,
    repository: MenuRepository = Depends(get_menu_repository),
) -> DeleteResponse:
    await repository.delete_dish(dish_id)
    return DeleteResponse()


@app.get("/api/menu", response_model=MenuResponse, tags=["Menu"])
async def menu(
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None, max_length=100),
    service: MenuService = Depends(get_menu_service),
) -> MenuResponse:
    """Categories plus logical dishes, filtered by category and search text."""
    categories = await service.repository.list_categories()
    dishes = await service.menu(category, q)
    return MenuResponse(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        dishes=[
            MenuDishResponse(
                id=dish.id,
                key=dish.key,
                name=dish.name,
                description=dish.description,
                price=to_money(dish.price),
                image=dish.image,
                category_ids=dish.category_ids,
                row_ids=dish.row_ids,
            )
            for dish in dishes
        ],
    )


# =============================================================================
# IMAGE & STORAGE ENDPOINTS
# =============================================================================

@app.post(
    "/api/images/preview",
    response_model=ImagePreviewResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Images"],
)
async def preview_image(
    file: UploadFile = File(...),
    max_width: Optional[int] = Query(None, ge=1, le=4000),
    processor: ImageProcessor = Depends(get_image_processor),
) -> ImagePreviewResponse:
    """Compress an image and return it as a JPEG data URL."""
    data_url = await processor.process_async(await file.read(), max_width)
    return ImagePreviewResponse(data_url=data_url, size=data_url_size(data_url))


@app.post(
    "/api/images",
    response_model=ImageUploadResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Images"],
)
async def upload_image(
    file: UploadFile = File(...),
    service: MenuService = Depends(get_menu_service),
) -> ImageUploadResponse:
    """Compress and store a dish photo, returning its public URL."""
    url = await service.upload_dish_image(await file.read())
    return ImageUploadResponse(url=url)


@app.get("/api/storage/status", response_model=StorageStatusResponse, tags=["Images"])
async def storage_status(
    uploader: StorageUploader = Depends(get_uploader),
) -> StorageStatusResponse:
    """Check that the bucket exists and accepts writes."""
    status = await uploader.check_availability()
    return StorageStatusResponse(
        checked=status.checked,
        ready=status.ready,
        provider=status.provider,
        message=status.message,
    )


@app.get("/storage/v1/object/public/{bucket}/{path:path}", tags=["Images"], include_in_schema=False)
async def mock_public_object(
    bucket: str,
    path: str,
    storage: BaseStorageService = Depends(get_storage_service),
) -> Response:
    """Serve objects held by the in-memory storage (development only)."""
    if not settings.is_development or not isinstance(storage, MockStorageService):
        raise NotFoundError("Object", f"{bucket}/{path}")

    stored = storage.get_object(bucket, path)
    if stored is None:
        raise NotFoundError("Object", f"{bucket}/{path}")

    content, content_type = stored
    return Response(content=content, media_type=content_type)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(FoodCartError)
async def domain_exception_handler(request: Request, exc: FoodCartError) -> JSONResponse:
    """Render domain errors with their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")

    body: dict[str, Any] = ErrorResponse(
        error=exc.message,
        detail=exc.detail,
        retryable=exc.retryable,
    ).model_dump()
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )

