"""
Test fixtures - in-memory SQLite database, mock collaborators, HTTP client
"""
import os

# Must be set before foodcart is imported: the engine is built at import time
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["UPLOAD_RETRY_DELAY_SECONDS"] = "0"

from io import BytesIO

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from foodcart.core.locks import PendingOperations, get_pending_operations
from foodcart.database import Base, get_db
from foodcart.main import app
from foodcart.repositories import MenuRepository, OrderRepository
from foodcart.services.images import ImageProcessor
from foodcart.services.notifications import MockNotificationService, get_notification_service
from foodcart.services.orders import OrderService
from foodcart.services.storage import MockStorageService, StorageUploader, get_storage_service


def make_image(width: int, height: int, mode: str = "RGB", fmt: str = "PNG") -> bytes:
    """Encode a solid-colour test image."""
    color = (200, 80, 40, 128) if mode == "RGBA" else (200, 80, 40)
    buffer = BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture()
def storage():
    return MockStorageService(public_base_url="http://test")


@pytest.fixture()
def notifier():
    return MockNotificationService(failure_rate=0.0, min_latency=0.0, max_latency=0.0)


@pytest.fixture()
def locks():
    return PendingOperations()


@pytest.fixture()
def uploader(storage):
    return StorageUploader(storage, retry_delay_seconds=0)


@pytest.fixture()
def processor():
    return ImageProcessor(max_width=800, quality=70)


@pytest.fixture()
def menu_repo(db_session, locks):
    return MenuRepository(db_session, locks)


@pytest.fixture()
def order_repo(db_session):
    return OrderRepository(db_session)


@pytest.fixture()
def order_service(order_repo, notifier, uploader, processor, locks):
    return OrderService(order_repo, notifier, uploader, processor, locks)


@pytest_asyncio.fixture()
async def seed_menu(menu_repo):
    """Two categories and one dish listed under both."""
    await menu_repo.create_category("main", "Main Courses", "bg-emerald-500")
    await menu_repo.create_category("vegetarian", "Vegetarian", "bg-lime-300")
    rows = await menu_repo.create_dish(
        "Margherita Pizza", "Tomato and mozzarella", "12.99", "http://img/pizza.jpg",
        ["main", "vegetarian"],
    )
    return {"rows": rows}


@pytest_asyncio.fixture()
async def client(db_session, storage, notifier, locks):
    """httpx AsyncClient bound to the FastAPI app"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_pending_operations] = lambda: locks

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def image_bytes():
    return make_image
