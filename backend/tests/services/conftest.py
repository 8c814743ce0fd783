"""Service test fixtures — async DB, FastAPI test client, in-memory store.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched for code paths that bypass get_db (readiness probe)
    - fake_store gives engine tests a store with real locking and rollback

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (FOR UPDATE compiles away on SQLite; lock behavior is covered by fake_store)
    - StaticPool: every session shares the one in-memory connection
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from marketplace.config import get_settings
from marketplace.core.domain_types import CallerContext, ProductCategory, UserId
from marketplace.db.base import Base
from marketplace.infrastructure.database import get_db, DatabaseSessionManager
from marketplace.models.product import Product
from marketplace.models.purchase_request import PurchaseRequest
from marketplace.models.user import User
from marketplace.services.arbitration_engine import ArbitrationEngine
import marketplace.infrastructure.database as db_module
from marketplace.main import app

from tests.services.fake_store import FakeMarketplaceStore


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


def auth(user) -> dict:
    """Headers the gateway would forward for a verified user."""
    return {get_settings().caller_id_header: str(user.id)}


# --- Seed data ----------------------------------------------------------------

async def _add_user(db, username: str) -> User:
    user = User(username=username, name=username.title())
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def seller(test_db):
    return await _add_user(test_db, "seller")


@pytest.fixture
async def buyer(test_db):
    return await _add_user(test_db, "buyer")


@pytest.fixture
async def rival(test_db):
    return await _add_user(test_db, "rival")


@pytest.fixture
def make_product(test_db, seller):
    async def _make(owner=None, sold=False, category=ProductCategory.BOOKS, age_minutes=0, title="Used textbook"):
        product = Product(
            seller_id=(owner or seller).id,
            title=title,
            description="Lightly annotated",
            price=1500,
            category=category.value,
            image="/uploads/book.png",
            sold=sold,
            created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
        )
        test_db.add(product)
        await test_db.commit()
        return product
    return _make


@pytest.fixture
async def product(make_product):
    return await make_product()


@pytest.fixture
def make_request(test_db):
    async def _make(product, buyer, status="pending", message=None):
        request = PurchaseRequest(
            product_id=product.id, buyer_id=buyer.id,
            status=status, message=message,
        )
        test_db.add(request)
        await test_db.commit()
        return request
    return _make


# --- In-memory engine ---------------------------------------------------------

@pytest.fixture
def fake_store():
    return FakeMarketplaceStore()


@pytest.fixture
def engine(fake_store):
    return ArbitrationEngine(fake_store)


@pytest.fixture
def caller_factory():
    def _caller(user_id=None, username="someone"):
        return CallerContext(user_id=UserId(user_id or uuid.uuid4()), username=username)
    return _caller
