"""Shared fixtures: SQLite stands in for the orders DB, an in-memory catalog for Mongo."""
import uuid
from decimal import Decimal

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from checkout_service.catalog.base import CatalogReader
from checkout_service.core.config import Settings
from checkout_service.db import build_engine, build_session_factory, create_schema
from checkout_service.main import create_app
from checkout_service.models.order import Order
from checkout_service.models.order_item import OrderItem
from checkout_service.schemas.product import Product
from checkout_service.service.checkout import CheckoutCoordinator

SECRET = "checkout-tests-signing-key-0123456789abcdef"

LAPTOP_ID = "64b7f0c2a1b2c3d4e5f60001"
MOUSE_ID = "64b7f0c2a1b2c3d4e5f60002"
MISSING_ID = "605dfa5d5e5b0b1a8c1f3b2a"


class InMemoryCatalog(CatalogReader):
    backend = "memory"

    def __init__(self, products=None):
        self.products = {p.id: p for p in (products or [])}
        self.lookups = []

    async def lookup_by_id(self, product_id):
        self.lookups.append(product_id)
        return self.products.get(product_id)

    def set_price(self, product_id, price):
        self.products[product_id] = self.products[product_id].model_copy(update={"price": Decimal(price)})


async def count_rows(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}",
        DB_ISOLATION_LEVEL="",
        SECRET_KEY=SECRET,
        CATALOG_LOOKUP_TIMEOUT=0,
        LOG_JSON=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def catalog():
    return InMemoryCatalog([
        Product(id=LAPTOP_ID, sku="TEST-LT-001", name="Test Laptop", price=Decimal("1000.00"), category="Electronics"),
        Product(id=MOUSE_ID, sku="TEST-MS-002", name="Test Mouse", price=Decimal("50.00"), category="Electronics"),
    ])


@pytest.fixture
def coordinator(catalog, session_factory):
    return CheckoutCoordinator(catalog, session_factory)


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def token(user_id):
    return jwt.encode({"id": str(user_id), "role": "customer"}, SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(settings, coordinator):
    app = create_app(settings)
    app.state.coordinator = coordinator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def orders_count(session_factory):
    async def _count():
        return await count_rows(session_factory, Order)
    return _count


@pytest.fixture
def items_count(session_factory):
    async def _count():
        return await count_rows(session_factory, OrderItem)
    return _count
