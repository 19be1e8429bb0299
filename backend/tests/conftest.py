from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

# Settings are read at import time; give the app a harmless default before importing it.
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256-usage")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.pool import NullPool

from app.core.roles import UserRole
from app.core.security import TokenIssuer, hash_password
from app.db.session import build_engine, build_sessionmaker, get_db

# Ensure Base + models are registered before create_all
from app.db.base import Base
import app.models  # noqa: F401
from app.models.category import Category
from app.models.company import Company
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.promotion import Promotion
from app.models.user import User

DEFAULT_PASSWORD = "secret123"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------
# Engine: one throwaway SQLite file per test
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return build_sessionmaker(engine)


# ---------------------------------------------------------
# DB session for assertions / setup
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from app.main import create_application

    fastapi_app = create_application(bootstrap=False)

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def token_issuer(app) -> TokenIssuer:
    return app.state.token_issuer


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Data builders
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def company(db) -> Company:
    c = Company(name=f"Test Company {uuid.uuid4().hex[:8]}", is_active=True)
    db.add(c)
    await db.commit()
    return c


@pytest_asyncio.fixture()
async def category(db, company) -> Category:
    cat = Category(company_id=company.id, name="Gadgets")
    db.add(cat)
    await db.commit()
    return cat


@pytest.fixture()
def make_product(db, company, category):
    async def _make(
        name: str = "Widget",
        price: str = "100.00",
        stock: int = 5,
        promotion_id: Optional[uuid.UUID] = None,
        company_id: Optional[uuid.UUID] = None,
        category_id: Optional[uuid.UUID] = None,
        description: Optional[str] = None,
    ) -> Product:
        p = Product(
            company_id=company_id or company.id,
            category_id=category_id or category.id,
            name=name,
            description=description,
            price=Decimal(price),
            stock_quantity=stock,
            promotion_id=promotion_id,
        )
        db.add(p)
        await db.commit()
        return p

    return _make


@pytest.fixture()
def make_promotion(db):
    async def _make(
        discount: str = "20",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        is_active: bool = True,
        name: str = "Autumn sale",
    ) -> Promotion:
        now = utcnow()
        promo = Promotion(
            name=name,
            discount_percentage=Decimal(discount),
            start_date=start or now - timedelta(days=1),
            end_date=end or now + timedelta(days=1),
            is_active=is_active,
        )
        db.add(promo)
        await db.commit()
        return promo

    return _make


@pytest.fixture()
def make_user(db):
    async def _make(
        email: str = "customer@example.com",
        role: UserRole = UserRole.USER,
        company_id: Optional[uuid.UUID] = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
    ) -> User:
        hashed = hash_password(password)
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email.lower().strip(),
            password_hash=hashed.hash,
            password_salt=hashed.salt,
            role=role.value,
            company_id=company_id,
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture()
def auth_headers(token_issuer):
    def _headers(user: User) -> dict[str, str]:
        issued = token_issuer.issue(
            user_id=user.id,
            role=UserRole(user.role),
            tenant_id=user.company_id,
        )
        return {"Authorization": f"Bearer {issued.access_token}"}

    return _headers


# ---------------------------------------------------------
# Fresh-session readers (never served from an identity map)
# ---------------------------------------------------------
@pytest.fixture()
def read_stock(sessionmaker):
    async def _read(product_id: uuid.UUID) -> int:
        async with sessionmaker() as s:
            return int((await s.execute(select(Product.stock_quantity).where(Product.id == product_id))).scalar_one())

    return _read


@pytest.fixture()
def count_orders(sessionmaker):
    async def _count() -> tuple[int, int]:
        async with sessionmaker() as s:
            orders = (await s.execute(select(func.count(Order.id)))).scalar_one()
            items = (await s.execute(select(func.count(OrderItem.id)))).scalar_one()
            return int(orders), int(items)

    return _count
