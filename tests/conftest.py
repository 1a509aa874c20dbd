"""Shared fixtures: in-memory database, seeded orders, bearer tokens, API client."""

import os

# config is read at import time
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-secret"
os.environ["QR_TOKEN_TTL_MINUTES"] = "15"
os.environ["ORDER_LOCK_TIMEOUT_SECONDS"] = "0"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.db import Base, enable_sqlite_foreign_keys, get_db
from app.core.security import create_access_token
from app.models.enums.order_item_status import OrderItemStatus
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.models.inventory.inventory_stock_models import InventoryStock
from app.models.inventory.product_models import Product
from app.models.orders.qr_token_models import SalesOrderQrToken
from app.models.orders.sales_order_models import SalesOrder, SalesOrderItem
from app.schemas.auth.acting_user_schemas import ActingUser
from app.models.enums.user_role import Role
from app.utils.datetime_utils import utc_now


# =====================================================
# DATABASE
# =====================================================
@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =====================================================
# SEEDING
# =====================================================
def _item_status(quantity: int, approved: int) -> OrderItemStatus:
    if approved == 0:
        return OrderItemStatus.PENDING
    if approved < quantity:
        return OrderItemStatus.PARTIALLY_APPROVED
    return OrderItemStatus.APPROVED


@pytest.fixture
def make_order(session_factory):
    """
    Persist an order and return its id.

    ``lines`` are ``(product_id, quantity, approved_quantity)``. Every product
    gets an inventory row holding ``on_hand`` units with the unshipped quantity
    reserved, unless it is listed in ``without_stock``.
    """
    counter = {"n": 0}

    async def _make(
        lines=(("PRD001", 5, 0),),
        *,
        status=SalesOrderStatus.PENDING,
        customer_name="Acme Traders",
        reference=None,
        eta_days: float = 10,
        on_hand: int = 100,
        without_stock=(),
    ) -> int:
        counter["n"] += 1
        async with session_factory() as session:
            for product_id, quantity, approved in lines:
                if await session.get(Product, product_id) is None:
                    session.add(
                        Product(
                            product_id=product_id,
                            name=f"Product {product_id}",
                            category="Furniture",
                            price=Decimal("25.00"),
                        )
                    )
                    await session.flush()

                if product_id in without_stock:
                    continue

                stock = await session.get(InventoryStock, product_id)
                if stock is None:
                    stock = InventoryStock(product_id=product_id, current_stock=on_hand, reserved_stock=0)
                    session.add(stock)
                stock.reserved_stock += quantity - approved

            order = SalesOrder(
                order_reference=reference or f"SO-{counter['n']:04d}",
                customer_name=customer_name,
                destination="12 Harbour Road",
                status=status,
                order_date=utc_now(),
                estimated_delivery_date=utc_now() + timedelta(days=eta_days),
                created_by="seed",
                items=[
                    SalesOrderItem(
                        product_id=product_id,
                        quantity=quantity,
                        approved_quantity=approved,
                        unit_price=Decimal("25.00"),
                        status=_item_status(quantity, approved),
                    )
                    for product_id, quantity, approved in lines
                ],
            )
            session.add(order)
            await session.commit()
            return order.id

    return _make


@pytest.fixture
def make_token(session_factory):
    async def _make(order_id: int, *, minutes_ago: float = 0, ttl_minutes: int = 15, token=None) -> str:
        value = token or f"token-{order_id}-{minutes_ago}"
        async with session_factory() as session:
            session.add(
                SalesOrderQrToken(
                    token=value,
                    sales_order_id=order_id,
                    issued_at=utc_now() - timedelta(minutes=minutes_ago),
                    ttl_minutes=ttl_minutes,
                )
            )
            await session.commit()
        return value

    return _make


# =====================================================
# READ BACK (fresh session, committed state only)
# =====================================================
@pytest.fixture
def fetch_order(session_factory):
    async def _fetch(order_id: int) -> SalesOrder:
        async with session_factory() as session:
            return await session.scalar(select(SalesOrder).where(SalesOrder.id == order_id))

    return _fetch


@pytest.fixture
def fetch_stock(session_factory):
    async def _fetch(product_id: str) -> InventoryStock:
        async with session_factory() as session:
            return await session.get(InventoryStock, product_id)

    return _fetch


@pytest.fixture
def count_movements(session_factory):
    async def _count(movement_type: str | None = None) -> int:
        stmt = select(func.count(InventoryMovement.id))
        if movement_type:
            stmt = stmt.where(InventoryMovement.movement_type == movement_type)
        async with session_factory() as session:
            return await session.scalar(stmt)

    return _count


@pytest.fixture
def fetch_token(session_factory):
    async def _fetch(token: str) -> SalesOrderQrToken:
        async with session_factory() as session:
            return await session.scalar(
                select(SalesOrderQrToken).where(SalesOrderQrToken.token == token)
            )

    return _fetch


# =====================================================
# ACTORS
# =====================================================
@pytest.fixture
def manager():
    return ActingUser(id="manager-1", role=Role.MANAGER)


@pytest.fixture
def courier():
    return ActingUser(id="courier-7", role=Role.COURIER)


@pytest.fixture
def staff():
    return ActingUser(id="staff-3", role=Role.STAFF)


@pytest.fixture
def bearer():
    def _headers(subject: str, role: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(subject, role)}"}

    return _headers


# =====================================================
# API
# =====================================================
@pytest.fixture
async def client(session_factory):
    from httpx import ASGITransport, AsyncClient

    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
