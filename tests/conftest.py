"""Configuration and fixtures for all pytest tests."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, NamedTuple
from uuid import UUID

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio

if TYPE_CHECKING:
    from pathlib import Path
    from typing import AsyncIterator

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker


BASE_URL = "http://testserver"

ADA_ID = UUID("6f1c2f43-2f0e-4a55-9a49-0c4a36b8f5a1")
GRACE_ID = UUID("b3d9a7f2-51a8-4d2e-8c5e-3f5e9a7d2c10")


class SeededData(NamedTuple):
    """Ids of the objects created by the ``seeded`` fixture."""

    order_id: int
    empty_order_id: int
    item_ids: tuple[int, ...]
    slot_item_id: int
    customer_id: UUID
    other_customer_id: UUID


def href(path: str) -> str:
    """Absolute URL for a path on the test server."""
    return f"{BASE_URL}/{path.lstrip('/')}"


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """A fresh SQLite database per test."""
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import NullPool

    import models.order  # noqa: F401
    from services.database import Base

    engine_ = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )
    async with engine_.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine_

    await engine_.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> SeededData:
    """Order#5 -> customer Ada, items [1, 2], slots {"gift": Item#8}; Order#6 is bare."""
    from models.customer import Customer
    from models.item import Item
    from models.order import Order, OrderSlot

    async with session_factory() as db:
        ada = Customer(id=ADA_ID, name="Ada Lovelace", email="ada@example.com")
        grace = Customer(id=GRACE_ID, name="Grace Hopper", email="grace@example.com")
        items = {
            item_id: Item(id=item_id, sku=f"SKU-{item_id}", name=f"Item {item_id}", price_cents=100 * item_id)
            for item_id in (1, 2, 7, 8, 9)
        }

        order = Order(id=5, reference="ORD-5", customer=ada, items=[items[1], items[2]])
        order.slots["gift"] = OrderSlot(slot="gift", item=items[8])
        empty_order = Order(id=6, reference="ORD-6")

        db.add_all([ada, grace, *items.values(), order, empty_order])
        await db.commit()

    return SeededData(
        order_id=5,
        empty_order_id=6,
        item_ids=(1, 2),
        slot_item_id=8,
        customer_id=ADA_ID,
        other_customer_id=GRACE_ID,
    )


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], seeded: SeededData
) -> AsyncIterator[AsyncClient]:
    """HTTP client against the app, with ``get_db`` bound to the test database."""
    from httpx import ASGITransport, AsyncClient

    from main import app
    from services.database import get_db

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client_:
        yield client_

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
