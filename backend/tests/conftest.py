# tests/conftest.py

"""Shared pytest fixtures: a throwaway SQLite database per test and an API client bound to it."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.api import searches as searches_api
from app.core.database import Base, get_db, get_session_factory
from app.main import app as fastapi_app
from app.models import PriceDropAlert, Product, ProductSearch, Search, SearchStatus
from app.services.snapshot_store import SnapshotStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the FastAPI app, wired to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    searches_api.limiter.enabled = False

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    fastapi_app.dependency_overrides.clear()
    searches_api.limiter.enabled = True


class Factory:
    """Builds rows directly in the test database."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.positions = 0

    async def product(
        self,
        asin: str,
        name: str | None = None,
        price: str | None = "100.00",
        brand: str | None = None,
        keyword: str | None = None,
    ) -> Product:
        async with self.session_factory() as db:
            self.positions += 1
            product = Product(
                asin=asin,
                name=name or f"Product {asin}",
                brand=brand,
                keyword=keyword,
                url=f"https://www.amazon.com/dp/{asin}",
                final_price=Decimal(price) if price is not None else None,
                currency="USD",
                catalog_position=self.positions,
            )
            db.add(product)
            await db.commit()
            return product

    async def search(
        self,
        query: str = "test",
        user_id: str = "user-1",
        tracked: bool = True,
        status: SearchStatus = SearchStatus.DONE,
        asins: tuple[str, ...] = (),
    ) -> Search:
        async with self.session_factory() as db:
            search = Search(user_id=user_id, query=query, is_tracked=tracked, status=status.value)
            db.add(search)
            await db.flush()
            db.add_all(ProductSearch(asin=a, search_id=search.id) for a in asins)
            await db.commit()
            return search

    async def snapshots(self, asin: str, *prices: str) -> None:
        """Append snapshots one minute apart, oldest first."""
        async with self.session_factory() as db:
            store = SnapshotStore(db)
            for i, price in enumerate(prices):
                await store.append_snapshot(asin, Decimal(price), created_at=T0 + timedelta(minutes=i))
            await db.commit()

    async def count(self, model) -> int:
        async with self.session_factory() as db:
            return (await db.execute(select(func.count()).select_from(model))).scalar_one()

    async def alerts(self, search_id: str | None = None) -> list[PriceDropAlert]:
        async with self.session_factory() as db:
            query = select(PriceDropAlert).order_by(PriceDropAlert.asin)
            if search_id:
                query = query.where(PriceDropAlert.search_id == search_id)
            return list((await db.execute(query)).scalars().all())


@pytest.fixture
def make(session_factory) -> Factory:
    return Factory(session_factory)
