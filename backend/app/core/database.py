"""Database connection and session management"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def async_database_url(url: str) -> str:
    """Map a plain DATABASE_URL onto the async driver for its backend."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


database_url = async_database_url(settings.DATABASE_URL)

engine = create_async_engine(
    database_url,
    echo=settings.ENVIRONMENT == "development" and settings.LOG_LEVEL == "DEBUG",
    pool_pre_ping=True if "postgresql" in database_url else False,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


def dialect_insert(db: AsyncSession, model):
    """
    INSERT construct for the session's backend, exposing on_conflict_* clauses.

    Both supported backends (SQLite for local dev, Postgres in production)
    implement ON CONFLICT with the same API.
    """
    if db.bind.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert(model)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that fans out over several sessions."""
    return AsyncSessionLocal


async def init_db():
    """Initialize database tables"""
    import app.models  # noqa: F401  (register mappers on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
