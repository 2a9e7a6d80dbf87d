from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from goaltracker.config import settings
from goaltracker.kernel.store import SqlEventStore


def normalize_database_url(url: str) -> str:
    """Route bare Postgres URLs through asyncpg; other drivers pass through."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return url.replace(prefix, "postgresql+asyncpg://", 1)
    return url


engine = create_async_engine(normalize_database_url(settings.database_url), pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_store() -> SqlEventStore:
    """FastAPI dependency: the SQL-backed event store bound to the shared engine."""
    return SqlEventStore(async_session)
