"""Engine, session factory and the process-wide record store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from fidelya_api.core.settings import settings
from fidelya_api.db.store import RecordStore


def build_engine(database_url: str | None = None) -> AsyncEngine:
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
        future=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def build_record_store(session_factory: async_sessionmaker[AsyncSession]) -> RecordStore:
    return RecordStore(
        session_factory,
        max_attempts=settings.record_store_max_attempts,
        backoff_seconds=settings.record_store_retry_backoff_seconds,
    )


engine = build_engine()
async_session = build_session_factory(engine)
record_store = build_record_store(async_session)


def get_record_store() -> RecordStore:
    """FastAPI dependency returning the shared record store."""

    return record_store
