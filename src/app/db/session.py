from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings


def build_engine(database_url: str = settings.database_url) -> AsyncEngine:
    # Event summaries hold patient names: never echo SQL parameters outside development.
    return create_async_engine(
        database_url,
        echo=(settings.db_echo if settings.app_env.lower() == "development" else False),
        future=True,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Background jobs read attributes after commit.
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine = build_engine()
AsyncSessionLocal = build_sessionmaker(async_engine)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
