from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def _create_engine() -> AsyncEngine:
    return create_async_engine(str(settings.database_url), echo=settings.debug)


def _create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


engine: AsyncEngine = _create_engine()
SessionLocal = _create_session_factory(engine)
