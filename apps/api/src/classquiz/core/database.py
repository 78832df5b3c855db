"""
Database Configuration

Async SQLAlchemy engine, session factory and declarative base.
Sessions are request-scoped and always passed explicitly into
repositories and services.
"""

import logging
from collections.abc import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from classquiz.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that yields a database session.

    The session is rolled back if the request handler raises, and always closed.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Verify connectivity and create missing tables.

    Schema migrations are out of scope for this service, so tables are
    created straight from the model metadata.
    """
    # Import models so they are registered on the metadata
    from classquiz.modules.identity import models as _identity  # noqa: F401
    from classquiz.modules.invitations import models as _invitations  # noqa: F401
    from classquiz.modules.quizzes import models as _quizzes  # noqa: F401
    from classquiz.modules.schools import models as _schools  # noqa: F401
    from classquiz.modules.users import models as _users  # noqa: F401

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized")


async def close_db() -> None:
    """Dispose of the connection pool."""
    await engine.dispose()
