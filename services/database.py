from __future__ import annotations

import logging
from typing import Any, AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Driver specific engine arguments for ``database_url``."""
    options: dict[str, Any] = {"echo": settings.DATABASE_ECHO}
    if make_url(database_url).get_backend_name() == "sqlite":
        # aiosqlite runs the connection on a worker thread
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return options


# -----------------------------------------------------------------------------
# Engine and sessions
# -----------------------------------------------------------------------------
engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

# Loaded references stay readable after the mutation commits
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base for every exported entity and its association tables."""


# -----------------------------------------------------------------------------
# Dependency
# -----------------------------------------------------------------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; rolled back if the request fails mid-mutation."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------
async def init_db() -> None:
    """Create the customer, item and order tables if they are missing."""
    # the mappers must be imported before create_all sees their tables
    import models.customer  # noqa: F401
    import models.item  # noqa: F401
    import models.order  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as exc:
        logger.warning("Could not create tables: %s", exc)
        return

    logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def close_db() -> None:
    await engine.dispose()
