import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

logger = logging.getLogger(__name__)

# session.info key holding notifiers with unpublished rows
PENDING_OUTBOXES = "pending_outboxes"

DATABASE_URL = str(settings.database_url)

db_engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def transactional(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block of writes as one unit.

    Commits when the block exits cleanly and rolls back on any exception, so a
    cascade that fails halfway leaves nothing behind.

    Notification outboxes registered on the session are emptied on rollback so
    rows that never committed are not published.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        for outbox in session.info.pop(PENDING_OUTBOXES, ()):
            outbox.discard()
        raise
    session.info.pop(PENDING_OUTBOXES, None)


# Function to initialize the database (create tables)
async def init_db():
    # Import models so they register on Base.metadata
    import database.models  # noqa: F401

    logger.info("Initializing database schema")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()
