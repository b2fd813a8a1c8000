"""
Database session management with SQLAlchemy async
"""

from typing import AsyncGenerator, Optional, Tuple
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_session_factory(
    database_url: Optional[str] = None,
    echo: bool = False
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """
    Create an engine and a session factory for one process.

    The bulk import opens a single long-lived session; the status API opens
    one per request through `get_session`.
    """
    engine = create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=echo,
        poolclass=NullPool,  # One worker, no pooling needed
        future=True
    )
    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )
    return engine, factory


engine, async_session_maker = build_session_factory()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with async_session_maker() as session:
        yield session
