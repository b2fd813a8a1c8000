"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.database import get_session
from ingestion.checkpoint import CheckpointManager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_checkpoint_manager() -> CheckpointManager:
    """Read-side view of the import checkpoint; the API never writes it."""
    manager = CheckpointManager(settings.CHECKPOINT_DIR)
    manager.load()
    return manager
