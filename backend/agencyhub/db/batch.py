"""Atomic batch writes.

One ``AsyncSession`` transaction is the unit of atomicity: every write
staged inside ``atomic_batch`` is committed together or not at all.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.exceptions import BatchWriteError

logger = structlog.get_logger()


@asynccontextmanager
async def atomic_batch(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Commit everything staged in the block, or roll all of it back.

    Domain errors raised inside the block propagate unchanged after the
    rollback. Store failures are wrapped in ``BatchWriteError`` so the
    caller knows to retry the whole operation.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("batch_write_failed", operation=operation, error=str(exc))
        raise BatchWriteError(operation) from exc
    except Exception:
        await db.rollback()
        raise
