"""Transaction guard for multi-statement service operations."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.config import get_settings
from preptrack.errors import ConflictError, PrepTrackError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded(
    db: AsyncSession,
    operation: Awaitable[T],
    *,
    timeout: Optional[float] = None,
    name: str = "operation",
) -> T:
    """Run ``operation`` with a timeout, rolling back on any failure.

    Storage errors are translated into domain errors: integrity violations
    become ``ConflictError`` (another request for the same user got there
    first), everything else from the driver or a timeout becomes
    ``TransientError``. Domain errors pass through unchanged.
    """
    if timeout is None:
        timeout = get_settings().operation_timeout_seconds

    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except PrepTrackError:
        await db.rollback()
        raise
    except asyncio.TimeoutError as exc:
        await db.rollback()
        logger.warning("%s timed out after %.1fs", name, timeout)
        raise TransientError(f"{name} timed out") from exc
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("%s lost a concurrent update: %s", name, exc.orig)
        raise ConflictError(f"{name} conflicted with a concurrent request") from exc
    except (DBAPIError, SQLAlchemyError) as exc:
        await db.rollback()
        logger.warning("%s failed in storage: %s", name, exc)
        raise TransientError(f"{name} failed, please retry") from exc
