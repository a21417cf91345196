"""Daily activity streaks and completion-cycle counters.

A streak counts consecutive UTC calendar days with at least one completed
item. Streaks are advanced only by completions (``record_activity``) and are
lazily zeroed when read after a missed day (``read_with_lazy_reset``), so no
background job is needed. Methods here flush but never commit; the calling
service owns the transaction.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.errors import require_positive_id
from preptrack.models import UserStats

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


async def load_user_stats(
    db: AsyncSession, user_id: int, *, for_update: bool = False
) -> UserStats:
    """Fetch the user's stats row, creating an empty one if missing.

    With ``for_update`` the row is locked until the transaction ends, which
    serializes writers for the same user on backends that support it.
    """
    query = select(UserStats).where(UserStats.user_id == user_id)
    if for_update:
        # Locked reads must not reuse values cached in the identity map
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    stats = result.scalar_one_or_none()
    if stats is None:
        stats = UserStats(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            completed_all_count=0,
        )
        db.add(stats)
        await db.flush()
    return stats


class StreakEngine:
    """Maintains ``current_streak``, ``longest_streak`` and ``last_activity_date``."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def has_activity_today(self, user_id: int, today: Optional[date] = None) -> bool:
        today = today or utc_today()
        stats = await load_user_stats(self.db, user_id)
        return stats.last_activity_date is not None and stats.last_activity_date >= today

    async def record_activity(self, user_id: int, today: Optional[date] = None) -> UserStats:
        """Register a completion on ``today``; repeated calls on one day are no-ops."""
        require_positive_id(user_id, "user_id")
        today = today or utc_today()
        stats = await load_user_stats(self.db, user_id, for_update=True)
        last = stats.last_activity_date

        if last is not None and last >= today:
            return stats

        if last == today - ONE_DAY:
            stats.current_streak += 1
        else:
            stats.current_streak = 1
        stats.last_activity_date = today
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)

        await self.db.flush()
        logger.debug(
            "User %s streak now %s (longest %s)",
            user_id,
            stats.current_streak,
            stats.longest_streak,
        )
        return stats

    async def read_with_lazy_reset(
        self, user_id: int, today: Optional[date] = None
    ) -> UserStats:
        """Return the user's stats with the current streak accurate as of ``today``."""
        require_positive_id(user_id, "user_id")
        today = today or utc_today()
        stats = await load_user_stats(self.db, user_id)
        last = stats.last_activity_date

        if last is not None and last < today - ONE_DAY and stats.current_streak != 0:
            logger.info(
                "Resetting streak of %s for user %s (last activity %s)",
                stats.current_streak,
                user_id,
                last.isoformat(),
            )
            stats.current_streak = 0
            await self.db.flush()
        return stats

    async def increment_completed_all(self, user_id: int) -> UserStats:
        stats = await load_user_stats(self.db, user_id, for_update=True)
        stats.completed_all_count += 1
        await self.db.flush()
        logger.info(
            "User %s completed the whole catalog (%s times)",
            user_id,
            stats.completed_all_count,
        )
        return stats

    async def reset_completed_all(self, user_id: int) -> UserStats:
        require_positive_id(user_id, "user_id")
        stats = await load_user_stats(self.db, user_id, for_update=True)
        stats.completed_all_count = 0
        await self.db.flush()
        return stats
