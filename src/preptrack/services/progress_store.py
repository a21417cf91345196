"""Reads and writes of per-user progress rows."""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.models import Item, Progress, ProgressStatus
from preptrack.services.catalog import status_clause
from preptrack.services.streaks import load_user_stats

# Marker for "leave this column alone" in upsert
UNCHANGED: Any = object()


class ProgressStore:
    """Persistence for ``Progress`` rows, one per (user, item)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def lock_user(self, user_id: int) -> None:
        """Serialize state-machine writes for one user within this transaction."""
        await load_user_stats(self.db, user_id, for_update=True)

    async def get(self, user_id: int, item_id: int) -> Optional[Progress]:
        result = await self.db.execute(
            select(Progress).where(
                Progress.user_id == user_id,
                Progress.item_id == item_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_in_progress(self, user_id: int) -> Optional[Tuple[Item, Progress]]:
        """The user's current item, if any."""
        result = await self.db.execute(
            select(Item, Progress)
            .join(Progress, Progress.item_id == Item.id)
            .where(
                Progress.user_id == user_id,
                Progress.status == ProgressStatus.in_progress,
            )
            .order_by(Progress.updated_at.desc())
            .limit(1)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def upsert(
        self,
        user_id: int,
        item_id: int,
        *,
        status: Optional[ProgressStatus] = None,
        starred: Optional[bool] = None,
        notes: Optional[str] = None,
        started_at: Any = UNCHANGED,
        completed_at: Any = UNCHANGED,
    ) -> Progress:
        """Create or update the (user, item) row with the given fields."""
        progress = await self.get(user_id, item_id)
        if progress is None:
            progress = Progress(
                user_id=user_id,
                item_id=item_id,
                status=ProgressStatus.pending,
                starred=False,
                notes="",
            )
            self.db.add(progress)

        if status is not None:
            progress.status = status
        if starred is not None:
            progress.starred = starred
        if notes is not None:
            progress.notes = notes
        if started_at is not UNCHANGED:
            progress.started_at = started_at
        if completed_at is not UNCHANGED:
            progress.completed_at = completed_at

        await self.db.flush()
        return progress

    async def list_for_user(
        self, user_id: int, status: Optional[ProgressStatus] = None
    ) -> List[Progress]:
        """Explicit progress rows for a user (absent rows are not listed)."""
        query = select(Progress).where(Progress.user_id == user_id)
        if status is not None:
            query = query.where(Progress.status == status)
        result = await self.db.execute(query.order_by(Progress.item_id))
        return list(result.scalars().all())

    async def pending_item_ids(self, user_id: int) -> List[int]:
        """Ids of items the user has not started, absent rows included."""
        result = await self.db.execute(
            select(Item.id)
            .outerjoin(
                Progress,
                and_(Progress.item_id == Item.id, Progress.user_id == user_id),
            )
            .where(status_clause(ProgressStatus.pending))
            .order_by(Item.id)
        )
        return list(result.scalars().all())

    async def count_pending_for_user(self, user_id: int) -> int:
        """Number of catalog items not yet done by the user."""
        result = await self.db.execute(
            select(func.count(Item.id))
            .outerjoin(
                Progress,
                and_(Progress.item_id == Item.id, Progress.user_id == user_id),
            )
            .where(or_(Progress.id.is_(None), Progress.status != ProgressStatus.done))
        )
        return int(result.scalar_one())

    async def demote_in_progress(self, user_id: int) -> int:
        """Move every in-progress row of the user back to pending."""
        result = await self.db.execute(
            update(Progress)
            .where(
                Progress.user_id == user_id,
                Progress.status == ProgressStatus.in_progress,
            )
            .values(status=ProgressStatus.pending, started_at=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def reset_all(self, user_id: int, now: datetime) -> int:
        """Return all of a user's rows to pending; starred and notes are kept."""
        result = await self.db.execute(
            update(Progress)
            .where(
                Progress.user_id == user_id,
                or_(
                    Progress.status != ProgressStatus.pending,
                    Progress.started_at.is_not(None),
                    Progress.completed_at.is_not(None),
                ),
            )
            .values(
                status=ProgressStatus.pending,
                started_at=None,
                completed_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
