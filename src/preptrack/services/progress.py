"""Per-user progress state machine.

Each (user, item) pair moves through ``pending -> in-progress -> done``.
Only ``get_next_item`` and ``skip_item`` may put an item in progress, and a
user has at most one in-progress item at a time. ``done`` is reached only
through ``complete_item``; ``reset_all_for_user`` (or an explicit pending
update) brings items back.

Completion is two-phase: the status write commits first, then the
post-completion hooks (streak update, completed-all counter) run with their
own error channel. A failing hook is logged and never undoes the completion.
"""

import logging
import random
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.db.transactions import guarded
from preptrack.errors import InvalidTransitionError, NotFoundError, require_positive_id
from preptrack.models import ProgressStatus, parse_status
from preptrack.schemas.items import ItemWithProgress
from preptrack.services.catalog import CatalogService
from preptrack.services.progress_store import ProgressStore
from preptrack.services.streaks import StreakEngine

logger = logging.getLogger(__name__)

# (user_id, today, finished_cycle)
PostCompletionHook = Callable[[int, date, bool], Awaitable[None]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressService:
    """Next/skip/complete/status/star/reset operations for one user."""

    def __init__(
        self,
        db: AsyncSession,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.catalog = CatalogService(db)
        self.store = ProgressStore(db)
        self.streaks = StreakEngine(db)
        self.rng = rng or random.Random()
        self.clock = clock
        self.post_completion_hooks: List[PostCompletionHook] = [
            self._record_streak_activity,
            self._check_completed_all,
        ]

    async def get_item(self, user_id: int, item_id: int) -> ItemWithProgress:
        return await self.catalog.get_with_progress(user_id, item_id)

    async def get_next_item(self, user_id: int) -> ItemWithProgress:
        """Return the in-progress item, or start a random pending one."""
        require_positive_id(user_id, "user_id")
        current = await guarded(
            self.db, self.store.get_in_progress(user_id), name="get_next_item"
        )
        if current is not None:
            return ItemWithProgress.from_rows(*current)

        return await guarded(
            self.db,
            self._select_and_promote(user_id, skip_current=False),
            name="get_next_item",
        )

    async def skip_item(self, user_id: int) -> ItemWithProgress:
        """Put the current item back to pending and start a random pending one."""
        require_positive_id(user_id, "user_id")
        return await guarded(
            self.db,
            self._select_and_promote(user_id, skip_current=True),
            name="skip_item",
        )

    async def complete_item(self, user_id: int, item_id: int) -> ItemWithProgress:
        """Mark an item done, then run the post-completion hooks."""
        require_positive_id(user_id, "user_id")
        require_positive_id(item_id, "item_id")
        now = self.clock()

        result, finished_cycle = await guarded(
            self.db,
            self._mark_done(user_id, item_id, now),
            name="complete_item",
        )
        await self._run_post_completion_hooks(user_id, now.date(), finished_cycle)
        return result

    async def update_status(self, user_id: int, item_id: int, status) -> ItemWithProgress:
        """Set an item's status to pending or done."""
        require_positive_id(user_id, "user_id")
        require_positive_id(item_id, "item_id")
        status = parse_status(status)

        if status is ProgressStatus.in_progress:
            raise InvalidTransitionError(
                "cannot set status to in-progress directly; use next or skip instead",
                {"item_id": item_id, "status": status.value},
            )
        if status is ProgressStatus.done:
            return await self.complete_item(user_id, item_id)

        return await guarded(
            self.db,
            self._write(
                user_id,
                item_id,
                status=ProgressStatus.pending,
                started_at=None,
                completed_at=None,
            ),
            name="update_status",
        )

    async def toggle_star(self, user_id: int, item_id: int) -> ItemWithProgress:
        """Flip the starred flag; status is unaffected."""
        require_positive_id(user_id, "user_id")
        require_positive_id(item_id, "item_id")
        return await guarded(
            self.db, self._toggle_star(user_id, item_id), name="toggle_star"
        )

    async def update_notes(self, user_id: int, item_id: int, notes: str) -> ItemWithProgress:
        require_positive_id(user_id, "user_id")
        require_positive_id(item_id, "item_id")
        return await guarded(
            self.db,
            self._write(user_id, item_id, notes=notes or ""),
            name="update_notes",
        )

    async def reset_all_for_user(self, user_id: int) -> int:
        """Return every item of the user to pending.

        Starred flags, notes and the user's streak/completed-all counters
        are left untouched.
        """
        require_positive_id(user_id, "user_id")
        rows = await guarded(self.db, self._reset_all(user_id), name="reset_all")
        logger.info("Reset %s progress rows for user %s", rows, user_id)
        return rows

    async def _select_and_promote(self, user_id: int, skip_current: bool) -> ItemWithProgress:
        await self.store.lock_user(user_id)

        if skip_current:
            skipped = await self.store.demote_in_progress(user_id)
            if skipped:
                logger.debug("User %s skipped their current item", user_id)
        else:
            # A concurrent request may have promoted an item before we got the lock
            current = await self.store.get_in_progress(user_id)
            if current is not None:
                await self.db.commit()
                return ItemWithProgress.from_rows(*current)
            await self.store.demote_in_progress(user_id)

        candidates = await self.store.pending_item_ids(user_id)
        if not candidates:
            raise NotFoundError("no pending items found", {"user_id": user_id})

        item_id = self.rng.choice(candidates)
        item = await self.catalog.get_by_id(item_id)
        progress = await self.store.upsert(
            user_id,
            item_id,
            status=ProgressStatus.in_progress,
            started_at=self.clock(),
            completed_at=None,
        )
        result = ItemWithProgress.from_rows(item, progress)
        await self.db.commit()

        logger.info("User %s started item %s", user_id, item_id)
        return result

    async def _mark_done(
        self, user_id: int, item_id: int, now: datetime
    ) -> Tuple[ItemWithProgress, bool]:
        item = await self.catalog.get_by_id(item_id)
        await self.store.lock_user(user_id)

        existing = await self.store.get(user_id, item_id)
        was_done = existing is not None and existing.status is ProgressStatus.done

        progress = await self.store.upsert(
            user_id,
            item_id,
            status=ProgressStatus.done,
            completed_at=now,
        )
        result = ItemWithProgress.from_rows(item, progress)

        # Counted under the user lock so concurrent completions see each other
        finished_cycle = False
        if not was_done:
            finished_cycle = await self.store.count_pending_for_user(user_id) == 0
        await self.db.commit()

        logger.info("User %s completed item %s", user_id, item_id)
        return result, finished_cycle

    async def _write(self, user_id: int, item_id: int, **fields) -> ItemWithProgress:
        item = await self.catalog.get_by_id(item_id)
        progress = await self.store.upsert(user_id, item_id, **fields)
        result = ItemWithProgress.from_rows(item, progress)
        await self.db.commit()
        return result

    async def _toggle_star(self, user_id: int, item_id: int) -> ItemWithProgress:
        item = await self.catalog.get_by_id(item_id)
        existing = await self.store.get(user_id, item_id)
        starred = not (existing is not None and existing.starred)
        progress = await self.store.upsert(user_id, item_id, starred=starred)
        result = ItemWithProgress.from_rows(item, progress)
        await self.db.commit()
        return result

    async def _reset_all(self, user_id: int) -> int:
        await self.store.lock_user(user_id)
        rows = await self.store.reset_all(user_id, self.clock())
        await self.db.commit()
        return rows

    async def _run_post_completion_hooks(
        self, user_id: int, today: date, finished_cycle: bool
    ) -> None:
        for hook in self.post_completion_hooks:
            try:
                await hook(user_id, today, finished_cycle)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                logger.exception(
                    "Post-completion hook %s failed for user %s",
                    getattr(hook, "__name__", repr(hook)),
                    user_id,
                )

    async def _record_streak_activity(
        self, user_id: int, today: date, finished_cycle: bool
    ) -> None:
        await self.streaks.record_activity(user_id, today)

    async def _check_completed_all(
        self, user_id: int, today: date, finished_cycle: bool
    ) -> None:
        if finished_cycle:
            await self.streaks.increment_completed_all(user_id)
