"""Tests for the per-user progress state machine."""

import logging
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from preptrack.errors import InvalidArgumentError, InvalidTransitionError, NotFoundError
from preptrack.models import Progress, ProgressStatus
from preptrack.services.progress import ProgressService
from preptrack.services.progress_store import ProgressStore
from preptrack.services.streaks import load_user_stats


async def count_in_progress(db_session, user_id):
    result = await db_session.execute(
        select(func.count(Progress.id)).where(
            Progress.user_id == user_id,
            Progress.status == ProgressStatus.in_progress,
        )
    )
    return result.scalar_one()


@pytest.fixture
def service(db_session, rng, clock):
    return ProgressService(db_session, rng=rng, clock=clock)


class TestNextAndSkip:
    """Selecting and promoting the next item."""

    @pytest.mark.asyncio
    async def test_next_promotes_a_pending_item(self, service, catalog, user_id, clock):
        item = await service.get_next_item(user_id)

        assert item.status is ProgressStatus.in_progress
        assert item.started_at is not None
        assert item.id in {i.id for i in catalog}

    @pytest.mark.asyncio
    async def test_next_is_a_peek_while_in_progress(self, service, catalog, user_id):
        first = await service.get_next_item(user_id)
        second = await service.get_next_item(user_id)

        assert second.id == first.id
        assert second.status is ProgressStatus.in_progress

    @pytest.mark.asyncio
    async def test_skip_moves_to_another_item(self, service, db_session, catalog, user_id):
        first = await service.get_next_item(user_id)
        skipped_to = await service.skip_item(user_id)

        assert skipped_to.status is ProgressStatus.in_progress
        assert await count_in_progress(db_session, user_id) == 1

        store = ProgressStore(db_session)
        previous = await store.get(user_id, first.id)
        if skipped_to.id != first.id:
            assert previous.status is ProgressStatus.pending
            assert previous.started_at is None

    @pytest.mark.asyncio
    async def test_at_most_one_in_progress_item(
        self, service, db_session, catalog, user_id
    ):
        await service.get_next_item(user_id)
        for _ in range(15):
            await service.skip_item(user_id)
            assert await count_in_progress(db_session, user_id) == 1

        current = await service.get_next_item(user_id)
        await service.complete_item(user_id, current.id)
        assert await count_in_progress(db_session, user_id) == 0

        await service.get_next_item(user_id)
        assert await count_in_progress(db_session, user_id) == 1

    @pytest.mark.asyncio
    async def test_selection_only_from_pending(self, service, catalog, user_id):
        for item in catalog[:-1]:
            await service.complete_item(user_id, item.id)

        chosen = await service.get_next_item(user_id)
        assert chosen.id == catalog[-1].id

    @pytest.mark.asyncio
    async def test_next_without_pending_items(self, service, catalog, user_id):
        for item in catalog:
            await service.complete_item(user_id, item.id)

        with pytest.raises(NotFoundError):
            await service.get_next_item(user_id)
        with pytest.raises(NotFoundError):
            await service.skip_item(user_id)

    @pytest.mark.asyncio
    async def test_next_on_empty_catalog(self, service, user_id):
        with pytest.raises(NotFoundError):
            await service.get_next_item(user_id)

    @pytest.mark.asyncio
    async def test_users_are_independent(
        self, service, db_session, catalog, user_id, other_user_id
    ):
        mine = await service.get_next_item(user_id)
        await service.complete_item(user_id, mine.id)

        theirs = await service.get_item(other_user_id, mine.id)
        assert theirs.status is ProgressStatus.pending
        assert await count_in_progress(db_session, other_user_id) == 0

    @pytest.mark.asyncio
    async def test_database_rejects_second_in_progress_row(
        self, db_session, catalog, user_id
    ):
        db_session.add_all(
            [
                Progress(
                    user_id=user_id,
                    item_id=catalog[0].id,
                    status=ProgressStatus.in_progress,
                ),
                Progress(
                    user_id=user_id,
                    item_id=catalog[1].id,
                    status=ProgressStatus.in_progress,
                ),
            ]
        )
        with pytest.raises(IntegrityError):
            await db_session.flush()


class TestCompletion:
    """Completing items and the post-completion hooks."""

    @pytest.mark.asyncio
    async def test_complete_sets_done(self, service, catalog, user_id, clock):
        item = await service.complete_item(user_id, catalog[0].id)

        assert item.status is ProgressStatus.done
        assert item.completed_at == clock.now

    @pytest.mark.asyncio
    async def test_complete_records_streak(self, service, db_session, catalog, user_id):
        await service.complete_item(user_id, catalog[0].id)

        stats = await load_user_stats(db_session, user_id)
        assert stats.current_streak == 1
        assert stats.last_activity_date == date(2026, 3, 10)

    @pytest.mark.asyncio
    async def test_complete_twice_same_day(
        self, service, db_session, catalog, user_id, clock
    ):
        first = await service.complete_item(user_id, catalog[0].id)
        clock.advance(hours=2)
        second = await service.complete_item(user_id, catalog[0].id)

        assert second.completed_at > first.completed_at
        stats = await load_user_stats(db_session, user_id)
        assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_completions_on_consecutive_days(
        self, service, db_session, catalog, user_id, clock
    ):
        await service.complete_item(user_id, catalog[0].id)
        clock.advance(days=1)
        await service.complete_item(user_id, catalog[1].id)

        stats = await load_user_stats(db_session, user_id)
        assert stats.current_streak == 2
        assert stats.longest_streak == 2

    @pytest.mark.asyncio
    async def test_complete_unknown_item(self, service, catalog, user_id):
        with pytest.raises(NotFoundError):
            await service.complete_item(user_id, 9999)

    @pytest.mark.asyncio
    async def test_completing_the_last_item_counts_a_cycle(
        self, service, db_session, catalog, user_id
    ):
        for item in catalog[:-1]:
            await service.complete_item(user_id, item.id)
        stats = await load_user_stats(db_session, user_id)
        assert stats.completed_all_count == 0

        await service.complete_item(user_id, catalog[-1].id)
        stats = await load_user_stats(db_session, user_id)
        assert stats.completed_all_count == 1

        # Re-completing a done item is not a new cycle
        await service.complete_item(user_id, catalog[-1].id)
        stats = await load_user_stats(db_session, user_id)
        assert stats.completed_all_count == 1

        rows = await service.reset_all_for_user(user_id)
        assert rows == len(catalog)
        stats = await load_user_stats(db_session, user_id)
        assert stats.completed_all_count == 1

        pending = await ProgressStore(db_session).count_pending_for_user(user_id)
        assert pending == len(catalog)

    @pytest.mark.asyncio
    async def test_racing_final_completions_count_one_cycle(
        self, service, session_factory, catalog, user_id, clock
    ):
        for item in catalog[:-2]:
            await service.complete_item(user_id, item.id)

        now = clock()
        async with session_factory() as first_db, session_factory() as second_db:
            first = ProgressService(first_db, clock=clock)
            second = ProgressService(second_db, clock=clock)

            # Both primary writes commit before either runs its hooks
            _, first_finished = await first._mark_done(user_id, catalog[-2].id, now)
            _, second_finished = await second._mark_done(user_id, catalog[-1].id, now)
            await first._run_post_completion_hooks(user_id, now.date(), first_finished)
            await second._run_post_completion_hooks(
                user_id, now.date(), second_finished
            )

        assert (first_finished, second_finished) == (False, True)
        async with session_factory() as check_db:
            stats = await load_user_stats(check_db, user_id)
            assert stats.completed_all_count == 1
            assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_undo_completion(
        self, service, db_session, catalog, user_id, caplog
    ):
        async def broken_hook(user_id, today, finished_cycle):
            raise RuntimeError("stats store unavailable")

        service.post_completion_hooks = [broken_hook, service._record_streak_activity]

        with caplog.at_level(logging.ERROR, logger="preptrack.services.progress"):
            item = await service.complete_item(user_id, catalog[0].id)

        assert item.status is ProgressStatus.done
        stored = await ProgressStore(db_session).get(user_id, catalog[0].id)
        assert stored.status is ProgressStatus.done
        assert "broken_hook" in caplog.text

        # Later hooks still run
        stats = await load_user_stats(db_session, user_id)
        assert stats.current_streak == 1


class TestStatusUpdates:
    """Explicit status, star and notes writes."""

    @pytest.mark.asyncio
    async def test_in_progress_target_rejected(self, service, catalog, user_id):
        with pytest.raises(InvalidTransitionError):
            await service.update_status(user_id, catalog[0].id, "in-progress")

        await service.get_next_item(user_id)
        with pytest.raises(InvalidTransitionError):
            await service.update_status(
                user_id, catalog[1].id, ProgressStatus.in_progress
            )

    @pytest.mark.asyncio
    async def test_done_target_runs_completion(
        self, service, db_session, catalog, user_id
    ):
        item = await service.update_status(user_id, catalog[0].id, "done")

        assert item.status is ProgressStatus.done
        stats = await load_user_stats(db_session, user_id)
        assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_pending_target_clears_timestamps(self, service, catalog, user_id):
        await service.complete_item(user_id, catalog[0].id)

        item = await service.update_status(user_id, catalog[0].id, "pending")

        assert item.status is ProgressStatus.pending
        assert item.completed_at is None
        assert item.started_at is None

    @pytest.mark.asyncio
    async def test_unknown_status_value(self, service, catalog, user_id):
        with pytest.raises(InvalidArgumentError):
            await service.update_status(user_id, catalog[0].id, "finished")

    @pytest.mark.asyncio
    async def test_toggle_star_keeps_status(self, service, catalog, user_id):
        current = await service.get_next_item(user_id)

        starred = await service.toggle_star(user_id, current.id)
        assert starred.starred is True
        assert starred.status is ProgressStatus.in_progress

        unstarred = await service.toggle_star(user_id, current.id)
        assert unstarred.starred is False

    @pytest.mark.asyncio
    async def test_toggle_star_without_progress_row(self, service, catalog, user_id):
        item = await service.toggle_star(user_id, catalog[3].id)

        assert item.starred is True
        assert item.status is ProgressStatus.pending

    @pytest.mark.asyncio
    async def test_toggle_star_unknown_item(self, service, catalog, user_id):
        with pytest.raises(NotFoundError):
            await service.toggle_star(user_id, 4242)

    @pytest.mark.asyncio
    async def test_update_notes(self, service, catalog, user_id):
        item = await service.update_notes(user_id, catalog[0].id, "use a hash map")

        assert item.notes == "use a hash map"
        assert item.status is ProgressStatus.pending

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", [0, -3])
    async def test_non_positive_ids_rejected(self, service, catalog, bad_id):
        with pytest.raises(InvalidArgumentError):
            await service.get_next_item(bad_id)
        with pytest.raises(InvalidArgumentError):
            await service.complete_item(1, bad_id)


class TestResetAll:
    """Bulk reset of a user's progress."""

    @pytest.mark.asyncio
    async def test_reset_keeps_star_and_notes(self, service, db_session, catalog, user_id):
        await service.complete_item(user_id, catalog[0].id)
        await service.toggle_star(user_id, catalog[0].id)
        await service.update_notes(user_id, catalog[0].id, "revisit")
        await service.get_next_item(user_id)

        rows = await service.reset_all_for_user(user_id)

        assert rows == 2
        item = await service.get_item(user_id, catalog[0].id)
        assert item.status is ProgressStatus.pending
        assert item.completed_at is None
        assert item.starred is True
        assert item.notes == "revisit"
        assert await count_in_progress(db_session, user_id) == 0

    @pytest.mark.asyncio
    async def test_reset_keeps_streaks(self, service, db_session, catalog, user_id):
        await service.complete_item(user_id, catalog[0].id)

        await service.reset_all_for_user(user_id)

        stats = await load_user_stats(db_session, user_id)
        assert stats.current_streak == 1
        assert stats.longest_streak == 1

    @pytest.mark.asyncio
    async def test_reset_with_nothing_to_do(self, service, catalog, user_id):
        assert await service.reset_all_for_user(user_id) == 0


@pytest.mark.asyncio
async def test_list_for_user_only_has_explicit_rows(service, db_session, catalog, user_id):
    await service.complete_item(user_id, catalog[0].id)
    await service.toggle_star(user_id, catalog[1].id)
    store = ProgressStore(db_session)

    rows = await store.list_for_user(user_id)
    done = await store.list_for_user(user_id, ProgressStatus.done)

    assert [row.item_id for row in rows] == sorted([catalog[0].id, catalog[1].id])
    assert [row.item_id for row in done] == [catalog[0].id]
