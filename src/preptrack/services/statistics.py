"""Read-side progress statistics.

All numbers come from one grouped query over ``items LEFT JOIN
user_progress`` for the user, so a missing progress row counts as pending and
results always reflect the current state of the store.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.db.transactions import guarded
from preptrack.errors import require_positive_id
from preptrack.models import Category, Item, Progress, ProgressStatus, parse_category
from preptrack.schemas.stats import (
    CategoryBreakdown,
    CategoryStats,
    DetailedStats,
    Stats,
    SubcategoryStats,
)
from preptrack.services.streaks import StreakEngine

logger = logging.getLogger(__name__)


@dataclass
class Counts:
    total: int = 0
    completed: int = 0

    @property
    def pending(self) -> int:
        return self.total - self.completed

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100

    def add(self, other: "Counts") -> None:
        self.total += other.total
        self.completed += other.completed


GroupKey = Tuple[Category, str]


class StatisticsService:
    """Overall, per-category and per-subcategory progress for a user."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.streaks = StreakEngine(db)

    async def get_overall_stats(self, user_id: int, today: Optional[date] = None) -> Stats:
        require_positive_id(user_id, "user_id")
        return await guarded(
            self.db, self._overall(user_id, today), name="get_overall_stats"
        )

    async def get_category_stats(self, user_id: int, category) -> CategoryStats:
        require_positive_id(user_id, "user_id")
        category = parse_category(category)
        groups = await guarded(
            self.db,
            self._grouped_counts(user_id, category=category),
            name="get_category_stats",
        )
        counts = Counts()
        for group in groups.values():
            counts.add(group)
        return CategoryStats(
            category=category,
            total_items=counts.total,
            completed_items=counts.completed,
            pending_items=counts.pending,
            progress_percentage=counts.percentage,
        )

    async def get_subcategory_stats(
        self, user_id: int, category, subcategory: str
    ) -> SubcategoryStats:
        """Stats for one subcategory; an unknown subcategory yields zeros."""
        require_positive_id(user_id, "user_id")
        category = parse_category(category)
        groups = await guarded(
            self.db,
            self._grouped_counts(user_id, category=category, subcategory=subcategory),
            name="get_subcategory_stats",
        )
        counts = groups.get((category, subcategory), Counts())
        return _subcategory_stats(subcategory, counts)

    async def get_detailed_stats(
        self, user_id: int, today: Optional[date] = None
    ) -> DetailedStats:
        """Overall stats plus every category with its subcategory breakdown."""
        require_positive_id(user_id, "user_id")
        return await guarded(
            self.db, self._detailed(user_id, today), name="get_detailed_stats"
        )

    async def reset_completed_all(self, user_id: int) -> Stats:
        """Zero the user's completed-all counter and return fresh stats."""
        require_positive_id(user_id, "user_id")
        await guarded(
            self.db, self._reset_completed_all(user_id), name="reset_completed_all"
        )
        logger.info("Reset completed-all counter for user %s", user_id)
        return await self.get_overall_stats(user_id)

    async def _overall(self, user_id: int, today: Optional[date]) -> Stats:
        groups = await self._grouped_counts(user_id)
        overall = Counts()
        for counts in groups.values():
            overall.add(counts)
        return await self._with_user_stats(user_id, overall, today)

    async def _detailed(self, user_id: int, today: Optional[date]) -> DetailedStats:
        groups = await self._grouped_counts(user_id)

        overall = Counts()
        categories: List[CategoryBreakdown] = []
        for category in Category:
            category_counts = Counts()
            subcategories = []
            for (group_category, subcategory), counts in sorted(
                groups.items(), key=lambda entry: entry[0][1]
            ):
                if group_category is not category:
                    continue
                category_counts.add(counts)
                subcategories.append(_subcategory_stats(subcategory, counts))

            overall.add(category_counts)
            categories.append(
                CategoryBreakdown(
                    category=category,
                    total_items=category_counts.total,
                    completed_items=category_counts.completed,
                    pending_items=category_counts.pending,
                    progress_percentage=category_counts.percentage,
                    subcategories=subcategories,
                )
            )

        return DetailedStats(
            overall=await self._with_user_stats(user_id, overall, today),
            categories=categories,
        )

    async def _reset_completed_all(self, user_id: int) -> None:
        await self.streaks.reset_completed_all(user_id)
        await self.db.commit()

    async def _with_user_stats(
        self, user_id: int, counts: Counts, today: Optional[date]
    ) -> Stats:
        user_stats = await self.streaks.read_with_lazy_reset(user_id, today)
        # Persist a lazily created row or a streak reset
        await self.db.commit()
        return Stats(
            total_items=counts.total,
            completed_items=counts.completed,
            pending_items=counts.pending,
            progress_percentage=counts.percentage,
            completed_all_count=user_stats.completed_all_count,
            current_streak=user_stats.current_streak,
            longest_streak=user_stats.longest_streak,
        )

    async def _grouped_counts(
        self,
        user_id: int,
        category: Optional[Category] = None,
        subcategory: Optional[str] = None,
    ) -> Dict[GroupKey, Counts]:
        completed = func.sum(
            case((Progress.status == ProgressStatus.done, 1), else_=0)
        )
        query = (
            select(
                Item.category,
                Item.subcategory,
                func.count(Item.id),
                completed,
            )
            .outerjoin(
                Progress,
                and_(Progress.item_id == Item.id, Progress.user_id == user_id),
            )
            .group_by(Item.category, Item.subcategory)
        )
        if category is not None:
            query = query.where(Item.category == category)
        if subcategory is not None:
            query = query.where(Item.subcategory == subcategory)

        result = await self.db.execute(query)
        return {
            (row_category, row_subcategory): Counts(
                total=int(total or 0), completed=int(done or 0)
            )
            for row_category, row_subcategory, total, done in result.all()
        }


def _subcategory_stats(subcategory: str, counts: Counts) -> SubcategoryStats:
    return SubcategoryStats(
        subcategory=subcategory,
        total_items=counts.total,
        completed_items=counts.completed,
        pending_items=counts.pending,
        progress_percentage=counts.percentage,
    )
