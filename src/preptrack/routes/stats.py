"""Progress statistics endpoints."""

from preptrack.auth import get_current_user
from preptrack.db.base import get_db
from preptrack.models import Category
from preptrack.schemas.stats import CategoryStats, DetailedStats, Stats, SubcategoryStats
from preptrack.services.statistics import StatisticsService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("", response_model=Stats)
async def get_stats(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Stats:
    """Overall progress, streaks and completed-all count."""
    service = StatisticsService(db)
    return await service.get_overall_stats(user_id)


@router.get("/detailed", response_model=DetailedStats)
async def get_detailed_stats(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DetailedStats:
    service = StatisticsService(db)
    return await service.get_detailed_stats(user_id)


@router.get("/category/{category}", response_model=CategoryStats)
async def get_category_stats(
    category: Category,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryStats:
    service = StatisticsService(db)
    return await service.get_category_stats(user_id, category)


@router.get(
    "/category/{category}/subcategory/{subcategory}",
    response_model=SubcategoryStats,
)
async def get_subcategory_stats(
    category: Category,
    subcategory: str,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SubcategoryStats:
    service = StatisticsService(db)
    return await service.get_subcategory_stats(user_id, category, subcategory)


@router.post("/reset-completed-all", response_model=Stats)
async def reset_completed_all(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Stats:
    """Zero the completed-all counter."""
    service = StatisticsService(db)
    return await service.reset_completed_all(user_id)
