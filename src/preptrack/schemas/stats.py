"""Statistics response schemas."""

from typing import List

from pydantic import BaseModel

from preptrack.models import Category


class Stats(BaseModel):
    """Overall progress for a user."""

    total_items: int
    completed_items: int
    pending_items: int
    progress_percentage: float
    completed_all_count: int = 0
    current_streak: int = 0
    longest_streak: int = 0


class CategoryStats(BaseModel):
    category: Category
    total_items: int
    completed_items: int
    pending_items: int
    progress_percentage: float


class SubcategoryStats(BaseModel):
    subcategory: str
    total_items: int
    completed_items: int
    pending_items: int
    progress_percentage: float


class CategoryBreakdown(CategoryStats):
    """Category stats with nested subcategory stats."""

    subcategories: List[SubcategoryStats] = []


class DetailedStats(BaseModel):
    overall: Stats
    categories: List[CategoryBreakdown]
