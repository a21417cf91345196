"""Pydantic schemas for catalog items and per-user progress."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from preptrack.models import Category, Item, Progress, ProgressStatus


class ItemCreate(BaseModel):
    """Create item request."""

    title: str = Field(min_length=1)
    link: str = Field(min_length=1)
    category: Category
    subcategory: str = Field(min_length=1)
    attachments: Dict[str, str] = {}


class ItemUpdate(BaseModel):
    """Partial item update; at least one field must be set."""

    title: Optional[str] = None
    link: Optional[str] = None
    category: Optional[Category] = None
    subcategory: Optional[str] = None
    attachments: Optional[Dict[str, str]] = None


class StatusUpdate(BaseModel):
    status: ProgressStatus


class NotesUpdate(BaseModel):
    notes: str = ""


class ItemWithProgress(BaseModel):
    """Catalog item merged with one user's progress row."""

    id: int
    title: str
    link: str
    category: Category
    subcategory: str
    attachments: Dict[str, str] = {}
    created_at: datetime
    status: ProgressStatus = ProgressStatus.pending
    starred: bool = False
    notes: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_rows(
        cls, item: Item, progress: Optional[Progress] = None
    ) -> "ItemWithProgress":
        """Build from an item and its (possibly absent) progress row."""
        data = {
            "id": item.id,
            "title": item.title,
            "link": item.link,
            "category": item.category,
            "subcategory": item.subcategory,
            "attachments": item.attachments or {},
            "created_at": item.created_at,
        }
        if progress is not None:
            data.update(
                status=progress.status,
                starred=progress.starred,
                notes=progress.notes or "",
                started_at=progress.started_at,
                completed_at=progress.completed_at,
            )
        return cls(**data)


class ItemList(BaseModel):
    items: List[ItemWithProgress]


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedItems(BaseModel):
    items: List[ItemWithProgress]
    pagination: PaginationMeta


class ResetResult(BaseModel):
    rows_affected: int
    message: str = "All items have been reset to pending"


class SubcategoryList(BaseModel):
    category: Category
    subcategories: List[str]
