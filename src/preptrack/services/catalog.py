"""Item catalog service."""

import logging
from typing import List, Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from preptrack.db.transactions import guarded
from preptrack.errors import InvalidArgumentError, NotFoundError, require_positive_id
from preptrack.models import (
    COMMON_SUBCATEGORIES,
    Item,
    Progress,
    ProgressStatus,
    TestSession,
    parse_category,
    parse_status,
)
from preptrack.schemas.items import (
    ItemCreate,
    ItemUpdate,
    ItemWithProgress,
    PaginatedItems,
    PaginationMeta,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class CatalogService:
    """Read and administer the global item catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, item_id: int) -> Item:
        """Get an item or raise ``NotFoundError``."""
        require_positive_id(item_id, "item_id")
        item = await guarded(self.db, self.db.get(Item, item_id), name="get_item")
        if item is None:
            raise NotFoundError("item not found", {"item_id": item_id})
        return item

    async def get_with_progress(self, user_id: int, item_id: int) -> ItemWithProgress:
        """Get an item merged with the user's progress."""
        require_positive_id(user_id, "user_id")
        require_positive_id(item_id, "item_id")
        result = await guarded(
            self.db,
            self.db.execute(self._with_progress(user_id).where(Item.id == item_id)),
            name="get_item",
        )
        row = result.first()
        if row is None:
            raise NotFoundError("item not found", {"item_id": item_id})
        return ItemWithProgress.from_rows(row[0], row[1])

    async def list_by_filter(
        self,
        user_id: int,
        *,
        category=None,
        subcategory: Optional[str] = None,
        status=None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ItemWithProgress]:
        """List items with the user's status, optionally filtered."""
        require_positive_id(user_id, "user_id")
        self._check_window(limit, offset)
        query = self._filtered(user_id, category, subcategory, status)
        query = query.order_by(Item.created_at.desc(), Item.id.desc())
        if limit is not None:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)

        result = await guarded(self.db, self.db.execute(query), name="list_items")
        return [ItemWithProgress.from_rows(item, progress) for item, progress in result.all()]

    async def count_by_filter(
        self,
        user_id: int,
        *,
        category=None,
        subcategory: Optional[str] = None,
        status=None,
    ) -> int:
        query = self._filtered(user_id, category, subcategory, status).subquery()
        result = await guarded(
            self.db,
            self.db.execute(select(func.count()).select_from(query)),
            name="count_items",
        )
        return int(result.scalar_one())

    async def list_paginated(
        self,
        user_id: int,
        *,
        category=None,
        subcategory: Optional[str] = None,
        status=None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> PaginatedItems:
        """List one page of items plus pagination metadata."""
        limit = DEFAULT_PAGE_SIZE if not limit else limit
        items = await self.list_by_filter(
            user_id,
            category=category,
            subcategory=subcategory,
            status=status,
            limit=limit,
            offset=offset,
        )
        total = await self.count_by_filter(
            user_id, category=category, subcategory=subcategory, status=status
        )
        return PaginatedItems(
            items=items,
            pagination=PaginationMeta(
                total=total,
                limit=limit,
                offset=offset,
                page=offset // limit + 1,
                total_pages=(total + limit - 1) // limit,
                has_next=offset + limit < total,
                has_prev=offset > 0,
            ),
        )

    async def create_item(self, data: ItemCreate) -> Item:
        """Add an item to the catalog."""
        return await guarded(self.db, self._create(data), name="create_item")

    async def _create(self, data: ItemCreate) -> Item:
        item = Item(
            title=data.title.strip(),
            link=data.link.strip(),
            category=data.category,
            subcategory=data.subcategory.strip(),
            attachments=data.attachments or {},
        )
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)
        logger.info("Created item %s (%s/%s)", item.id, item.category.value, item.subcategory)
        return item

    async def update_item(self, item_id: int, data: ItemUpdate) -> Item:
        """Apply a partial update to an item."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise InvalidArgumentError("at least one field must be provided for update")
        for field in ("title", "link", "subcategory"):
            if field in changes and not changes[field].strip():
                raise InvalidArgumentError(f"{field} cannot be empty")

        return await guarded(
            self.db, self._apply_update(item_id, changes), name="update_item"
        )

    async def _apply_update(self, item_id: int, changes: dict) -> Item:
        item = await self.get_by_id(item_id)
        for field, value in changes.items():
            setattr(item, field, value.strip() if isinstance(value, str) else value)

        await self.db.commit()
        await self.db.refresh(item)
        return item

    async def delete_item(self, item_id: int) -> None:
        """Remove an item and every user's progress on it."""
        await guarded(self.db, self._delete(item_id), name="delete_item")
        logger.info("Deleted item %s", item_id)

    async def _delete(self, item_id: int) -> None:
        item = await self.get_by_id(item_id)
        # Not every backend enforces ON DELETE CASCADE
        await self.db.execute(delete(Progress).where(Progress.item_id == item_id))
        await self.db.execute(delete(TestSession).where(TestSession.item_id == item_id))
        await self.db.delete(item)
        await self.db.commit()

    def common_subcategories(self, category) -> List[str]:
        """Suggested subcategories for a category."""
        return list(COMMON_SUBCATEGORIES.get(parse_category(category), ["other"]))

    def _with_progress(self, user_id: int) -> Select:
        return select(Item, Progress).outerjoin(
            Progress,
            and_(Progress.item_id == Item.id, Progress.user_id == user_id),
        )

    def _filtered(
        self,
        user_id: int,
        category,
        subcategory: Optional[str],
        status,
    ) -> Select:
        query = self._with_progress(user_id)
        if category is not None:
            query = query.where(Item.category == parse_category(category))
        if subcategory:
            query = query.where(Item.subcategory == subcategory)
        if status is not None:
            query = query.where(status_clause(parse_status(status)))
        return query

    @staticmethod
    def _check_window(limit: Optional[int], offset: int) -> None:
        if limit is not None and limit < 0:
            raise InvalidArgumentError("limit cannot be negative")
        if offset < 0:
            raise InvalidArgumentError("offset cannot be negative")


def status_clause(status: ProgressStatus):
    """WHERE clause matching a status; a missing progress row counts as pending."""
    if status is ProgressStatus.pending:
        return or_(Progress.id.is_(None), Progress.status == ProgressStatus.pending)
    return Progress.status == status
