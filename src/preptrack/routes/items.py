"""Catalog and progress endpoints."""

from typing import Optional

from preptrack.auth import get_current_user, require_admin
from preptrack.db.base import get_db
from preptrack.models import Category, ProgressStatus
from preptrack.schemas.items import (
    ItemCreate,
    ItemList,
    ItemUpdate,
    ItemWithProgress,
    NotesUpdate,
    PaginatedItems,
    ResetResult,
    StatusUpdate,
    SubcategoryList,
)
from preptrack.services.catalog import CatalogService
from preptrack.services.progress import ProgressService
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("", response_model=ItemList)
async def list_items(
    category: Optional[Category] = Query(None),
    subcategory: Optional[str] = Query(None),
    status: Optional[ProgressStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemList:
    """List items with the caller's progress, optionally filtered."""
    service = CatalogService(db)
    items = await service.list_by_filter(
        user_id,
        category=category,
        subcategory=subcategory,
        status=status,
        limit=limit,
        offset=offset,
    )
    return ItemList(items=items)


@router.get("/paginated", response_model=PaginatedItems)
async def list_items_paginated(
    category: Optional[Category] = Query(None),
    subcategory: Optional[str] = Query(None),
    status: Optional[ProgressStatus] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PaginatedItems:
    service = CatalogService(db)
    return await service.list_paginated(
        user_id,
        category=category,
        subcategory=subcategory,
        status=status,
        limit=limit,
        offset=offset,
    )


@router.get("/next", response_model=ItemWithProgress)
async def get_next_item(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    """Current in-progress item, or a newly started random pending one."""
    service = ProgressService(db)
    return await service.get_next_item(user_id)


@router.post("/skip", response_model=ItemWithProgress)
async def skip_item(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    service = ProgressService(db)
    return await service.skip_item(user_id)


@router.post("/reset", response_model=ResetResult)
async def reset_all(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ResetResult:
    """Return all of the caller's items to pending."""
    service = ProgressService(db)
    rows = await service.reset_all_for_user(user_id)
    return ResetResult(rows_affected=rows)


@router.get("/subcategories/{category}", response_model=SubcategoryList)
async def get_subcategories(
    category: Category,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SubcategoryList:
    service = CatalogService(db)
    return SubcategoryList(
        category=category,
        subcategories=service.common_subcategories(category),
    )


@router.post("", response_model=ItemWithProgress, status_code=201)
async def create_item(
    request: ItemCreate,
    user_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    """Add an item to the catalog (admin only)."""
    service = CatalogService(db)
    item = await service.create_item(request)
    return ItemWithProgress.from_rows(item)


@router.get("/{item_id}", response_model=ItemWithProgress)
async def get_item(
    item_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    service = ProgressService(db)
    return await service.get_item(user_id, item_id)


@router.put("/{item_id}", response_model=ItemWithProgress)
async def update_item(
    item_id: int,
    request: ItemUpdate,
    user_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    """Edit a catalog item (admin only)."""
    service = CatalogService(db)
    await service.update_item(item_id, request)
    return await service.get_with_progress(user_id, item_id)


@router.delete("/{item_id}", status_code=204)
async def delete_item(
    item_id: int,
    user_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Remove a catalog item and all progress on it (admin only)."""
    service = CatalogService(db)
    await service.delete_item(item_id)
    return Response(status_code=204)


@router.put("/{item_id}/complete", response_model=ItemWithProgress)
async def complete_item(
    item_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    service = ProgressService(db)
    return await service.complete_item(user_id, item_id)


@router.put("/{item_id}/star", response_model=ItemWithProgress)
async def toggle_star(
    item_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    service = ProgressService(db)
    return await service.toggle_star(user_id, item_id)


@router.put("/{item_id}/status", response_model=ItemWithProgress)
async def update_status(
    item_id: int,
    request: StatusUpdate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    """Set status to pending or done; in-progress is rejected."""
    service = ProgressService(db)
    return await service.update_status(user_id, item_id, request.status)


@router.put("/{item_id}/notes", response_model=ItemWithProgress)
async def update_notes(
    item_id: int,
    request: NotesUpdate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ItemWithProgress:
    service = ProgressService(db)
    return await service.update_notes(user_id, item_id, request.notes)
