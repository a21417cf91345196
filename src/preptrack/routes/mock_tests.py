"""Mock test endpoints."""

from typing import Optional

from preptrack.auth import get_current_user
from preptrack.db.base import get_db
from preptrack.schemas.mock_tests import ActiveTest, CanCreateTest, CreateTestResponse
from preptrack.services.test_sessions import TestSessionService
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("/can-create", response_model=CanCreateTest)
async def can_create_test(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CanCreateTest:
    service = TestSessionService(db)
    return CanCreateTest(can_create=await service.can_create(user_id))


@router.post("", response_model=CreateTestResponse, status_code=status.HTTP_201_CREATED)
async def create_test(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CreateTestResponse:
    """Start a mock test from randomly chosen completed items."""
    service = TestSessionService(db)
    return await service.create_test(user_id)


@router.get("/active", response_model=Optional[ActiveTest])
async def get_active_test(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Optional[ActiveTest]:
    """The caller's active test, or null when there is none."""
    service = TestSessionService(db)
    return await service.get_active_test(user_id)


@router.put("/{session_id}/items/{item_id}/complete", status_code=status.HTTP_204_NO_CONTENT)
async def complete_test_item(
    session_id: str,
    item_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    service = TestSessionService(db)
    await service.complete_test_item(user_id, session_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{session_id}/items/{item_id}/abandon", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_test_item(
    session_id: str,
    item_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    service = TestSessionService(db)
    await service.abandon_test_item(user_id, session_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_test(
    session_id: str,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    service = TestSessionService(db)
    await service.delete_test(user_id, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
