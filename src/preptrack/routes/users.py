"""Current user endpoints."""

from preptrack.auth import get_current_user
from preptrack.db.base import get_db
from preptrack.schemas.auth import ProfileUpdate, UserOut
from preptrack.services.accounts import AccountService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("/me", response_model=UserOut)
async def get_me(
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserOut:
    service = AccountService(db)
    user = await service.get_user(user_id)
    return UserOut.model_validate(user)


@router.put("/me", response_model=UserOut)
async def update_me(
    request: ProfileUpdate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserOut:
    """Update the display name and avatar of the current user."""
    service = AccountService(db)
    user = await service.update_profile(user_id, request)
    return UserOut.model_validate(user)
