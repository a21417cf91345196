"""Login endpoint."""

from preptrack.db.base import get_db
from preptrack.schemas.auth import LoginRequest, LoginResponse
from preptrack.services.accounts import AccountService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Exchange configured credentials for a bearer token."""
    service = AccountService(db)
    return await service.login(request.username, request.password)
