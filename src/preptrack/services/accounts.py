"""Login against the configured credential map."""

import hmac
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.auth import issue_token
from preptrack.config import Settings, get_settings
from preptrack.db.transactions import guarded
from preptrack.errors import (
    AuthenticationError,
    InvalidArgumentError,
    NotFoundError,
    require_positive_id,
)
from preptrack.models import Role, User
from preptrack.schemas.auth import LoginResponse, ProfileUpdate, UserOut

logger = logging.getLogger(__name__)


class AccountService:
    """Authenticate users and manage their account rows."""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    async def login(self, username: str, password: str) -> LoginResponse:
        username = username.strip()
        expected = self.settings.auth_users.get(username)
        # Unknown users still go through a constant-time comparison
        matches = hmac.compare_digest((expected or "").encode(), password.encode())
        if expected is None or not matches:
            logger.warning("Failed login for %r", username)
            raise AuthenticationError("invalid username or password")

        user = await guarded(self.db, self._record_login(username), name="login")

        token, expires_at = issue_token(self.settings, user.id, user.role)
        logger.info("User %s (%s) logged in", user.id, username)
        return LoginResponse(
            access_token=token,
            expires_at=expires_at,
            user=UserOut.model_validate(user),
        )

    async def get_user(self, user_id: int) -> User:
        require_positive_id(user_id, "user_id")
        user = await guarded(self.db, self.db.get(User, user_id), name="get_user")
        if user is None:
            raise NotFoundError("user not found", {"user_id": user_id})
        return user

    async def update_profile(self, user_id: int, data: ProfileUpdate) -> User:
        """Set the display name and avatar; blank fields are ignored."""
        require_positive_id(user_id, "user_id")
        changes = {
            field: value.strip()
            for field, value in data.model_dump(exclude_none=True).items()
            if value.strip()
        }
        if not changes:
            raise InvalidArgumentError("name or avatar must be provided")

        return await guarded(
            self.db, self._apply_profile(user_id, changes), name="update_profile"
        )

    async def _record_login(self, username: str) -> User:
        user = await self._get_or_create(username)
        user.role = Role.admin if username in self.settings.admin_usernames else Role.user
        user.last_login_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def _apply_profile(self, user_id: int, changes: Dict[str, str]) -> User:
        user = await self.get_user(user_id)
        for field, value in changes.items():
            setattr(user, field, value)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Updated profile of user %s (%s)", user_id, ", ".join(sorted(changes)))
        return user

    async def _get_or_create(self, username: str) -> User:
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(username=username, role=Role.user)
            self.db.add(user)
            await self.db.flush()
            logger.info("Created user %s for %r", user.id, username)
        return user
