"""JWT authentication and authorization."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from preptrack.config import Settings, get_settings
from preptrack.models import Role

security = HTTPBearer()


def issue_token(settings: Settings, user_id: int, role: Role) -> Tuple[str, datetime]:
    """Sign an access token for a user, returning it with its expiry."""
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": expires_at,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires_at


def decode_token(settings: Settings, token: str) -> Dict[str, Any]:
    """Verify signature, expiry, issuer and audience of a token."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )


def _parse_user_id(value: Any) -> int:
    try:
        user_id = int(str(value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
        )
    if user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
        )
    return user_id


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> int:
    """Extract and validate user ID from JWT token."""
    # Prefer user ID from middleware if available
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return _parse_user_id(user_id)

    try:
        payload = decode_token(get_settings(), credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )
    request.state.role = payload.get("role", Role.user.value)
    return _parse_user_id(subject)


async def require_admin(
    request: Request,
    user_id: int = Depends(get_current_user),
) -> int:
    """Allow only admin users through."""
    if getattr(request.state, "role", None) != Role.admin.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user_id
