"""Custom middleware for request handling."""

import logging
import time
import uuid
from typing import Awaitable, Callable, Dict, List

import jwt
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from preptrack.auth import decode_token
from preptrack.config import get_settings

logger = logging.getLogger(__name__)


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": {"code": "UNAUTHORIZED", "message": message, "details": {}}},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Extract user ID and role from JWT and attach to request state."""

    def __init__(self, app):
        super().__init__(app)
        self.settings = get_settings()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        auth = request.headers.get("Authorization")
        if auth and auth.startswith("Bearer "):
            token = auth.split(" ", 1)[1]
            try:
                payload = decode_token(self.settings, token)
            except jwt.ExpiredSignatureError:
                return _unauthorized("Token has expired")
            except jwt.InvalidTokenError as exc:
                return _unauthorized(f"Invalid token: {exc}")

            user_id = payload.get("sub")
            if not user_id:
                return _unauthorized("Invalid token: missing user ID")
            request.state.user_id = user_id
            request.state.role = payload.get("role", "user")
        return await call_next(request)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID to each request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            "%s %s -> %s in %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            request_id,
        )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory sliding-window rate limiting per user."""

    def __init__(self, app):
        super().__init__(app)
        self.requests: Dict[str, List[float]] = {}
        self.settings = get_settings()
        self._last_sweep = 0.0

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Skip rate limiting for health checks
        if request.url.path == "/health":
            return await call_next(request)

        # Get user ID from request state set by AuthMiddleware
        key = str(getattr(request.state, "user_id", "anonymous"))

        if not self.allow(key, time.time()):
            logger.warning("Rate limit exceeded for %s", key)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={"Retry-After": str(self.settings.rate_limit_window)},
                content={
                    "error": {
                        "code": "RATE_LIMITED",
                        "message": "Too many requests",
                        "details": {"retry_after": self.settings.rate_limit_window},
                    }
                },
            )

        return await call_next(request)

    def allow(self, key: str, now: float) -> bool:
        """Record a request for ``key`` unless its window is already full."""
        window_start = now - self.settings.rate_limit_window
        if now - self._last_sweep >= self.settings.rate_limit_window:
            self._sweep(window_start)
            self._last_sweep = now

        recent = [ts for ts in self.requests.get(key, []) if ts > window_start]
        if len(recent) >= self.settings.rate_limit_requests:
            self.requests[key] = recent
            return False

        recent.append(now)
        self.requests[key] = recent
        return True

    def _sweep(self, window_start: float) -> None:
        # Forget clients with no requests left in the window
        stale = [
            key
            for key, stamps in self.requests.items()
            if not stamps or stamps[-1] <= window_start
        ]
        for key in stale:
            del self.requests[key]
