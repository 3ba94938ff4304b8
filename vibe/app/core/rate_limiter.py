"""Shared SlowAPI rate limiter for the GIF relay."""
from __future__ import annotations

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


def _user_or_ip_key(request: Request) -> str:
    """Bucket by session user when the token middleware identified one, else by client IP."""

    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=_user_or_ip_key)


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer in the relay's ``{"error": ...}`` shape with a Retry-After hint."""

    logger.warning("Rate limit exceeded for path=%s limit=%s", request.url.path, exc.detail)
    retry_after = getattr(exc, "retry_after", None)
    return JSONResponse(
        {"error": f"Rate limit exceeded: {exc.detail}"},
        status_code=exc.status_code,
        headers={"Retry-After": str(retry_after)} if retry_after else None,
    )
