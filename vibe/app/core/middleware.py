"""Custom ASGI middleware for session tokens and request logging."""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .config import settings
from .metrics import record_request
from .security import read_session_token


class SessionTokenMiddleware(BaseHTTPMiddleware):
    """Require a valid bearer session token on routes under ``prefix``."""

    def __init__(self, app: Callable, prefix: str = "/functions") -> None:
        super().__init__(app)
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        path = request.url.path

        if path.startswith(self.prefix) and settings.RELAY_REQUIRE_SESSION:
            header = request.headers.get("Authorization", "")
            scheme, _, token = header.partition(" ")
            user_id = read_session_token(token.strip()) if scheme.lower() == "bearer" else None
            if not user_id:
                return JSONResponse({"error": "Not authenticated"}, status_code=status.HTTP_401_UNAUTHORIZED)

            request.state.user_id = user_id

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line and one metrics sample per request; admin scrapes log at debug level."""

    def __init__(self, app: Callable, quiet_prefix: str = "/admin") -> None:
        super().__init__(app)
        self.quiet_prefix = quiet_prefix
        self.logger = logging.getLogger("vibe.request")

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            self.logger.exception("HTTP %s %s raised an unhandled exception", request.method, request.url.path)
            raise
        finally:
            duration = time.perf_counter() - start
            route = getattr(request.scope.get("route"), "path", request.url.path)
            record_request(request.method, route, status_code, duration)

        level = logging.DEBUG if request.url.path.startswith(self.quiet_prefix) else logging.INFO
        self.logger.log(
            level,
            "HTTP %s %s status=%s user=%s duration=%.3f",
            request.method,
            route,
            status_code,
            getattr(request.state, "user_id", None) or "anonymous",
            duration,
        )
        response.headers["X-Process-Time"] = f"{duration:.6f}"
        return response
