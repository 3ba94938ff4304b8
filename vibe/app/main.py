"""FastAPI application entry point for the GIF relay."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .api import routes_admin, routes_gifs
from .core.config import settings
from .core.middleware import RequestLoggingMiddleware, SessionTokenMiddleware
from .core.rate_limiter import limiter, rate_limit_handler


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SessionTokenMiddleware, prefix="/functions")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL.rstrip("/")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
    app.include_router(routes_gifs.router, prefix="/functions", tags=["gifs"])

    return app


app = create_app()
