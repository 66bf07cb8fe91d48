"""FastAPI application factories for the public and private listeners."""

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_hold.api.context import ServiceContext
from cargo_hold.api.deps import get_db
from cargo_hold.api.errors import register_exception_handlers
from cargo_hold.api.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from cargo_hold.api.routes import links, private, public
from cargo_hold.common.config import Settings, get_settings

logger = structlog.get_logger()

VERSION = "0.1.0"


def _build_app(
    title: str,
    surface: str,
    routers: list[APIRouter],
    context: ServiceContext | None,
) -> FastAPI:
    settings: Settings = context.settings if context else get_settings()
    app = FastAPI(title=title, version=VERSION)

    if context is not None:
        app.state.settings = context.settings
        app.state.generator = context.generator
        app.state.storage = context.storage
        app.state.session_factory = context.session_factory

    # Middleware (order matters -- outermost first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Tenant-ID", "X-Correlation-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware, surface=surface)
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)
    for router in routers:
        app.include_router(router, tags=[surface])

    @app.get("/health")
    async def health(db: AsyncSession = Depends(get_db)):
        services: dict[str, str] = {}
        try:
            await db.execute(text("SELECT 1"))
            services["postgres"] = "up"
        except Exception:
            logger.warning("health_check_pg_failed", exc_info=True)
            services["postgres"] = "down"

        all_up = all(v == "up" for v in services.values())
        return JSONResponse(
            status_code=200 if all_up else 503,
            content={"status": "healthy" if all_up else "unhealthy", "surface": surface, "services": services},
        )

    return app


def create_public_app(context: ServiceContext | None = None) -> FastAPI:
    """Tenant-facing uploads, downloads and link redemption."""
    return _build_app("Cargo Hold", "public", [public.router, links.router], context)


def create_private_app(context: ServiceContext | None = None) -> FastAPI:
    """Operator-facing listing, file edits and link management."""
    return _build_app("Cargo Hold Admin", "private", [private.router], context)
