"""
OrgDesk API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import debug as debug_routes
from app.api.routes import router as api_router
from app.api.routes.identity import describe_caller
from app.core.auth import Caller, require_api_scope
from app.core.config import get_settings
from app.core.database import check_connection, engine, init_db, sqlite_data_source
from app.core.errors import problem_response, register_exception_handlers
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from orgdesk_shared.logging import configure_logging

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="OrgDesk",
        description="Organizations and their members, managed by their Owners.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware: last added is outermost
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    if settings.debug_endpoints_enabled:
        app.include_router(debug_routes.router, prefix="/debug")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness probe that also verifies the store is reachable."""
        try:
            ok = await check_connection()
        except (SQLAlchemyError, OSError) as exc:
            log.warning("health.db_unreachable", error=str(exc))
            return problem_response(500, detail=f"DB exception: {exc}")
        if not ok:
            return problem_response(500, detail="DB not reachable")
        return {"status": "Healthy"}

    @app.get("/me", tags=["Identity"])
    async def me(caller: Caller = Depends(require_api_scope)):
        return describe_caller(caller)

    @app.on_event("startup")
    async def on_startup():
        if settings.auto_create_schema:
            await init_db()
        log.info(
            "OrgDesk starting",
            environment=settings.environment,
            data_source=sqlite_data_source(),
            debug_endpoints=settings.debug_endpoints_enabled,
            allowed_origins=",".join(settings.cors_origins),
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("OrgDesk shutting down")
        await engine.dispose()

    return app


app = create_app()
