"""
FastAPI application for the bookmark vault import API.

Usage:
    uvicorn app.api.main:app --reload --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from datetime import datetime

import peewee
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError

from app.api.error_handlers import (
    api_exception_handler,
    database_exception_handler,
    domain_exception_handler,
    validation_exception_handler,
)
from app.api.error_handlers import (
    global_exception_handler as global_error_handler,
)
from app.api.exceptions import APIException
from app.api.middleware import correlation_id_middleware
from app.api.models.responses import success_response
from app.api.routers import imports, tags
from app.config import AppConfig, load_config
from app.core.logging_utils import get_logger, setup_json_logging
from app.core.time_utils import UTC
from app.db.session import DatabaseSessionManager
from app.domain.exceptions.domain_exceptions import DomainException
from app.services.scheduler import IMPORT_SWEEP_JOB_ID, SchedulerService

logger = get_logger(__name__)

SERVICE_NAME = "Bookmark Vault Import API"


def create_app(cfg: AppConfig | None = None, *, configure_logging: bool = True) -> FastAPI:
    """Build the application.

    Args:
        cfg: Configuration to use; loaded from the environment when omitted
        configure_logging: Install the JSON log sinks during startup
    """
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_json_logging(cfg.runtime.log_level, cfg.runtime.log_file)

        db = DatabaseSessionManager(
            path=cfg.runtime.db_path,
            operation_timeout=cfg.database.operation_timeout,
            max_retries=cfg.database.max_retries,
        )
        db.migrate()
        scheduler = SchedulerService(cfg, db)
        await scheduler.start()

        app.state.db = db
        app.state.scheduler = scheduler
        logger.info("api_started", extra={"db_path": cfg.runtime.db_path})
        try:
            yield
        finally:
            await scheduler.stop()
            db.close()
            app.state.db = None
            logger.info("database_closed")

    app = FastAPI(
        title=SERVICE_NAME,
        description="Chunked bookmark import into a user-owned record repository",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.db = None
    app.state.debug_errors = cfg.runtime.log_level == "DEBUG"

    allowed_origins = list(cfg.api.allowed_origins)
    if not allowed_origins:
        logger.warning("cors_origins_not_configured")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "X-Correlation-ID",
            "X-Repo-Owner",
        ],
        max_age=3600,  # Cache preflight for 1 hour
    )
    app.middleware("http")(correlation_id_middleware)

    app.include_router(imports.router, prefix="/v1/import", tags=["Import"])
    app.include_router(tags.router, prefix="/v1/tags", tags=["Tags"])

    @app.get("/")
    async def root(request: Request):
        """API root endpoint."""
        return success_response(
            {
                "service": SERVICE_NAME,
                "version": app.version,
                "docs": "/docs",
                "health": "/health",
            },
            correlation_id=getattr(request.state, "correlation_id", None),
        )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        scheduler = getattr(request.app.state, "scheduler", None)
        next_sweep = scheduler.get_next_run_time(IMPORT_SWEEP_JOB_ID) if scheduler else None
        return success_response(
            {
                "status": "healthy",
                "database": request.app.state.db is not None,
                "scheduler": bool(scheduler and scheduler.is_running),
                "next_sweep": next_sweep.isoformat() if next_sweep else None,
                "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            },
            correlation_id=getattr(request.state, "correlation_id", None),
        )

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(peewee.DatabaseError, database_exception_handler)
    app.add_exception_handler(Exception, global_error_handler)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Development server - bind to all interfaces for Docker/container access
    uvicorn.run(
        "app.api.main:app",
        # nosec B104 - intentional for development/Docker environments
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
