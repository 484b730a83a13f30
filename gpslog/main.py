"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. Routers are registered with their URL prefixes.
  4. Global exception handlers map storage errors to status codes.

Run with:
    uvicorn gpslog.main:app --reload       # development
    uvicorn gpslog.main:app                # production

A single worker process: the storage layer relies on SQLite file locking
and is not designed for multiple nodes.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gpslog.api.routes import samples, tenants
from gpslog.core.config import settings
from gpslog.core.exceptions import (
    Busy,
    Conflict,
    InvalidInput,
    NotFound,
    StorageError,
)
from gpslog.core.logging import configure_logging, get_logger
from gpslog.services.storage_service import TenantStorage

logger = get_logger(__name__)

BUSY_RETRY_AFTER_SECONDS = 1


def status_for(exc: StorageError) -> int:
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, Conflict):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, Busy):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, InvalidInput):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging
      - Build TenantStorage from settings (unless one was injected)
      - Optionally reconcile partial tenants left by failed creations
    """
    configure_logging()
    if getattr(app.state, "storage", None) is None:
        app.state.storage = TenantStorage.from_settings(settings)
    storage: TenantStorage = app.state.storage
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
        data_root=str(storage.root),
    )
    if settings.RECONCILE_ON_STARTUP:
        await storage.reconcile(prune_orphans=settings.PRUNE_ORPHANS_ON_STARTUP)
    yield
    logger.info("Shutting down")


def create_application(storage: TenantStorage | None = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Per-device location logging with isolated per-tenant storage.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.storage = storage

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(tenants.router)
    app.include_router(samples.router)

    # ── Global Exception Handlers ─────────────────────────────────────────────

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        code = status_for(exc)
        headers = {"Retry-After": str(BUSY_RETRY_AFTER_SECONDS)} if exc.retryable else None
        return JSONResponse(
            status_code=code,
            content={"detail": exc.message, "error": type(exc).__name__},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
