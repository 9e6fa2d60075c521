"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from watchroom import __version__
from watchroom.core.config import get_settings
from watchroom.core.logging import setup_logging
from watchroom.database import (
    DatabaseManager,
    PoolConfig,
    get_database_manager,
    init_database_manager,
)
from watchroom.errors import NotFoundError, StorageError
from watchroom.routers import rooms_router, users_router, videos_router

logger = logging.getLogger(__name__)

_start_time: float = 0.0
_heartbeat_task: asyncio.Task | None = None
_db_retry_task: asyncio.Task | None = None


async def _heartbeat(interval: int = 300) -> None:
    """Periodic heartbeat: log uptime and DB status"""
    while True:
        await asyncio.sleep(interval)
        uptime = int(time.time() - _start_time)
        db_ok = await get_database_manager().check_health()
        logger.info(f"Heartbeat: uptime={uptime}s, db={db_ok}")


async def _db_retry_loop(db_manager: DatabaseManager) -> None:
    """Keep retrying the DB connection after a failed startup."""
    delay = 5
    max_delay = 60
    while not db_manager.is_connected:
        await asyncio.sleep(delay)
        try:
            await db_manager.connect()
            logger.info("Database connected (background retry)")
            return
        except StorageError as e:
            delay = min(delay * 2, max_delay)
            logger.warning(f"DB background retry failed: {e}, next retry in {delay}s")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time, _heartbeat_task, _db_retry_task
    _start_time = time.time()

    settings = get_settings()
    logger.info("Starting Watchroom API server")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Playlist write policy: {settings.playlist_write_policy.value}")

    db_manager = init_database_manager(
        settings.database_url,
        PoolConfig.for_service(
            "api",
            min_size=settings.db_min_pool_size,
            max_size=settings.db_max_pool_size,
            ssl=settings.db_ssl,
        ),
    )

    # Wait up to 30s before accepting requests, then keep trying in the background
    try:
        await asyncio.wait_for(db_manager.connect(), timeout=30)
        logger.info("Database connected")
    except (TimeoutError, StorageError) as e:
        logger.warning(f"DB unavailable at startup ({type(e).__name__}), retrying in background")
        _db_retry_task = asyncio.create_task(_db_retry_loop(db_manager))

    if settings.enable_keep_alive:
        _heartbeat_task = asyncio.create_task(_heartbeat(settings.keep_alive_interval))
        logger.info(f"Heartbeat started (interval={settings.keep_alive_interval}s)")

    yield

    logger.info("Shutting down Watchroom API server")
    for task in (_db_retry_task, _heartbeat_task):
        if task:
            task.cancel()
    await db_manager.disconnect()


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable, retry"})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()

    setup_logging(settings)

    app = FastAPI(
        title="Watchroom API",
        description="Shared video rooms with a vote-ordered playlist",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    app.include_router(rooms_router.router)
    app.include_router(videos_router.router)
    app.include_router(users_router.router)

    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": "watchroom-api", "status": "running"}

    @app.get("/health")
    async def health():
        """Liveness check (no DB dependency)"""
        return {"status": "healthy", "uptime_seconds": int(time.time() - _start_time)}

    @app.get("/status")
    async def status():
        """Readiness check, includes an actual DB round trip"""
        try:
            db_ok = await get_database_manager().check_health()
        except RuntimeError:
            db_ok = False
        return {
            "service": "watchroom-api",
            "version": __version__,
            "uptime_seconds": int(time.time() - _start_time),
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    logger.info("FastAPI application configured")

    return app
