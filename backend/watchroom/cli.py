"""Command line entry points.

Usage:
    watchroom                   # Run the API server (uvicorn)
    watchroom-migrate           # Apply all pending migrations
    watchroom-migrate --dry     # List pending migrations without applying
"""

import argparse
import asyncio
import logging
import sys

import uvicorn

from watchroom.core.config import get_settings
from watchroom.core.logging import setup_logging
from watchroom.database import DatabaseManager, PoolConfig
from watchroom.errors import StorageError
from watchroom.migrations.runner import MigrationRunner

logger = logging.getLogger(__name__)


def serve() -> None:
    settings = get_settings()
    uvicorn.run(
        "watchroom.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


async def _migrate(dry: bool) -> int:
    settings = get_settings()
    db_manager = DatabaseManager(
        settings.database_url, PoolConfig.for_service("migrate", ssl=settings.db_ssl)
    )
    await db_manager.connect()
    try:
        runner = MigrationRunner(db_manager.pool)
        if dry:
            pending = await runner.get_pending()
            logger.info(f"Pending: {len(pending)}")
            for version in pending:
                logger.info(f"  -> {version}")
        else:
            newly_applied = await runner.run_pending()
            logger.info(f"Applied {len(newly_applied)} migration(s)")
    finally:
        await db_manager.disconnect()
    return 0


def migrate() -> None:
    parser = argparse.ArgumentParser(description="Apply Watchroom database migrations")
    parser.add_argument("--dry", action="store_true", help="Show pending migrations only")
    args = parser.parse_args()

    setup_logging(get_settings())
    try:
        sys.exit(asyncio.run(_migrate(args.dry)))
    except StorageError as e:
        logger.error(f"Migration failed: {e}")
        sys.exit(1)
