"""Schema migration runner with a tracking table."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

from watchroom.database import acquire

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


class MigrationRunner:
    """Apply ``versions/NNN_description.sql`` files in order, once each.

    Applied versions are recorded in ``schema_migrations``. Each file runs in
    its own transaction together with its tracking row.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, migrations_dir: Path | None = None) -> None:
        self.pool = pool
        self.migrations_dir = migrations_dir or VERSIONS_DIR

    async def ensure_table(self) -> None:
        async with acquire(self.pool) as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        async with acquire(self.pool) as conn:
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            return {row["version"] for row in rows}

    def discover(self) -> list[Path]:
        """SQL files sorted by filename (the NNN_ prefix fixes the order)."""
        return sorted(self.migrations_dir.glob("*.sql"))

    async def get_pending(self) -> list[str]:
        await self.ensure_table()
        applied = await self.get_applied()
        return [path.stem for path in self.discover() if path.stem not in applied]

    async def run_pending(self) -> list[str]:
        """Apply every pending migration. Returns the newly applied versions."""
        await self.ensure_table()
        applied = await self.get_applied()

        sql_files = self.discover()
        if not sql_files:
            logger.info("No migration files found in %s", self.migrations_dir)
            return []

        newly_applied: list[str] = []
        for sql_path in sql_files:
            version = sql_path.stem
            if version in applied:
                logger.debug("Migration %s already applied, skipping", version)
                continue
            await self._apply_one(version, sql_path.name, sql_path.read_text(encoding="utf-8"))
            newly_applied.append(version)

        if newly_applied:
            logger.info("Applied %d migration(s): %s", len(newly_applied), ", ".join(newly_applied))
        else:
            logger.info("Database is up to date")
        return newly_applied

    async def _apply_one(self, version: str, name: str, sql: str) -> None:
        logger.info("Applying migration: %s", version)
        async with acquire(self.pool) as conn:
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",
                    version,
                    name,
                )
        logger.info("Migration %s applied", version)
