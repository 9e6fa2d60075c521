"""PostgreSQL connection pool management.

Connection modes (detected from the DSN port):
  - Session mode     (port 5432) : persistent servers, supports prepared statements
  - Transaction mode (port 6543) : PgBouncer transaction pooling, no prepared statements
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, fields
from typing import Any, ClassVar
from urllib.parse import urlparse

import asyncpg

from watchroom.errors import StorageError

logger = logging.getLogger(__name__)

# Failures that mean "the store could not do it", as opposed to programming errors
STORAGE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    TimeoutError,
)


@asynccontextmanager
async def acquire(pool: asyncpg.Pool) -> AsyncIterator[asyncpg.Connection]:
    """Borrow a connection, translating driver failures into StorageError."""
    try:
        async with pool.acquire() as conn:
            yield conn
    except STORAGE_EXCEPTIONS as exc:
        raise StorageError(f"{type(exc).__name__}: {exc}") from exc


@dataclass
class PoolConfig:
    """Database pool configuration with sensible defaults."""

    min_size: int = 1
    max_size: int = 5
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 3.0
    ssl: bool = True

    # Per-use presets
    # - api: long-lived server, keeps one warm connection
    # - migrate: one-shot script, small pool, no retry backoff
    _PRESETS: ClassVar[dict[str, dict]] = {
        "api": {"min_size": 1, "max_size": 10},
        "migrate": {"min_size": 1, "max_size": 2, "max_retries": 1},
    }

    @classmethod
    def for_service(cls, service: str, **overrides) -> PoolConfig:
        """Create a PoolConfig from a named preset plus explicit overrides."""
        valid_keys = {f.name for f in fields(cls) if not f.name.startswith("_")}
        preset = dict(cls._PRESETS.get(service, {}))
        preset.update(overrides)
        filtered = {k: v for k, v in preset.items() if k in valid_keys}
        return cls(**filtered)


class DatabaseManager:
    """Manages the PostgreSQL connection pool lifecycle.

    Handles pooler mode detection, connect retry with exponential backoff and
    health checks. Repositories never see the manager, only its ``pool``.
    """

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self._pooler_mode: str = "transaction" if ":6543" in database_url else "session"

    # ── Pool builders ────────────────────────────────────────────────

    async def _init_session_connection(self, conn: asyncpg.Connection) -> None:
        """Set a session-level statement timeout (session mode only)."""
        timeout_ms = int(self.config.command_timeout * 1000)
        await conn.execute(f"SET statement_timeout = {timeout_ms}")

    def _session_pool_kwargs(self) -> dict[str, Any]:
        cfg = self.config
        return {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": "require" if cfg.ssl else None,
            "statement_cache_size": 100,
            "max_inactive_connection_lifetime": cfg.max_inactive_connection_lifetime,
            "init": self._init_session_connection,
        }

    def _transaction_pool_kwargs(self) -> dict[str, Any]:
        """PgBouncer transaction mode: no prepared statements, no idle connections."""
        cfg = self.config
        return {
            "dsn": self.database_url,
            "min_size": 0,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": "require" if cfg.ssl else None,
            "statement_cache_size": 0,
            "max_inactive_connection_lifetime": 0,
        }

    # ── Diagnostics ──────────────────────────────────────────────────

    def _diagnose_connection(self) -> None:
        """Log DNS and TCP reachability of the database host."""
        parsed = urlparse(self.database_url)
        host = parsed.hostname or "unknown"
        port = parsed.port or 5432

        logger.info(f"[DB Diag] host={host}, port={port}")

        try:
            addrs = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
            ips = {a[4][0] for a in addrs}
            logger.info(f"[DB Diag] DNS OK: {ips}")
        except socket.gaierror as e:
            logger.error(f"[DB Diag] DNS FAILED: {e}")
            return

        family, _, _, _, sockaddr = addrs[0]
        try:
            with socket.socket(family, socket.SOCK_STREAM) as sock:
                sock.settimeout(5)
                sock.connect(sockaddr)
            logger.info(f"[DB Diag] TCP OK: {sockaddr[0]}:{sockaddr[1]}")
        except OSError as e:
            logger.error(f"[DB Diag] TCP FAILED to {sockaddr[0]}:{sockaddr[1]}: {e}")

    # ── Lifecycle ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Initialize the connection pool with retry."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        _builders = {
            "session": self._session_pool_kwargs,
            "transaction": self._transaction_pool_kwargs,
        }
        pool_kwargs = _builders[self._pooler_mode]()
        logger.info(f"Connecting with {self._pooler_mode} pooler mode")

        cfg = self.config
        for attempt in range(1, cfg.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(**pool_kwargs)

                async with self._pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")

                logger.info(
                    f"Database pool created and verified "
                    f"(mode={self._pooler_mode}, "
                    f"size={pool_kwargs['min_size']}-{cfg.max_size})"
                )
                return
            except STORAGE_EXCEPTIONS as e:
                if self._pool is not None:
                    await self._pool.close()
                    self._pool = None
                if attempt >= cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {cfg.max_retries} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise StorageError(f"Could not connect to database: {e}") from e

                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e}, retrying in {delay}s..."
                )
                if attempt == 1:
                    self._diagnose_connection()
                await asyncio.sleep(delay)

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return

        try:
            await self._pool.close()
            logger.info("Database pool closed")
        finally:
            self._pool = None

    async def check_health(self) -> bool:
        """Test if the pool can actually execute a query."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=2.0) as conn:
                await conn.fetchval("SELECT 1")
            return True
        except STORAGE_EXCEPTIONS:
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool. Raises if not initialized."""
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    if _db_manager is None:
        raise RuntimeError("Database manager not initialized")
    return _db_manager


def init_database_manager(database_url: str, config: PoolConfig | None = None) -> DatabaseManager:
    """Initialize the global database manager."""
    global _db_manager
    _db_manager = DatabaseManager(database_url, config)
    return _db_manager
