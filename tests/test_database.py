import asyncpg
import pytest

from watchroom.database import DatabaseManager, PoolConfig, acquire
from watchroom.errors import StorageError


async def test_acquire_translates_pool_failures(pool):
    pool.acquire_error = asyncpg.InterfaceError("pool is closed")
    with pytest.raises(StorageError) as excinfo:
        async with acquire(pool):
            pass
    assert isinstance(excinfo.value.__cause__, asyncpg.InterfaceError)


async def test_acquire_leaves_other_errors_alone(pool):
    with pytest.raises(KeyError):
        async with acquire(pool):
            raise KeyError("bug")


def test_pool_config_presets_and_overrides():
    cfg = PoolConfig.for_service("migrate", ssl=False, bogus=1)
    assert cfg.max_size == 2
    assert cfg.max_retries == 1
    assert cfg.ssl is False
    assert PoolConfig.for_service("unknown") == PoolConfig()


def test_pooler_mode_detection():
    session = DatabaseManager("postgresql://u:p@db:5432/app")
    transaction = DatabaseManager("postgresql://u:p@db:6543/app")
    assert session._session_pool_kwargs()["statement_cache_size"] == 100
    assert transaction._pooler_mode == "transaction"
    assert transaction._transaction_pool_kwargs()["min_size"] == 0


def test_ssl_can_be_disabled():
    manager = DatabaseManager("postgresql://localhost/app", PoolConfig(ssl=False))
    assert manager._session_pool_kwargs()["ssl"] is None


async def test_pool_property_requires_connect():
    manager = DatabaseManager("postgresql://localhost/app")
    assert manager.is_connected is False
    assert await manager.check_health() is False
    with pytest.raises(RuntimeError):
        manager.pool


async def test_connect_gives_up_with_storage_error(monkeypatch):
    async def refuse(**kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(asyncpg, "create_pool", refuse)
    manager = DatabaseManager(
        "postgresql://localhost/app", PoolConfig(max_retries=1, retry_delay=0)
    )
    with pytest.raises(StorageError):
        await manager.connect()
    assert manager.is_connected is False
