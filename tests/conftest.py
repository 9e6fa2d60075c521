"""Shared fixtures: an in-memory stand-in for asyncpg's pool/connection.

The fake records every statement and hands back queued results per method,
so repository and service tests can check the SQL they emit and the records
they build from the rows.
"""

from __future__ import annotations

from collections import defaultdict, deque
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import pytest

from watchroom.services.catalog import VideoCatalog
from watchroom.services.users import UserDirectory

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

_DEFAULTS = {"fetchrow": None, "fetch": [], "fetchval": None, "execute": "UPDATE 0"}


class FakeConnection:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, tuple]] = []
        self.results: dict[str, deque] = defaultdict(deque)
        self.transactions = 0

    def queue(self, method: str, *results) -> FakeConnection:
        self.results[method].extend(results)
        return self

    def _next(self, method: str, sql: str, args: tuple):
        self.calls.append((method, " ".join(sql.split()), args))
        pending = self.results[method]
        result = pending.popleft() if pending else _DEFAULTS[method]
        if isinstance(result, BaseException):
            raise result
        return result

    async def fetchrow(self, sql: str, *args):
        return self._next("fetchrow", sql, args)

    async def fetch(self, sql: str, *args):
        return self._next("fetch", sql, args)

    async def fetchval(self, sql: str, *args):
        return self._next("fetchval", sql, args)

    async def execute(self, sql: str, *args):
        return self._next("execute", sql, args)

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield

    def sql(self, index: int = -1) -> str:
        return self.calls[index][1]

    def args(self, index: int = -1) -> tuple:
        return self.calls[index][2]


class FakePool:
    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self.acquire_error: BaseException | None = None

    @asynccontextmanager
    async def acquire(self, timeout: float | None = None):
        if self.acquire_error is not None:
            raise self.acquire_error
        yield self.conn

    async def close(self) -> None:
        pass


def video_row(id=1, url="a", video_name="Video A", creator="Creator", description=None):
    return {
        "id": id,
        "video_name": video_name,
        "creator": creator,
        "url": url,
        "description": description,
        "created_at": NOW,
    }


def room_row(id=1, name="lobby", index_key=0, start_time=None):
    return {
        "id": id,
        "name": name,
        "index_key": index_key,
        "start_time": start_time,
        "created_at": NOW,
    }


def entry_row(id=1, url="a", video_name="Video A", votes=0, playlist_position=0):
    return {
        "id": id,
        "video_name": video_name,
        "creator": "Creator",
        "url": url,
        "description": None,
        "votes": votes,
        "playlist_position": playlist_position,
        "queued_at": NOW,
    }


def user_row(id=1, external_id="g-1", display_name="ana", avatar_url=None):
    return {
        "id": id,
        "external_id": external_id,
        "display_name": display_name,
        "avatar_url": avatar_url,
        "created_at": NOW,
        "updated_at": NOW,
    }


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def pool(conn) -> FakePool:
    return FakePool(conn)


@pytest.fixture(autouse=True)
def _reset_caches():
    VideoCatalog.list_videos.cache.clear(stale=True)
    UserDirectory.find_user.cache.clear(stale=True)
    yield
