"""End-to-end checks of the concurrency guarantees against a real PostgreSQL.

Set WATCHROOM_TEST_DATABASE_URL to a disposable database to run these; the
schema is created by the migration runner and every table is truncated
between tests.
"""

import asyncio
import os

import asyncpg
import pytest

from watchroom.database import DatabaseManager, PoolConfig
from watchroom.engine import Engine
from watchroom.migrations.runner import MigrationRunner

DATABASE_URL = os.getenv("WATCHROOM_TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(not DATABASE_URL, reason="WATCHROOM_TEST_DATABASE_URL not set"),
]


@pytest.fixture
async def pg_pool():
    manager = DatabaseManager(
        DATABASE_URL, PoolConfig(min_size=1, max_size=10, max_retries=1, ssl=False)
    )
    await manager.connect()
    await MigrationRunner(manager.pool).run_pending()
    async with manager.pool.acquire() as conn:
        await conn.execute("TRUNCATE room_videos, rooms, videos, users RESTART IDENTITY CASCADE")
    yield manager.pool
    await manager.disconnect()


@pytest.fixture
def engine(pg_pool):
    return Engine(pg_pool)


async def _count(pool: asyncpg.Pool, sql: str, *args) -> int:
    async with pool.acquire() as conn:
        return await conn.fetchval(sql, *args)


async def test_concurrent_registration_yields_one_video(engine, pg_pool):
    videos = await asyncio.gather(
        *(engine.catalog.register_video({"url": "https://youtu.be/dQw4w9WgXcQ"}) for _ in range(20))
    )
    assert len({v.id for v in videos}) == 1
    assert await _count(pg_pool, "SELECT COUNT(*) FROM videos") == 1


async def test_reregistration_keeps_metadata_unless_overwritten(engine):
    first = await engine.catalog.register_video({"url": "a", "title": "Original"})
    again = await engine.catalog.register_video({"url": "a", "title": "Changed"})
    assert again.id == first.id
    assert again.video_name == "Original"

    replaced = await engine.catalog.register_video({"url": "a", "title": "Changed"}, overwrite=True)
    assert replaced.id == first.id
    assert replaced.video_name == "Changed"


async def test_concurrent_room_opening_converges(engine, pg_pool):
    rooms = await asyncio.gather(*(engine.rooms.get_or_create_room("lobby") for _ in range(20)))
    assert len({r.id for r in rooms}) == 1
    assert rooms[0].index_key == 0
    assert await _count(pg_pool, "SELECT COUNT(*) FROM rooms") == 1
    assert (await engine.rooms.find_room("lobby")).id == rooms[0].id


async def test_vote_conservation_under_concurrency(engine):
    room = await engine.rooms.get_or_create_room("lobby")
    entry = await engine.playlist.add_video_to_room(room.id, {"url": "a"})

    ups, downs = 37, 15
    directions = ["+"] * ups + ["-"] * downs
    await asyncio.gather(
        *(engine.voting.apply_vote(room.id, entry.id, d) for d in directions)
    )

    [current] = await engine.playlist.list_room_videos(room.id)
    assert current.votes == ups - downs


async def test_duplicate_add_leaves_one_association(engine, pg_pool):
    room = await engine.rooms.get_or_create_room("lobby")
    entry = await engine.playlist.add_video_to_room(room.id, {"url": "a"})
    await engine.voting.apply_vote(room.id, entry.id, "+")

    again = await engine.playlist.add_video_to_room(room.id, {"url": "a"})

    assert again.votes == 1
    assert await _count(pg_pool, "SELECT COUNT(*) FROM room_videos WHERE room_id = $1", room.id) == 1


async def test_add_to_unknown_room_is_absorbed(engine, pg_pool):
    assert await engine.playlist.add_video_to_room(9999, {"url": "a"}) is None
    assert await _count(pg_pool, "SELECT COUNT(*) FROM room_videos") == 0


async def test_lobby_scenario(engine):
    room = await engine.rooms.get_or_create_room("lobby")
    a = await engine.playlist.add_video_to_room(room.id, {"url": "a", "title": "A"})
    b = await engine.playlist.add_video_to_room(room.id, {"url": "b", "title": "B"})

    playlist = await engine.playlist.list_room_videos(room.id)
    assert [(e.id, e.votes) for e in playlist] == [(a.id, 0), (b.id, 0)]

    await engine.voting.apply_vote(room.id, b.id, "+")
    playlist = await engine.playlist.list_room_videos(room.id)
    assert [(e.id, e.votes) for e in playlist] == [(b.id, 1), (a.id, 0)]

    await engine.scheduler.advance(room.id)
    state = await engine.scheduler.advance(room.id)
    assert await engine.scheduler.get_current_index(room.id) == 2
    assert state.exhausted is True
    assert state.current is None

    state = await engine.scheduler.reset(room.id)
    assert state.index_key == 0
    assert state.current.id == b.id


async def test_vote_during_playback_changes_current(engine):
    room = await engine.rooms.get_or_create_room("lobby")
    a = await engine.playlist.add_video_to_room(room.id, {"url": "a"})
    b = await engine.playlist.add_video_to_room(room.id, {"url": "b"})

    assert (await engine.scheduler.get_queue_state(room.id)).current.id == a.id
    await engine.voting.apply_vote(room.id, b.id, "+")
    assert (await engine.scheduler.get_queue_state(room.id)).current.id == b.id


async def test_concurrent_play_next_never_passes_the_end(engine):
    room = await engine.rooms.get_or_create_room("lobby")
    for url in ("a", "b", "c"):
        await engine.playlist.add_video_to_room(room.id, {"url": url})

    await asyncio.gather(*(engine.scheduler.play_next(room.id) for _ in range(10)))

    assert await engine.scheduler.get_current_index(room.id) == 3
    state = await engine.scheduler.get_queue_state(room.id)
    assert state.exhausted is True
    assert state.room.start_time is not None


async def test_remove_by_name_and_id(engine):
    room = await engine.rooms.get_or_create_room("lobby")
    a = await engine.playlist.add_video_to_room(room.id, {"url": "a", "title": "Same"})
    b = await engine.playlist.add_video_to_room(room.id, {"url": "b", "title": "Same"})

    assert await engine.playlist.remove_video_from_room(room.id, "Same") is True
    assert [e.id for e in await engine.playlist.list_room_videos(room.id)] == [b.id]
    assert await engine.playlist.remove_video_from_room(room.id, "Missing") is False

    assert await engine.playlist.remove_video_by_id(room.id, b.id) is True
    assert await engine.playlist.list_room_videos(room.id) == []
    assert a.id != b.id


async def test_user_passthrough(engine):
    await engine.users.save_user({"externalId": "g-1", "displayName": "ana", "avatarUrl": "x"})
    await engine.users.save_user({"externalId": "g-1", "displayName": "ana", "avatarUrl": "y"})

    [user] = await engine.users.find_user("ana")
    assert user.avatar_url == "y"
