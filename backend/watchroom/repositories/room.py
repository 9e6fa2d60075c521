"""Repository for the rooms table."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.database import acquire
from watchroom.models.room import RoomState

logger = logging.getLogger(__name__)

_ROOM_COLUMNS = "id, name, index_key, start_time, created_at"


class RoomRepository:
    """Pure SQL operations for rooms and their playback cursor.

    Cursor writes are relative updates in a single statement. Methods that
    address a room by id return None when it does not exist.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_or_create(self, name: str) -> RoomState:
        """Insert-if-absent by name, returning the canonical row."""
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO rooms (name, index_key)
                VALUES ($1, 0)
                ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
                RETURNING {_ROOM_COLUMNS}
                """,
                name,
            )
            return RoomState(**dict(row))

    async def get(self, room_id: int) -> RoomState | None:
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = $1",
                room_id,
            )
            return RoomState(**dict(row)) if row else None

    async def get_by_name(self, name: str) -> RoomState | None:
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE name = $1",
                name,
            )
            return RoomState(**dict(row)) if row else None

    async def list_all(self) -> list[RoomState]:
        async with acquire(self.pool) as conn:
            rows = await conn.fetch(f"SELECT {_ROOM_COLUMNS} FROM rooms ORDER BY id ASC")
            return [RoomState(**dict(row)) for row in rows]

    async def set_start_time(self, room_id: int) -> RoomState | None:
        """Stamp start_time = NOW(). Last call wins."""
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"UPDATE rooms SET start_time = NOW() WHERE id = $1 RETURNING {_ROOM_COLUMNS}",
                room_id,
            )
            return RoomState(**dict(row)) if row else None

    async def increment_index(self, room_id: int) -> RoomState | None:
        """index_key + 1, unclamped."""
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"UPDATE rooms SET index_key = index_key + 1 WHERE id = $1 "
                f"RETURNING {_ROOM_COLUMNS}",
                room_id,
            )
            return RoomState(**dict(row)) if row else None

    async def reset_index(self, room_id: int) -> RoomState | None:
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"UPDATE rooms SET index_key = 0 WHERE id = $1 RETURNING {_ROOM_COLUMNS}",
                room_id,
            )
            return RoomState(**dict(row)) if row else None

    async def get_index(self, room_id: int) -> int | None:
        async with acquire(self.pool) as conn:
            return await conn.fetchval("SELECT index_key FROM rooms WHERE id = $1", room_id)

    async def advance_if_available(self, room_id: int) -> tuple[RoomState | None, bool]:
        """Advance the cursor only while it points at a queued video, and stamp start_time.

        Returns (room, advanced). The bound check and the increment are one
        conditional UPDATE inside a transaction, so two concurrent callers
        cannot push the cursor past the end of the playlist.
        """
        async with acquire(self.pool) as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f"""
                    UPDATE rooms SET index_key = index_key + 1, start_time = NOW()
                    WHERE id = $1 AND index_key < (
                        SELECT COUNT(*) FROM room_videos WHERE room_id = $1
                    )
                    RETURNING {_ROOM_COLUMNS}
                    """,
                    room_id,
                )
                if row:
                    return RoomState(**dict(row)), True
                row = await conn.fetchrow(
                    f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = $1",
                    room_id,
                )
                return (RoomState(**dict(row)) if row else None), False
