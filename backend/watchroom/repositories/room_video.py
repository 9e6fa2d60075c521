"""Repository for the room_videos join table (playlist membership and votes)."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.database import acquire
from watchroom.models.room import PlaylistEntry

logger = logging.getLogger(__name__)

# Authoritative playlist order: votes first, then queue order for ties
PLAYLIST_ORDER = "rv.votes DESC, rv.created_at ASC, rv.id ASC"

_ENTRY_COLUMNS = (
    "v.id, v.video_name, v.creator, v.url, v.description, "
    "rv.votes, rv.playlist_position, rv.created_at AS queued_at"
)


class RoomVideoRepository:
    """Pure SQL operations for room_videos."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add(self, room_id: int, video_id: int) -> bool:
        """Queue a video in a room with votes=0. Returns False if it was already queued.

        Raises ForeignKeyViolationError (as StorageError) for an unknown room.
        """
        async with acquire(self.pool) as conn:
            inserted = await conn.fetchval(
                """
                INSERT INTO room_videos (room_id, video_id, playlist_position)
                VALUES (
                    $1, $2,
                    (SELECT COUNT(*) FROM room_videos WHERE room_id = $1)
                )
                ON CONFLICT (room_id, video_id) DO NOTHING
                RETURNING id
                """,
                room_id,
                video_id,
            )
            return inserted is not None

    async def get_entry(self, room_id: int, video_id: int) -> PlaylistEntry | None:
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {_ENTRY_COLUMNS} FROM room_videos rv "
                "JOIN videos v ON v.id = rv.video_id "
                "WHERE rv.room_id = $1 AND rv.video_id = $2",
                room_id,
                video_id,
            )
            return PlaylistEntry(**dict(row)) if row else None

    async def list_for_room(self, room_id: int) -> list[PlaylistEntry]:
        """Videos queued in the room, ordered by votes descending."""
        async with acquire(self.pool) as conn:
            rows = await conn.fetch(
                f"SELECT {_ENTRY_COLUMNS} FROM room_videos rv "
                "JOIN videos v ON v.id = rv.video_id "
                f"WHERE rv.room_id = $1 ORDER BY {PLAYLIST_ORDER}",
                room_id,
            )
            return [PlaylistEntry(**dict(row)) for row in rows]

    async def remove(self, room_id: int, video_id: int) -> bool:
        """Delete one association. Returns True if a row was removed."""
        async with acquire(self.pool) as conn:
            result = await conn.execute(
                "DELETE FROM room_videos WHERE room_id = $1 AND video_id = $2",
                room_id,
                video_id,
            )
            return result == "DELETE 1"

    async def remove_by_name(self, room_id: int, video_name: str) -> int | None:
        """Delete the association whose video carries this display name.

        When several queued videos share the name, the earliest queued one
        goes. Returns the removed video id, or None if nothing matched.
        """
        async with acquire(self.pool) as conn:
            return await conn.fetchval(
                """
                DELETE FROM room_videos
                WHERE id = (
                    SELECT rv.id FROM room_videos rv
                    JOIN videos v ON v.id = rv.video_id
                    WHERE rv.room_id = $1 AND v.video_name = $2
                    ORDER BY rv.created_at ASC, rv.id ASC
                    LIMIT 1
                )
                RETURNING video_id
                """,
                room_id,
                video_name,
            )

    async def apply_vote_delta(self, room_id: int, video_id: int, delta: int) -> int | None:
        """votes = votes + delta in one statement. Returns the new tally, None if not queued."""
        async with acquire(self.pool) as conn:
            return await conn.fetchval(
                "UPDATE room_videos SET votes = votes + $3 "
                "WHERE room_id = $1 AND video_id = $2 "
                "RETURNING votes",
                room_id,
                video_id,
                delta,
            )
