"""Queue scheduler: the playback cursor of a room against its vote-ordered playlist.

``index_key`` ranges over ``0..N`` where N is the playlist length; ``N``
means the queue is exhausted. The playing video is looked up in the live vote
order on every call, so a vote cast during playback can change which video
sits at the cursor.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

import asyncpg

from watchroom.errors import NotFoundError
from watchroom.models.room import PlaylistEntry, QueueState, RoomState
from watchroom.repositories.room import RoomRepository
from watchroom.services.playlist import PlaylistStore

logger = logging.getLogger(__name__)


def resolve_current(playlist: Sequence[PlaylistEntry], index_key: int) -> PlaylistEntry | None:
    """The entry at the cursor, or None once the cursor is past the end."""
    if 0 <= index_key < len(playlist):
        return playlist[index_key]
    return None


def elapsed_since(start_time: datetime | None, now: datetime | None = None) -> float | None:
    if start_time is None:
        return None
    now = now or datetime.now(UTC)
    return max((now - start_time).total_seconds(), 0.0)


class QueueScheduler:
    def __init__(self, pool: asyncpg.Pool, playlist: PlaylistStore | None = None) -> None:
        self.room_repo = RoomRepository(pool)
        self.playlist = playlist or PlaylistStore(pool)

    async def _state(self, room: RoomState | None, room_id: int) -> QueueState:
        if room is None:
            raise NotFoundError("room", room_id)
        entries = await self.playlist.list_room_videos(room.id)
        return QueueState(
            room=room,
            playlist=entries,
            current=resolve_current(entries, room.index_key),
            elapsed_seconds=elapsed_since(room.start_time),
        )

    async def advance(self, room_id: int) -> QueueState:
        """index_key + 1, without a ceiling. Check ``exhausted`` on the result."""
        room = await self.room_repo.increment_index(room_id)
        state = await self._state(room, room_id)
        logger.info(
            f"Room {room_id} advanced to {state.index_key}/{state.playlist_length}"
            + (" (exhausted)" if state.exhausted else "")
        )
        return state

    async def reset(self, room_id: int) -> QueueState:
        room = await self.room_repo.reset_index(room_id)
        state = await self._state(room, room_id)
        logger.info(f"Room {room_id} cursor reset")
        return state

    async def get_current_index(self, room_id: int) -> int:
        index_key = await self.room_repo.get_index(room_id)
        if index_key is None:
            raise NotFoundError("room", room_id)
        return index_key

    async def get_queue_state(self, room_id: int) -> QueueState:
        room = await self.room_repo.get(room_id)
        return await self._state(room, room_id)

    async def play_next(self, room_id: int) -> QueueState:
        """Move to the next video and restart the clock, unless the queue is exhausted."""
        room, advanced = await self.room_repo.advance_if_available(room_id)
        state = await self._state(room, room_id)
        if advanced:
            logger.info(f"Room {room_id} playing position {state.index_key}")
        else:
            logger.debug(f"Room {room_id} queue exhausted, cursor stays at {state.index_key}")
        return state
