"""Room registry: rooms by unique name, with playback cursor and start time."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.errors import NotFoundError
from watchroom.models.room import RoomState
from watchroom.repositories.room import RoomRepository

logger = logging.getLogger(__name__)


class RoomRegistry:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.room_repo = RoomRepository(pool)

    async def get_or_create_room(self, name: str) -> RoomState:
        """Open the named room, creating it with index_key=0 on first use."""
        name = name.strip()
        if not name:
            raise ValueError("Room name must not be empty")
        room = await self.room_repo.get_or_create(name)
        logger.info(f"Room ready: {room.name} (id={room.id})")
        return room

    async def get_room_state(self, room_id: int) -> RoomState:
        room = await self.room_repo.get(room_id)
        if room is None:
            raise NotFoundError("room", room_id)
        return room

    async def find_room(self, name: str) -> RoomState | None:
        return await self.room_repo.get_by_name(name.strip())

    async def list_rooms(self) -> list[RoomState]:
        return await self.room_repo.list_all()

    async def mark_playback_started(self, room_id: int) -> RoomState:
        """Set start_time to now; later calls overwrite it."""
        room = await self.room_repo.set_start_time(room_id)
        if room is None:
            raise NotFoundError("room", room_id)
        return room
