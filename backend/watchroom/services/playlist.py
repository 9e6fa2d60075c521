"""Playlist store: which videos are queued in which room.

Writes to the room/video association are "secondary" writes: in the default
LENIENT policy their failures are logged and absorbed, so a failed add or
remove looks like a successful one to the caller. STRICT raises instead.
"""

from __future__ import annotations

import logging
from enum import Enum

import asyncpg

from watchroom.errors import NotFoundError, StorageError
from watchroom.models.room import PlaylistEntry
from watchroom.models.video import VideoMetadata
from watchroom.repositories.room_video import RoomVideoRepository
from watchroom.services.catalog import VideoCatalog

logger = logging.getLogger(__name__)


class PlaylistWritePolicy(str, Enum):
    LENIENT = "lenient"
    STRICT = "strict"


class PlaylistStore:
    def __init__(
        self,
        pool: asyncpg.Pool,
        catalog: VideoCatalog | None = None,
        policy: PlaylistWritePolicy = PlaylistWritePolicy.LENIENT,
    ) -> None:
        self.room_video_repo = RoomVideoRepository(pool)
        self.catalog = catalog or VideoCatalog(pool)
        self.policy = PlaylistWritePolicy(policy)

    @property
    def strict(self) -> bool:
        return self.policy is PlaylistWritePolicy.STRICT

    def _absorb(self, action: str, room_id: int, exc: StorageError) -> None:
        """Re-raise under STRICT; otherwise log and carry on."""
        if self.strict:
            if isinstance(exc.__cause__, asyncpg.ForeignKeyViolationError):
                raise NotFoundError("room", room_id) from exc
            raise exc
        logger.warning(f"Failed to {action} in room {room_id}: {exc}")

    async def add_video_to_room(
        self, room_id: int, metadata: VideoMetadata | dict
    ) -> PlaylistEntry | None:
        """Register the video and queue it in the room with votes=0.

        Adding a video that is already queued leaves the existing entry (and
        its votes) untouched. Returns the entry, or None when the association
        write failed under the LENIENT policy.
        """
        video = await self.catalog.register_video(metadata)
        try:
            created = await self.room_video_repo.add(room_id, video.id)
        except StorageError as exc:
            self._absorb(f"queue video {video.id}", room_id, exc)
            return None

        if created:
            logger.info(f"Queued video {video.id} in room {room_id}")
        else:
            logger.debug(f"Video {video.id} already queued in room {room_id}")
        return await self.room_video_repo.get_entry(room_id, video.id)

    async def list_room_videos(self, room_id: int) -> list[PlaylistEntry]:
        """The room's playlist, most votes first; ties keep queue order."""
        return await self.room_video_repo.list_for_room(room_id)

    async def remove_video_from_room(self, room_id: int, video_name: str) -> bool:
        """Dequeue by display name. Returns True if an entry was removed."""
        try:
            video_id = await self.room_video_repo.remove_by_name(room_id, video_name)
        except StorageError as exc:
            self._absorb(f"remove {video_name!r}", room_id, exc)
            return False

        if video_id is None:
            if self.strict:
                raise NotFoundError("playlist entry", (room_id, video_name))
            logger.warning(f"Nothing named {video_name!r} queued in room {room_id}")
            return False
        logger.info(f"Removed video {video_id} ({video_name!r}) from room {room_id}")
        return True

    async def remove_video_by_id(self, room_id: int, video_id: int) -> bool:
        """Dequeue by video id, the unambiguous key."""
        try:
            removed = await self.room_video_repo.remove(room_id, video_id)
        except StorageError as exc:
            self._absorb(f"remove video {video_id}", room_id, exc)
            return False

        if not removed:
            if self.strict:
                raise NotFoundError("playlist entry", (room_id, video_id))
            logger.warning(f"Video {video_id} is not queued in room {room_id}")
            return False
        logger.info(f"Removed video {video_id} from room {room_id}")
        return True
