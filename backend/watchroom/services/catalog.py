"""Video catalog: deduplicated registry of video metadata keyed by url."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.cache import AsyncTTLCache, cached
from watchroom.errors import NotFoundError
from watchroom.models.video import Video, VideoMetadata
from watchroom.repositories.video import VideoRepository

logger = logging.getLogger(__name__)

# Browsing only; ordering never reads the catalog listing. The short TTL bounds
# how long other processes can miss a new registration
_catalog_cache = AsyncTTLCache(maxsize=1, ttl=5)


class VideoCatalog:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.video_repo = VideoRepository(pool)

    async def register_video(
        self, metadata: VideoMetadata | dict, *, overwrite: bool = False
    ) -> Video:
        """Return the video registered under this url, creating it if absent.

        Storage failures surface as StorageError.
        """
        if isinstance(metadata, dict):
            metadata = VideoMetadata.from_dict(metadata)
        video = await self.video_repo.find_or_create(metadata, overwrite=overwrite)
        _catalog_cache.invalidate("catalog")
        logger.debug(f"Registered video {video.id} ({video.url})")
        return video

    async def get_video(self, video_id: int) -> Video:
        video = await self.video_repo.get(video_id)
        if video is None:
            raise NotFoundError("video", video_id)
        return video

    @cached(cache=_catalog_cache, key_func=lambda self: "catalog")
    async def list_videos(self) -> list[Video]:
        """Full catalog in insertion order."""
        return await self.video_repo.list_all()
