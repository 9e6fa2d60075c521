"""Voting engine: relative ±1 updates of a room's per-video tally."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.models.room import VoteDirection
from watchroom.repositories.room_video import RoomVideoRepository

logger = logging.getLogger(__name__)


class VotingEngine:
    """No floor, no ceiling, no one-vote-per-user rule."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.room_video_repo = RoomVideoRepository(pool)

    async def apply_vote(
        self, room_id: int, video_id: int, direction: VoteDirection | str
    ) -> int | None:
        """Move the tally by exactly one. Returns the new tally, None if the video is not queued."""
        direction = VoteDirection.parse(direction)
        votes = await self.room_video_repo.apply_vote_delta(room_id, video_id, direction.delta)
        if votes is None:
            logger.warning(
                f"Vote {direction.value} ignored: video {video_id} not queued in room {room_id}"
            )
        else:
            logger.debug(f"Vote {direction.value} on video {video_id} in room {room_id} -> {votes}")
        return votes
