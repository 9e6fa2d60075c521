"""Data models for the rooms and room_videos tables, plus derived queue state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class RoomState:
    """Room record: name, playback cursor and session start time."""

    id: int
    name: str
    index_key: int = 0
    start_time: datetime | None = None
    created_at: datetime | None = None


@dataclass
class PlaylistEntry:
    """A video queued in a room, with that room's vote tally."""

    id: int  # video id
    video_name: str | None
    creator: str | None
    url: str
    description: str | None
    votes: int = 0
    playlist_position: int | None = None
    queued_at: datetime | None = None


@dataclass
class QueueState:
    """Playback cursor resolved against the live vote-ordered playlist."""

    room: RoomState
    playlist: list[PlaylistEntry] = field(default_factory=list)
    current: PlaylistEntry | None = None
    elapsed_seconds: float | None = None

    @property
    def index_key(self) -> int:
        return self.room.index_key

    @property
    def playlist_length(self) -> int:
        return len(self.playlist)

    @property
    def exhausted(self) -> bool:
        return self.room.index_key >= len(self.playlist)


class VoteDirection(str, Enum):
    UP = "+"
    DOWN = "-"

    @property
    def delta(self) -> int:
        return 1 if self is VoteDirection.UP else -1

    @classmethod
    def parse(cls, value: VoteDirection | str) -> VoteDirection:
        """Accept '+', '-', 'up' or 'down'."""
        if isinstance(value, VoteDirection):
            return value
        aliases = {"+": cls.UP, "up": cls.UP, "-": cls.DOWN, "down": cls.DOWN}
        try:
            return aliases[value.strip().lower()]
        except (KeyError, AttributeError):
            raise ValueError(f"Invalid vote direction: {value!r}") from None
