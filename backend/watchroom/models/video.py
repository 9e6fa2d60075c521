"""Data models for the videos table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Video:
    """Catalog record, unique by url."""

    id: int
    video_name: str | None
    creator: str | None
    url: str
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class VideoMetadata:
    """Client-supplied description of a video to register or enqueue."""

    url: str
    title: str | None = None
    creator: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> VideoMetadata:
        url = data.get("url")
        if not url or not str(url).strip():
            raise ValueError("Video url must not be empty")
        return cls(
            url=str(url),
            title=data.get("title"),
            creator=data.get("creator"),
            description=data.get("description"),
        )
