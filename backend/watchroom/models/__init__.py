"""Data models for rooms, videos, playlists and users."""

from .room import PlaylistEntry, QueueState, RoomState, VoteDirection
from .user import User
from .video import Video, VideoMetadata

__all__ = [
    "PlaylistEntry",
    "QueueState",
    "RoomState",
    "User",
    "Video",
    "VideoMetadata",
    "VoteDirection",
]
