"""Repository layer: one class of plain SQL per table."""

from .room import RoomRepository
from .room_video import RoomVideoRepository
from .user import UserRepository
from .video import VideoRepository

__all__ = [
    "RoomRepository",
    "RoomVideoRepository",
    "UserRepository",
    "VideoRepository",
]
