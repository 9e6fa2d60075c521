"""Services layer - the room/playlist consistency engine.

Each service wraps one or more repositories and owns the business rules:
error policy, logging and derived state.
"""

from .catalog import VideoCatalog
from .playlist import PlaylistStore, PlaylistWritePolicy
from .rooms import RoomRegistry
from .scheduler import QueueScheduler, resolve_current
from .users import UserDirectory
from .voting import VotingEngine

__all__ = [
    "PlaylistStore",
    "PlaylistWritePolicy",
    "QueueScheduler",
    "RoomRegistry",
    "UserDirectory",
    "VideoCatalog",
    "VotingEngine",
    "resolve_current",
]
