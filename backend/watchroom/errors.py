"""Error taxonomy shared by repositories, services and the HTTP layer."""

from __future__ import annotations


class WatchroomError(Exception):
    """Base class for all engine errors."""


class StorageError(WatchroomError):
    """The database is unavailable or a statement failed. Callers may retry."""


class NotFoundError(WatchroomError):
    """A referenced room, video or association does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key!r}")
