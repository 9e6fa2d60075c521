"""Bundle of the engine's services sharing one pool and one write policy."""

from __future__ import annotations

import asyncpg

from watchroom.services import (
    PlaylistStore,
    PlaylistWritePolicy,
    QueueScheduler,
    RoomRegistry,
    UserDirectory,
    VideoCatalog,
    VotingEngine,
)


class Engine:
    def __init__(
        self,
        pool: asyncpg.Pool,
        policy: PlaylistWritePolicy = PlaylistWritePolicy.LENIENT,
    ) -> None:
        self.catalog = VideoCatalog(pool)
        self.rooms = RoomRegistry(pool)
        self.playlist = PlaylistStore(pool, self.catalog, policy)
        self.voting = VotingEngine(pool)
        self.scheduler = QueueScheduler(pool, self.playlist)
        self.users = UserDirectory(pool, policy)
