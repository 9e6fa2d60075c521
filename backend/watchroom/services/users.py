"""User directory: passthrough storage of profiles from the login provider."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.cache import AsyncTTLCache, cached
from watchroom.errors import StorageError
from watchroom.models.user import User
from watchroom.repositories.user import UserRepository
from watchroom.services.playlist import PlaylistWritePolicy

logger = logging.getLogger(__name__)

# save_user clears only this process; the TTL bounds staleness elsewhere
_user_cache = AsyncTTLCache(maxsize=256, ttl=5)


class UserDirectory:
    def __init__(
        self,
        pool: asyncpg.Pool,
        policy: PlaylistWritePolicy = PlaylistWritePolicy.LENIENT,
    ) -> None:
        self.user_repo = UserRepository(pool)
        self.policy = PlaylistWritePolicy(policy)

    async def save_user(self, profile: dict) -> User | None:
        """Store ``{externalId, displayName, avatarUrl}``; one row per externalId.

        Storage failures are logged and absorbed unless the policy is STRICT.
        """
        external_id = str(profile["externalId"])
        display_name = profile.get("displayName")
        try:
            user = await self.user_repo.upsert(external_id, display_name, profile.get("avatarUrl"))
        except StorageError as exc:
            if self.policy is PlaylistWritePolicy.STRICT:
                raise
            logger.warning(f"Error saving user {external_id}: {exc}")
            return None
        # a renamed user may sit under its old name
        _user_cache.clear()
        return user

    @cached(cache=_user_cache, key_func=lambda self, display_name: f"user:{display_name}")
    async def find_user(self, display_name: str) -> list[User]:
        return await self.user_repo.find_by_display_name(display_name)
