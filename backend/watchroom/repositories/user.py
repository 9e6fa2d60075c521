"""Repository for the users table."""

from __future__ import annotations

import logging

import asyncpg

from watchroom.database import acquire
from watchroom.models.user import User

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, external_id, display_name, avatar_url, created_at, updated_at"


class UserRepository:
    """Pure SQL operations for users."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def upsert(
        self,
        external_id: str,
        display_name: str | None,
        avatar_url: str | None,
    ) -> User:
        """Insert or refresh the profile for an external identity."""
        async with acquire(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO users (external_id, display_name, avatar_url)
                VALUES ($1, $2, $3)
                ON CONFLICT (external_id) DO UPDATE SET
                    display_name = EXCLUDED.display_name,
                    avatar_url   = EXCLUDED.avatar_url,
                    updated_at   = NOW()
                RETURNING {_USER_COLUMNS}
                """,
                external_id,
                display_name,
                avatar_url,
            )
            return User(**dict(row))

    async def find_by_display_name(self, display_name: str) -> list[User]:
        async with acquire(self.pool) as conn:
            rows = await conn.fetch(
                f"SELECT {_USER_COLUMNS} FROM users WHERE display_name = $1 ORDER BY id ASC",
                display_name,
            )
            return [User(**dict(row)) for row in rows]
