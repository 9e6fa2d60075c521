"""User record passthrough routes, fed by the external identity provider."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from watchroom.core.dependencies import get_engine
from watchroom.engine import Engine
from watchroom.routers.schemas import UserResponse, UserSave

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse | None)
async def save_user(body: UserSave, engine: Engine = Depends(get_engine)) -> UserResponse | None:
    """Upsert a profile. Returns null when the write was absorbed (lenient policy)."""
    user = await engine.users.save_user(body.model_dump())
    return UserResponse.model_validate(user) if user else None


@router.get("", response_model=list[UserResponse])
async def find_user(
    display_name: str = Query(..., min_length=1),
    engine: Engine = Depends(get_engine),
) -> list[UserResponse]:
    """All users with this display name (possibly none)."""
    return [UserResponse.model_validate(u) for u in await engine.users.find_user(display_name)]
