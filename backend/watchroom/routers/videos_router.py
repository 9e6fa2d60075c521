"""Video catalog routes (browsing)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from watchroom.core.dependencies import get_engine
from watchroom.engine import Engine
from watchroom.routers.schemas import VideoResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/videos", tags=["videos"])


@router.get("", response_model=list[VideoResponse])
async def list_videos(engine: Engine = Depends(get_engine)) -> list[VideoResponse]:
    """Every registered video in insertion order."""
    return [VideoResponse.model_validate(v) for v in await engine.catalog.list_videos()]


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(video_id: int, engine: Engine = Depends(get_engine)) -> VideoResponse:
    return VideoResponse.model_validate(await engine.catalog.get_video(video_id))
