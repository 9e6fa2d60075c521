"""Room, playlist, voting and queue routes.

NotFoundError and StorageError are mapped to 404 / 503 by the handlers
registered in ``watchroom.app``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from watchroom.core.config import get_settings
from watchroom.core.dependencies import get_engine
from watchroom.engine import Engine
from watchroom.models.video import VideoMetadata
from watchroom.repositories.video import extract_youtube_id, fetch_yt_info
from watchroom.routers.schemas import (
    IndexResponse,
    PlaylistEntryResponse,
    QueueStateResponse,
    RemoveResponse,
    RoomCreate,
    RoomResponse,
    VideoAdd,
    VoteRequest,
    VoteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


# ============================================
# Helpers
# ============================================


async def _enrich(body: VideoAdd) -> VideoMetadata:
    """Fill a missing title from the YouTube Data API when a key is configured."""
    metadata = VideoMetadata(
        url=body.url, title=body.title, creator=body.creator, description=body.description
    )
    api_key = get_settings().youtube_api_key
    youtube_id = extract_youtube_id(body.url)
    if metadata.title or not api_key or not youtube_id:
        return metadata

    title, channel, description = await fetch_yt_info(youtube_id, api_key)
    metadata.title = title
    metadata.creator = metadata.creator or channel
    metadata.description = metadata.description or description
    return metadata


async def _playlist(engine: Engine, room_id: int) -> list[PlaylistEntryResponse]:
    # Surface an unknown room as 404 instead of an empty list
    await engine.rooms.get_room_state(room_id)
    entries = await engine.playlist.list_room_videos(room_id)
    return [PlaylistEntryResponse.model_validate(e) for e in entries]


# ============================================
# Rooms
# ============================================


@router.post("", response_model=RoomResponse)
async def open_room(body: RoomCreate, engine: Engine = Depends(get_engine)) -> RoomResponse:
    """Get or create a room by name."""
    try:
        room = await engine.rooms.get_or_create_room(body.name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None
    return RoomResponse.model_validate(room)


@router.get("", response_model=list[RoomResponse])
async def list_rooms(
    name: str | None = Query(None, description="Only the room with this exact name"),
    engine: Engine = Depends(get_engine),
) -> list[RoomResponse]:
    """All rooms, or the named room (empty list if it does not exist)."""
    if name is not None:
        room = await engine.rooms.find_room(name)
        rooms = [room] if room is not None else []
    else:
        rooms = await engine.rooms.list_rooms()
    return [RoomResponse.model_validate(r) for r in rooms]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: int, engine: Engine = Depends(get_engine)) -> RoomResponse:
    return RoomResponse.model_validate(await engine.rooms.get_room_state(room_id))


@router.post("/{room_id}/start", response_model=RoomResponse)
async def mark_started(room_id: int, engine: Engine = Depends(get_engine)) -> RoomResponse:
    """Stamp the room's playback start time (last call wins)."""
    return RoomResponse.model_validate(await engine.rooms.mark_playback_started(room_id))


# ============================================
# Playlist
# ============================================


@router.get("/{room_id}/videos", response_model=list[PlaylistEntryResponse])
async def list_room_videos(
    room_id: int, engine: Engine = Depends(get_engine)
) -> list[PlaylistEntryResponse]:
    """Vote-ordered playlist."""
    return await _playlist(engine, room_id)


@router.post("/{room_id}/videos", response_model=list[PlaylistEntryResponse])
async def add_video(
    room_id: int, body: VideoAdd, engine: Engine = Depends(get_engine)
) -> list[PlaylistEntryResponse]:
    """Queue a video; returns the resulting playlist."""
    try:
        metadata = await _enrich(body)
        await engine.playlist.add_video_to_room(room_id, metadata)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None
    return await _playlist(engine, room_id)


@router.delete("/{room_id}/videos", response_model=RemoveResponse)
async def remove_video_by_name(
    room_id: int,
    name: str = Query(..., min_length=1, description="Display name of the video"),
    engine: Engine = Depends(get_engine),
) -> RemoveResponse:
    removed = await engine.playlist.remove_video_from_room(room_id, name)
    return RemoveResponse(removed=removed, playlist=await _playlist(engine, room_id))


@router.delete("/{room_id}/videos/{video_id}", response_model=RemoveResponse)
async def remove_video(
    room_id: int, video_id: int, engine: Engine = Depends(get_engine)
) -> RemoveResponse:
    removed = await engine.playlist.remove_video_by_id(room_id, video_id)
    return RemoveResponse(removed=removed, playlist=await _playlist(engine, room_id))


@router.post("/{room_id}/videos/{video_id}/vote", response_model=VoteResponse)
async def vote(
    room_id: int, video_id: int, body: VoteRequest, engine: Engine = Depends(get_engine)
) -> VoteResponse:
    votes = await engine.voting.apply_vote(room_id, video_id, body.direction)
    if votes is None:
        raise HTTPException(status_code=404, detail="Video is not queued in this room")
    return VoteResponse(room_id=room_id, video_id=video_id, votes=votes)


# ============================================
# Queue
# ============================================


@router.get("/{room_id}/queue", response_model=QueueStateResponse)
async def get_queue(room_id: int, engine: Engine = Depends(get_engine)) -> QueueStateResponse:
    """Cursor, playlist and the video currently at the cursor."""
    return QueueStateResponse.model_validate(await engine.scheduler.get_queue_state(room_id))


@router.get("/{room_id}/queue/index", response_model=IndexResponse)
async def get_index(room_id: int, engine: Engine = Depends(get_engine)) -> IndexResponse:
    index_key = await engine.scheduler.get_current_index(room_id)
    return IndexResponse(room_id=room_id, index_key=index_key)


@router.post("/{room_id}/queue/advance", response_model=QueueStateResponse)
async def advance(room_id: int, engine: Engine = Depends(get_engine)) -> QueueStateResponse:
    """Unclamped +1; the response says whether the queue is exhausted."""
    return QueueStateResponse.model_validate(await engine.scheduler.advance(room_id))


@router.post("/{room_id}/queue/next", response_model=QueueStateResponse)
async def play_next(room_id: int, engine: Engine = Depends(get_engine)) -> QueueStateResponse:
    """Advance only while videos remain, and restart the playback clock."""
    return QueueStateResponse.model_validate(await engine.scheduler.play_next(room_id))


@router.post("/{room_id}/queue/reset", response_model=QueueStateResponse)
async def reset(room_id: int, engine: Engine = Depends(get_engine)) -> QueueStateResponse:
    return QueueStateResponse.model_validate(await engine.scheduler.reset(room_id))
