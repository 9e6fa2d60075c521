"""Request / response models shared by the routers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    index_key: int
    start_time: datetime | None


class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    video_name: str | None
    creator: str | None
    url: str
    description: str | None


class PlaylistEntryResponse(VideoResponse):
    votes: int
    playlist_position: int | None = None


class QueueStateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room: RoomResponse
    index_key: int
    playlist_length: int
    exhausted: bool
    current: PlaylistEntryResponse | None
    playlist: list[PlaylistEntryResponse]
    elapsed_seconds: float | None


class IndexResponse(BaseModel):
    room_id: int
    index_key: int


class VideoAdd(BaseModel):
    url: str = Field(..., min_length=1)
    title: str | None = None
    creator: str | None = None
    description: str | None = None


class VoteRequest(BaseModel):
    direction: str = Field(..., pattern=r"^(\+|-|up|down)$")


class VoteResponse(BaseModel):
    room_id: int
    video_id: int
    votes: int


class RemoveResponse(BaseModel):
    removed: bool
    playlist: list[PlaylistEntryResponse]


class UserSave(BaseModel):
    externalId: str = Field(..., min_length=1)
    displayName: str | None = None
    avatarUrl: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    display_name: str | None
    avatar_url: str | None
