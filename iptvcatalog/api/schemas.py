"""Pydantic schemas for API requests and responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class PlaylistBase(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class M3UPlaylistCreate(PlaylistBase):
    url: str


class XtreamPlaylistCreate(PlaylistBase):
    server_url: str
    username: str
    password: str


class PlaylistActiveUpdate(BaseModel):
    is_active: bool


class PlaylistResponse(BaseModel):
    """Playlist as returned by the API; credentials are never echoed back."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    url: Optional[str] = None
    server_url: Optional[str] = None
    username: Optional[str] = None
    is_active: bool
    last_refreshed_at: Optional[datetime] = None
    channel_count: int = 0
    movie_count: int = 0
    series_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RefreshResponse(BaseModel):
    playlist_id: int
    attempts: int
    elapsed_seconds: float
    channels: int
    movies: int
    series: int
    episodes: int
    groups: int
    blocked: int


class EpisodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    series_id: int
    episode_id: Optional[str] = None
    name: str
    stream_url: str
    season: int
    episode_num: int
    poster_url: Optional[str] = None
    container_extension: Optional[str] = None
