"""Catalog entities produced by the ingestion pipeline"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Kind of catalog content an entry represents."""

    LIVE_TV = "live_tv"
    MOVIE = "movie"
    SERIES = "series"


class PlaylistType(str, Enum):
    """How a playlist source is located."""

    M3U = "m3u"
    XTREAM = "xtream"


@dataclass
class Channel:
    """Live TV channel (or a non-selectable divider row)."""

    playlist_id: int
    name: str
    stream_url: str
    logo_url: str | None = None
    group_title: str | None = None
    epg_channel_id: str | None = None
    order: int = 0
    is_divider: bool = False
    category_id: int | None = None
    stream_id: str | None = None


@dataclass
class Movie:
    """VOD movie entry."""

    playlist_id: int
    name: str
    stream_url: str
    poster_url: str | None = None
    genre: str | None = None
    category_id: int | None = None
    stream_id: str | None = None
    rating: float | None = None
    container_extension: str | None = None


@dataclass
class Series:
    """Series parent entry; episodes reference it by identifier once persisted."""

    playlist_id: int
    name: str
    poster_url: str | None = None
    genre: str | None = None
    category_id: int | None = None
    series_id: str | None = None
    plot: str | None = None
    cast: str | None = None
    director: str | None = None
    release_date: str | None = None
    rating: float | None = None
    backdrop_url: str | None = None


@dataclass
class PendingEpisode:
    """Episode whose parent series has no persisted identifier yet."""

    series_name: str
    name: str
    stream_url: str
    season: int
    episode_num: int
    poster_url: str | None = None
    genre: str | None = None

    def resolve(self, series_id: int) -> "Episode":
        return Episode(
            series_id=series_id,
            name=self.name,
            stream_url=self.stream_url,
            season=self.season,
            episode_num=self.episode_num,
            poster_url=self.poster_url,
        )


@dataclass
class Episode:
    """Episode bound to a persisted series."""

    series_id: int
    name: str
    stream_url: str
    season: int
    episode_num: int
    poster_url: str | None = None
    episode_id: str | None = None
    container_extension: str | None = None


@dataclass
class ParseResult:
    """Statistics for one ingestion run."""

    channel_count: int = 0
    movie_count: int = 0
    series_count: int = 0
    episode_count: int = 0
    group_count: int = 0
    blocked_count: int = 0
    entry_count: int = 0
    line_count: int = 0
    elapsed_seconds: float = 0.0
    groups: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "channels": self.channel_count,
            "movies": self.movie_count,
            "series": self.series_count,
            "episodes": self.episode_count,
            "groups": self.group_count,
            "blocked": self.blocked_count,
        }
