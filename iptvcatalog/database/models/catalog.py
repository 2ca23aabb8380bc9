"""
Catalog Database Models

Channel, movie, series and episode rows. Each mirrors its ingestion
dataclass and adds the viewer-owned fields (favorites, watch state) that
ingestion never writes.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iptvcatalog.database.models.base import Base

if TYPE_CHECKING:
    from iptvcatalog.database.models.playlist import PlaylistSource


def _playlist_fk() -> Mapped[int]:
    return mapped_column(
        Integer,
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _category_fk() -> Mapped[int | None]:
    return mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class ChannelRow(Base):
    """Live TV channel."""

    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = _playlist_fk()
    category_id: Mapped[int | None] = _category_fk()

    stream_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    stream_url: Mapped[str] = mapped_column(Text, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    group_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    epg_channel_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_divider: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_watched: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    playlist: Mapped["PlaylistSource"] = relationship("PlaylistSource", back_populates="channels")

    def __repr__(self) -> str:
        return f"<ChannelRow {self.name}>"


class MovieRow(Base):
    """VOD movie."""

    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = _playlist_fk()
    category_id: Mapped[int | None] = _category_fk()

    stream_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    stream_url: Mapped[str] = mapped_column(Text, nullable=False)
    poster_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    genre: Mapped[str | None] = mapped_column(String(500), nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    container_extension: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_watched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    watch_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_watched: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    playlist: Mapped["PlaylistSource"] = relationship("PlaylistSource", back_populates="movies")

    def __repr__(self) -> str:
        return f"<MovieRow {self.name}>"


class SeriesRow(Base):
    """Series parent; owns its episodes."""

    __tablename__ = "series"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = _playlist_fk()
    category_id: Mapped[int | None] = _category_fk()

    series_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    poster_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    genre: Mapped[str | None] = mapped_column(String(500), nullable=True)
    plot: Mapped[str | None] = mapped_column(Text, nullable=True)
    cast: Mapped[str | None] = mapped_column(Text, nullable=True)
    director: Mapped[str | None] = mapped_column(String(500), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    backdrop_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_watched: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    playlist: Mapped["PlaylistSource"] = relationship("PlaylistSource", back_populates="series")
    episodes: Mapped[list["EpisodeRow"]] = relationship(
        "EpisodeRow",
        back_populates="series",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<SeriesRow {self.name}>"


class EpisodeRow(Base):
    """Episode of a stored series."""

    __tablename__ = "episodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    series_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("series.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    episode_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    stream_url: Mapped[str] = mapped_column(Text, nullable=False)
    season: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    episode_num: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    poster_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    container_extension: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_watched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    watch_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_watched: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    series: Mapped["SeriesRow"] = relationship("SeriesRow", back_populates="episodes")

    def __repr__(self) -> str:
        return f"<EpisodeRow S{self.season:02d}E{self.episode_num:02d} {self.name}>"
