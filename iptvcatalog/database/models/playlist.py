"""
Playlist Database Models

Defines PlaylistSource (an M3U URL or Xtream Codes account) and the
Category rows created while ingesting it.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iptvcatalog.database.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from iptvcatalog.database.models.catalog import ChannelRow, EpisodeRow, MovieRow, SeriesRow


class PlaylistSource(Base, TimestampMixin):
    """
    A configured playlist source.

    M3U sources carry ``url``; Xtream sources carry ``server_url``,
    ``username`` and ``password``. Counts are refreshed after every
    successful ingestion.
    """

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # "m3u" or "xtream"
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="m3u")

    # M3U
    url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Xtream Codes
    server_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_refreshed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    channel_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    movie_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    series_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    categories: Mapped[list["Category"]] = relationship(
        "Category",
        back_populates="playlist",
        cascade="all, delete-orphan",
    )
    channels: Mapped[list["ChannelRow"]] = relationship(
        "ChannelRow",
        back_populates="playlist",
        cascade="all, delete-orphan",
    )
    movies: Mapped[list["MovieRow"]] = relationship(
        "MovieRow",
        back_populates="playlist",
        cascade="all, delete-orphan",
    )
    series: Mapped[list["SeriesRow"]] = relationship(
        "SeriesRow",
        back_populates="playlist",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<PlaylistSource {self.id}: {self.name} ({self.type})>"


class Category(Base):
    """Group of one content kind within a playlist."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    # "live_tv", "movie" or "series"
    content_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Provider category id (Xtream)
    external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    playlist: Mapped["PlaylistSource"] = relationship("PlaylistSource", back_populates="categories")

    def __repr__(self) -> str:
        return f"<Category {self.content_type}:{self.name}>"
