"""
iptvcatalog Database Models

SQLAlchemy models for playlist sources, categories and the ingested
catalog (channels, movies, series, episodes).
"""

from iptvcatalog.database.models.base import Base, TimestampMixin
from iptvcatalog.database.models.catalog import ChannelRow, EpisodeRow, MovieRow, SeriesRow
from iptvcatalog.database.models.playlist import Category, PlaylistSource

__all__ = [
    "Base",
    "Category",
    "ChannelRow",
    "EpisodeRow",
    "MovieRow",
    "PlaylistSource",
    "SeriesRow",
    "TimestampMixin",
]
