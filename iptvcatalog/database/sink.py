"""
SQLAlchemy sink for parsed catalog batches.

Implements the ParseCallback protocol: each batch is written and committed
on arrival so memory stays bounded however large the playlist is.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from iptvcatalog.database.models import Category, ChannelRow, EpisodeRow, MovieRow, SeriesRow
from iptvcatalog.ingest.categories import CategoryAssigner
from iptvcatalog.ingest.entities import Channel, ContentType, Episode, Movie, Series

logger = logging.getLogger(__name__)


class DatabaseCatalogSink:
    """Writes one playlist's catalog batches through a Session."""

    def __init__(self, session: Session, playlist_id: int):
        self.session = session
        self.playlist_id = playlist_id
        self.categories = CategoryAssigner(self._create_category)
        self.groups: set[str] = set()

        self.channels_written = 0
        self.movies_written = 0
        self.series_written = 0
        self.episodes_written = 0

    def _create_category(
        self, content_type: ContentType, name: str, order: int, external_id: str | None
    ) -> int:
        category = Category(
            playlist_id=self.playlist_id,
            name=name,
            content_type=content_type.value,
            external_id=external_id,
            order=order,
        )
        self.session.add(category)
        self.session.flush()
        return category.id

    def register_categories(self, categories: Iterable[tuple[ContentType, str, str | None]]) -> None:
        """Create categories up front (provider order), e.g. for Xtream feeds."""
        for content_type, name, external_id in categories:
            self.categories.assign(content_type, name, external_id)
        self.session.commit()

    async def on_channel_batch(self, channels: list[Channel]) -> None:
        rows = []
        for channel in channels:
            category_id = channel.category_id
            if category_id is None:
                category_id = self.categories.assign(ContentType.LIVE_TV, channel.group_title)
            rows.append(
                {
                    "playlist_id": channel.playlist_id,
                    "category_id": category_id,
                    "stream_id": channel.stream_id,
                    "name": channel.name,
                    "stream_url": channel.stream_url,
                    "logo_url": channel.logo_url,
                    "group_title": channel.group_title,
                    "epg_channel_id": channel.epg_channel_id,
                    "order": channel.order,
                    "is_divider": channel.is_divider,
                }
            )
        if rows:
            self.session.execute(insert(ChannelRow), rows)
            self.session.commit()
        self.channels_written += len(rows)
        logger.debug(f"Stored {len(rows)} channels (total {self.channels_written})")

    async def on_movie_batch(self, movies: list[Movie]) -> None:
        rows = []
        for movie in movies:
            category_id = movie.category_id
            if category_id is None:
                category_id = self.categories.assign(ContentType.MOVIE, movie.genre)
            rows.append(
                {
                    "playlist_id": movie.playlist_id,
                    "category_id": category_id,
                    "stream_id": movie.stream_id,
                    "name": movie.name,
                    "stream_url": movie.stream_url,
                    "poster_url": movie.poster_url,
                    "genre": movie.genre,
                    "rating": movie.rating,
                    "container_extension": movie.container_extension,
                }
            )
        if rows:
            self.session.execute(insert(MovieRow), rows)
            self.session.commit()
        self.movies_written += len(rows)
        logger.debug(f"Stored {len(rows)} movies (total {self.movies_written})")

    async def on_series_batch(self, series: list[Series]) -> dict[str, int]:
        rows = []
        for item in series:
            category_id = item.category_id
            if category_id is None:
                category_id = self.categories.assign(ContentType.SERIES, item.genre)
            rows.append(
                SeriesRow(
                    playlist_id=item.playlist_id,
                    category_id=category_id,
                    series_id=item.series_id,
                    name=item.name,
                    poster_url=item.poster_url,
                    genre=item.genre,
                    plot=item.plot,
                    cast=item.cast,
                    director=item.director,
                    release_date=item.release_date,
                    rating=item.rating,
                    backdrop_url=item.backdrop_url,
                )
            )
        self.session.add_all(rows)
        # Flush assigns the ids episodes need
        self.session.flush()
        series_ids = {row.name: row.id for row in rows}
        self.session.commit()
        self.series_written += len(rows)
        logger.debug(f"Stored {len(rows)} series (total {self.series_written})")
        return series_ids

    async def on_episode_batch(self, episodes: list[Episode]) -> None:
        rows = [
            {
                "series_id": episode.series_id,
                "episode_id": episode.episode_id,
                "name": episode.name,
                "stream_url": episode.stream_url,
                "season": episode.season,
                "episode_num": episode.episode_num,
                "poster_url": episode.poster_url,
                "container_extension": episode.container_extension,
            }
            for episode in episodes
        ]
        if rows:
            self.session.execute(insert(EpisodeRow), rows)
            self.session.commit()
        self.episodes_written += len(rows)
        logger.debug(f"Stored {len(rows)} episodes (total {self.episodes_written})")

    async def on_groups_found(self, groups: set[str]) -> None:
        self.groups = set(groups)
        logger.info(
            f"Playlist {self.playlist_id}: {len(groups)} groups, "
            f"{self.categories.category_count} categories"
        )


def clear_playlist_content(session: Session, playlist_id: int) -> None:
    """Delete every category and catalog row owned by a playlist. Does not commit."""
    series_ids = select(SeriesRow.id).where(SeriesRow.playlist_id == playlist_id)
    session.execute(delete(EpisodeRow).where(EpisodeRow.series_id.in_(series_ids)))
    session.execute(delete(SeriesRow).where(SeriesRow.playlist_id == playlist_id))
    session.execute(delete(ChannelRow).where(ChannelRow.playlist_id == playlist_id))
    session.execute(delete(MovieRow).where(MovieRow.playlist_id == playlist_id))
    session.execute(delete(Category).where(Category.playlist_id == playlist_id))
    logger.debug(f"Cleared catalog content for playlist {playlist_id}")


def count_playlist_content(session: Session, playlist_id: int) -> dict[str, int]:
    """Count stored channels, movies and series for a playlist."""

    def _count(model) -> int:
        return session.scalar(
            select(func.count()).select_from(model).where(model.playlist_id == playlist_id)
        ) or 0

    return {
        "channels": _count(ChannelRow),
        "movies": _count(MovieRow),
        "series": _count(SeriesRow),
    }
