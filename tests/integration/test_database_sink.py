"""
Integration tests for the SQLAlchemy catalog sink.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from iptvcatalog.database.models import (
    Category,
    ChannelRow,
    EpisodeRow,
    MovieRow,
    PlaylistSource,
    SeriesRow,
)
from iptvcatalog.database.sink import (
    DatabaseCatalogSink,
    clear_playlist_content,
    count_playlist_content,
)
from iptvcatalog.ingest.entities import Channel, ContentType, Episode, Movie, Series
from iptvcatalog.ingest.parser import M3UParser


@pytest.fixture
def playlist(db_session: Session) -> PlaylistSource:
    playlist = PlaylistSource(name="Provider", type="m3u", url="http://provider.example/list.m3u")
    db_session.add(playlist)
    db_session.commit()
    return playlist


def count(session: Session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


@pytest.mark.integration
class TestDatabaseCatalogSink:
    """Tests for DatabaseCatalogSink."""

    @pytest.mark.asyncio
    async def test_channel_batch_creates_categories(self, db_session, playlist):
        sink = DatabaseCatalogSink(db_session, playlist.id)

        await sink.on_channel_batch(
            [
                Channel(playlist.id, "BBC One", "http://h/1.ts", group_title="UK", order=1),
                Channel(playlist.id, "ITV", "http://h/2.ts", group_title="UK", order=2),
                Channel(playlist.id, "CNN", "http://h/3.ts", group_title="US", order=3),
                Channel(playlist.id, "Loose", "http://h/4.ts", order=4),
            ]
        )

        categories = db_session.scalars(select(Category).order_by(Category.order)).all()
        assert [(c.name, c.content_type, c.order) for c in categories] == [
            ("UK", "live_tv", 0),
            ("US", "live_tv", 1),
        ]
        rows = db_session.scalars(select(ChannelRow).order_by(ChannelRow.order)).all()
        assert rows[0].category_id == rows[1].category_id == categories[0].id
        assert rows[2].category_id == categories[1].id
        assert rows[3].category_id is None
        assert rows[0].is_favorite is False
        assert sink.channels_written == 4

    @pytest.mark.asyncio
    async def test_same_group_name_per_kind(self, db_session, playlist):
        """A group used by channels and movies yields one category per kind."""
        sink = DatabaseCatalogSink(db_session, playlist.id)

        await sink.on_channel_batch([Channel(playlist.id, "A", "http://h/1.ts", group_title="Mix")])
        await sink.on_movie_batch([Movie(playlist.id, "B", "http://h/2.mkv", genre="Mix")])

        kinds = db_session.scalars(select(Category.content_type).order_by(Category.id)).all()
        assert kinds == ["live_tv", "movie"]

    @pytest.mark.asyncio
    async def test_series_batch_returns_ids(self, db_session, playlist):
        sink = DatabaseCatalogSink(db_session, playlist.id)

        ids = await sink.on_series_batch(
            [Series(playlist.id, "Lost", genre="Drama"), Series(playlist.id, "Dark", genre="Drama")]
        )
        await sink.on_episode_batch(
            [
                Episode(ids["Lost"], "Lost S01E01", "http://h/e1.mkv", 1, 1),
                Episode(ids["Lost"], "Lost S01E02", "http://h/e2.mkv", 1, 2),
            ]
        )

        lost = db_session.get(SeriesRow, ids["Lost"])
        assert lost.name == "Lost"
        assert [e.episode_num for e in lost.episodes] == [1, 2]
        assert sink.series_written == 2
        assert sink.episodes_written == 2

    @pytest.mark.asyncio
    async def test_empty_batches(self, db_session, playlist):
        sink = DatabaseCatalogSink(db_session, playlist.id)

        await sink.on_channel_batch([])
        await sink.on_episode_batch([])

        assert count(db_session, ChannelRow) == 0
        assert sink.channels_written == 0

    def test_register_categories_keeps_provider_order(self, db_session, playlist):
        sink = DatabaseCatalogSink(db_session, playlist.id)

        sink.register_categories(
            [
                (ContentType.LIVE_TV, "News", "1"),
                (ContentType.MOVIE, "Action", "10"),
                (ContentType.SERIES, "Drama", "20"),
            ]
        )

        categories = db_session.scalars(select(Category).order_by(Category.order)).all()
        assert [(c.name, c.external_id, c.order) for c in categories] == [
            ("News", "1", 0),
            ("Action", "10", 1),
            ("Drama", "20", 2),
        ]
        # Later batches reuse registered categories
        assert sink.categories.assign(ContentType.MOVIE, "Action") == categories[1].id

    @pytest.mark.asyncio
    async def test_parser_into_sink(self, db_session, playlist, write_m3u, sample_playlist):
        sink = DatabaseCatalogSink(db_session, playlist.id)

        result = await M3UParser(batch_size=2).parse_file(write_m3u(sample_playlist), playlist.id, sink)

        assert result.channel_count == 2
        assert count_playlist_content(db_session, playlist.id) == {
            "channels": 2,
            "movies": 1,
            "series": 1,
        }
        assert count(db_session, EpisodeRow) == 2
        assert sink.groups == {"UK News", "UK Sports", "VOD | Action", "Series | Comedy"}
        assert count(db_session, Category) == 4


@pytest.mark.integration
class TestClearPlaylistContent:
    """Tests for clear_playlist_content()."""

    @pytest.mark.asyncio
    async def test_clears_only_that_playlist(self, db_session, playlist, write_m3u, sample_playlist):
        other = PlaylistSource(name="Other", type="m3u", url="http://other.example/list.m3u")
        db_session.add(other)
        db_session.commit()
        path = write_m3u(sample_playlist)
        parser = M3UParser()
        await parser.parse_file(path, playlist.id, DatabaseCatalogSink(db_session, playlist.id))
        await parser.parse_file(path, other.id, DatabaseCatalogSink(db_session, other.id))

        clear_playlist_content(db_session, playlist.id)
        db_session.commit()

        assert count_playlist_content(db_session, playlist.id) == {
            "channels": 0,
            "movies": 0,
            "series": 0,
        }
        assert count_playlist_content(db_session, other.id)["channels"] == 2
        assert count(db_session, EpisodeRow) == 2
        assert count(db_session, MovieRow) == 1
        assert count(db_session, Category) == 4
