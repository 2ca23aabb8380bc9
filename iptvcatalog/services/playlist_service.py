"""
Playlist management and refresh orchestration.

A refresh downloads the playlist to a staging file, clears the previous
catalog, streams the file through the parser into the database sink and
finally records the stored counts on the playlist. Transient failures are
retried as whole attempts; a failed download never touches the existing
catalog.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse

import httpx
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from iptvcatalog.config import IPTVCatalogConfig, get_config
from iptvcatalog.database.models import EpisodeRow, PlaylistSource, SeriesRow
from iptvcatalog.database.sink import (
    DatabaseCatalogSink,
    clear_playlist_content,
    count_playlist_content,
)
from iptvcatalog.fetch.downloader import PlaylistDownloader
from iptvcatalog.fetch.errors import InvalidPlaylistError, PlaylistNotFoundError
from iptvcatalog.fetch.retry_manager import RefreshRetryManager, RetryConfig
from iptvcatalog.fetch.xtream import XtreamClient, XtreamContent, XtreamContentConverter
from iptvcatalog.ingest.entities import ParseResult, PlaylistType
from iptvcatalog.ingest.parser import M3UParser

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    """Phase of the current refresh run."""

    IDLE = "idle"
    DOWNLOADING = "downloading"
    PARSING = "parsing"
    CATEGORIZING = "categorizing"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class RefreshResult:
    """Outcome of a successful refresh."""

    playlist_id: int
    parse_result: ParseResult
    attempts: int
    elapsed_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "playlist_id": self.playlist_id,
            "attempts": self.attempts,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            **self.parse_result.to_dict(),
        }


def validate_http_url(url: str | None, label: str = "Playlist URL") -> str:
    """
    Check that ``url`` is an absolute http(s) URL.

    Raises:
        InvalidPlaylistError: If the URL is missing or not http(s)
    """
    if not url or not url.strip():
        raise InvalidPlaylistError(f"{label} is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidPlaylistError(f"{label} must be an http:// or https:// URL")
    return url


class PlaylistService:
    """
    CRUD and refresh for playlist sources.

    One service instance per Session; concurrent refreshes need separate
    sessions (and therefore separate services).
    """

    def __init__(
        self,
        session: Session,
        config: IPTVCatalogConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self.config = config or get_config()
        self.transport = transport
        self.downloader = PlaylistDownloader(self.config.fetch, transport=transport)
        self.parser = M3UParser.from_config(self.config.ingest)
        self.state = RefreshState.IDLE

    # ============ Queries ============

    def list_playlists(self) -> list[PlaylistSource]:
        return list(self.session.scalars(select(PlaylistSource).order_by(PlaylistSource.id)))

    def get_playlist(self, playlist_id: int) -> PlaylistSource:
        playlist = self.session.get(PlaylistSource, playlist_id)
        if playlist is None:
            raise PlaylistNotFoundError(f"Playlist {playlist_id} not found")
        return playlist

    def get_series(self, playlist_id: int, series_row_id: int) -> SeriesRow:
        self.get_playlist(playlist_id)
        series = self.session.get(SeriesRow, series_row_id)
        if series is None or series.playlist_id != playlist_id:
            raise PlaylistNotFoundError(f"Series {series_row_id} not found in playlist {playlist_id}")
        return series

    def list_episodes(self, series_row_id: int) -> list[EpisodeRow]:
        query = (
            select(EpisodeRow)
            .where(EpisodeRow.series_id == series_row_id)
            .order_by(EpisodeRow.season, EpisodeRow.episode_num, EpisodeRow.id)
        )
        return list(self.session.scalars(query))

    async def load_series_episodes(self, playlist_id: int, series_row_id: int) -> list[EpisodeRow]:
        """
        Episodes of a stored series.

        M3U episodes arrive with the playlist itself. Xtream listings carry
        series only, so for Xtream playlists the episodes are fetched with
        ``get_series_info`` and replace whatever was stored for the series.

        Raises:
            PlaylistNotFoundError: If the playlist or series does not exist
            InvalidPlaylistError: If the series has no provider id
            FetchError: If the provider request fails
        """
        series = self.get_series(playlist_id, series_row_id)
        playlist = series.playlist
        if playlist.type != PlaylistType.XTREAM.value:
            return self.list_episodes(series.id)

        if not series.series_id:
            raise InvalidPlaylistError(f"Series '{series.name}' has no provider series id")
        server_url = validate_http_url(playlist.server_url, "Server URL")
        converter = self._xtream_converter(playlist, server_url)

        series_info = await converter.client.get_series_info(series.series_id)
        episodes = converter.convert_episodes(series_info, series.id)

        try:
            self.session.execute(delete(EpisodeRow).where(EpisodeRow.series_id == series.id))
            sink = DatabaseCatalogSink(self.session, playlist_id)
            batch_size = self.config.ingest.batch_size
            for start in range(0, len(episodes), batch_size):
                await sink.on_episode_batch(episodes[start:start + batch_size])
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Loaded {len(episodes)} episodes for series '{series.name}' ({series.id})")
        return self.list_episodes(series.id)

    # ============ Mutations ============

    async def add_m3u_playlist(self, name: str, url: str) -> PlaylistSource:
        """Create an M3U playlist and run its first refresh."""
        url = validate_http_url(url)
        playlist = PlaylistSource(name=name, type=PlaylistType.M3U.value, url=url)
        return await self._add_and_refresh(playlist)

    async def add_xtream_playlist(
        self, name: str, server_url: str, username: str, password: str
    ) -> PlaylistSource:
        """Create an Xtream Codes playlist and run its first refresh."""
        server_url = validate_http_url(server_url, "Server URL")
        if not username or not password:
            raise InvalidPlaylistError("Username and password are required")
        playlist = PlaylistSource(
            name=name,
            type=PlaylistType.XTREAM.value,
            server_url=server_url,
            username=username,
            password=password,
        )
        return await self._add_and_refresh(playlist)

    async def _add_and_refresh(self, playlist: PlaylistSource) -> PlaylistSource:
        self.session.add(playlist)
        self.session.commit()
        playlist_id = playlist.id
        logger.info(f"Added playlist {playlist_id} ({playlist.type}): {playlist.name}")

        try:
            await self.refresh_playlist(playlist_id)
        except Exception:
            logger.warning(f"Initial refresh of playlist {playlist_id} failed, removing it")
            self.session.rollback()
            self.delete_playlist(playlist_id)
            raise

        return playlist

    def delete_playlist(self, playlist_id: int) -> None:
        playlist = self.get_playlist(playlist_id)
        clear_playlist_content(self.session, playlist_id)
        self.session.delete(playlist)
        self.session.commit()
        logger.info(f"Deleted playlist {playlist_id}")

    def set_playlist_active(self, playlist_id: int, active: bool) -> PlaylistSource:
        playlist = self.get_playlist(playlist_id)
        playlist.is_active = active
        self.session.commit()
        return playlist

    # ============ Refresh ============

    async def refresh_playlist(self, playlist_id: int) -> RefreshResult:
        """
        Re-ingest a playlist's catalog.

        Raises:
            PlaylistNotFoundError: If the playlist does not exist
            InvalidPlaylistError: If the playlist lacks a URL or credentials
            PlaylistError: If fetching or parsing fails after all retries
        """
        playlist = self.get_playlist(playlist_id)
        start_time = time.monotonic()
        logger.info(f"=== Refreshing playlist {playlist_id}: {playlist.name} ===")

        try:
            if playlist.type == PlaylistType.XTREAM.value:
                parse_result, attempts = await self._refresh_xtream(playlist)
            else:
                parse_result, attempts = await self._refresh_m3u(playlist)

            self.state = RefreshState.CATEGORIZING
            counts = count_playlist_content(self.session, playlist_id)
            playlist.channel_count = counts["channels"]
            playlist.movie_count = counts["movies"]
            playlist.series_count = counts["series"]
            playlist.last_refreshed_at = datetime.utcnow()
            self.session.commit()
        except Exception:
            self.state = RefreshState.FAILED
            self.session.rollback()
            raise

        self.state = RefreshState.COMMITTED
        elapsed = time.monotonic() - start_time
        logger.info(
            f"Playlist {playlist_id} refreshed in {elapsed:.1f}s: "
            f"{playlist.channel_count} channels, {playlist.movie_count} movies, "
            f"{playlist.series_count} series"
        )
        return RefreshResult(playlist_id, parse_result, attempts, elapsed)

    async def _refresh_m3u(self, playlist: PlaylistSource) -> tuple[ParseResult, int]:
        url = validate_http_url(playlist.url)
        playlist_id = playlist.id
        retry_manager = RefreshRetryManager(
            RetryConfig(
                max_attempts=self.config.fetch.max_attempts,
                backoff_seconds=self.config.fetch.retry_backoff_seconds,
            )
        )
        catalog_touched = False
        attempts = 0

        async def attempt(attempt_number: int) -> ParseResult:
            nonlocal catalog_touched, attempts
            attempts = attempt_number

            self.state = RefreshState.DOWNLOADING
            download = await self.downloader.download(url, playlist_id)

            self.state = RefreshState.PARSING
            clear_playlist_content(self.session, playlist_id)
            self.session.commit()
            catalog_touched = True

            sink = DatabaseCatalogSink(self.session, playlist_id)
            return await self.parser.parse_file(download.path, playlist_id, sink)

        async def discard_partial(attempt_number: int) -> None:
            self.downloader.discard_staging(playlist_id)
            self.session.rollback()
            if catalog_touched:
                logger.info(f"Clearing partial content of playlist {playlist_id} before retry")
                clear_playlist_content(self.session, playlist_id)
                self.session.commit()

        try:
            result = await retry_manager.execute_with_retry(
                attempt, discard_partial, f"Refresh of playlist {playlist_id}"
            )
        finally:
            self.downloader.discard_staging(playlist_id)

        return result, attempts

    def _xtream_converter(self, playlist: PlaylistSource, server_url: str) -> XtreamContentConverter:
        client = XtreamClient(
            server_url,
            playlist.username,
            playlist.password,
            timeout=self.config.xtream.timeout,
            transport=self.transport,
        )
        return XtreamContentConverter(client, self.config.ingest.blocked_group_patterns)

    async def _refresh_xtream(self, playlist: PlaylistSource) -> tuple[ParseResult, int]:
        server_url = validate_http_url(playlist.server_url, "Server URL")
        if not playlist.username or not playlist.password:
            raise InvalidPlaylistError("Username and password are required")

        converter = self._xtream_converter(playlist, server_url)

        self.state = RefreshState.DOWNLOADING
        content = await converter.fetch_all_content(playlist.id)

        self.state = RefreshState.PARSING
        clear_playlist_content(self.session, playlist.id)
        self.session.commit()
        return await self._store_xtream_content(playlist.id, content), 1

    async def _store_xtream_content(self, playlist_id: int, content: XtreamContent) -> ParseResult:
        sink = DatabaseCatalogSink(self.session, playlist_id)
        sink.register_categories(
            (category.content_type, category.name, category.external_id)
            for category in content.categories
        )

        batch_size = self.config.ingest.batch_size
        for start in range(0, len(content.channels), batch_size):
            await sink.on_channel_batch(content.channels[start:start + batch_size])
        for start in range(0, len(content.movies), batch_size):
            await sink.on_movie_batch(content.movies[start:start + batch_size])
        for start in range(0, len(content.series), batch_size):
            await sink.on_series_batch(content.series[start:start + batch_size])

        groups = {category.name for category in content.categories}
        await sink.on_groups_found(groups)

        return ParseResult(
            channel_count=len(content.channels),
            movie_count=len(content.movies),
            series_count=len(content.series),
            group_count=len(groups),
            blocked_count=content.blocked_count,
            entry_count=len(content.channels) + len(content.movies) + len(content.series),
            groups=groups,
        )


__all__ = ["PlaylistService", "RefreshResult", "RefreshState", "validate_http_url"]
