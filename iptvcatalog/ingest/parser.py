"""Streaming M3U playlist parser that emits categorized catalog batches"""

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from iptvcatalog.config import IngestConfig
from iptvcatalog.fetch.errors import parse_stream_error
from iptvcatalog.ingest.attributes import (
    GROUP_TITLE_KEY,
    TVG_ID_KEY,
    TVG_LOGO_KEY,
    extract_attribute,
    extract_display_name,
)
from iptvcatalog.ingest.batching import BatchEmitter, ParseCallback
from iptvcatalog.ingest.classifier import classify, is_divider
from iptvcatalog.ingest.content_filter import BLOCKED_GROUP_PATTERNS, GroupFilter
from iptvcatalog.ingest.entities import (
    Channel,
    ContentType,
    Movie,
    ParseResult,
    PendingEpisode,
    Series,
)
from iptvcatalog.ingest.episodes import extract_series_info

logger = logging.getLogger(__name__)

EXTINF_MARKER = "#EXTINF:"
DEFAULT_GROUP = "Other"
READ_BUFFER_SIZE = 262144  # 256KB


class ParserState(str, Enum):
    AWAITING_METADATA = "awaiting_metadata"
    AWAITING_URL = "awaiting_url"


@dataclass
class ParseContext:
    """Mutable state for one parse run."""

    playlist_id: int
    state: ParserState = ParserState.AWAITING_METADATA
    pending_metadata: str | None = None
    seen_series_names: set[str] = field(default_factory=set)
    groups: set[str] = field(default_factory=set)
    line_count: int = 0
    entry_count: int = 0
    channel_count: int = 0
    movie_count: int = 0
    series_count: int = 0
    episode_count: int = 0
    blocked_count: int = 0
    orphaned_count: int = 0

    def to_result(self, elapsed: float) -> ParseResult:
        return ParseResult(
            channel_count=self.channel_count,
            movie_count=self.movie_count,
            series_count=self.series_count,
            episode_count=self.episode_count,
            group_count=len(self.groups),
            blocked_count=self.blocked_count,
            entry_count=self.entry_count,
            line_count=self.line_count,
            elapsed_seconds=elapsed,
            groups=set(self.groups),
        )


class M3UParser:
    """
    Streaming M3U parser for very large playlists.

    Lines are consumed one at a time; nothing but the current metadata line
    and the bounded batches is held in memory. Each #EXTINF line is paired
    with the next URL line, filtered through the adult-content gate,
    classified, and handed to a BatchEmitter.
    """

    def __init__(
        self,
        batch_size: int = 5000,
        yield_interval: int = 100000,
        blocked_group_patterns: Iterable[str] = BLOCKED_GROUP_PATTERNS,
    ):
        self.batch_size = batch_size
        self.yield_interval = yield_interval
        self.group_filter = GroupFilter(blocked_group_patterns)

    @classmethod
    def from_config(cls, ingest: IngestConfig) -> "M3UParser":
        return cls(
            batch_size=ingest.batch_size,
            yield_interval=ingest.yield_interval,
            blocked_group_patterns=ingest.blocked_group_patterns,
        )

    async def parse_file(
        self, path: str | Path, playlist_id: int, callback: ParseCallback
    ) -> ParseResult:
        """
        Parse a local M3U file.

        Raises:
            FileNotFoundError: If the file does not exist
            ParseStreamError: If reading fails part way through
        """
        m3u_path = Path(path)
        if not m3u_path.exists():
            raise FileNotFoundError(f"M3U file not found: {path}")

        logger.info(f"Reading M3U from file: {m3u_path} ({m3u_path.stat().st_size} bytes)")
        with open(
            m3u_path, encoding="utf-8-sig", errors="replace", buffering=READ_BUFFER_SIZE
        ) as f:
            return await self.parse_streaming(f, playlist_id, callback)

    async def parse_streaming(
        self, lines: Iterable[str], playlist_id: int, callback: ParseCallback
    ) -> ParseResult:
        """
        Parse M3U lines and push entities to ``callback`` in bounded batches.

        Args:
            lines: Any iterable of text lines (an open file, a list, ...)
            playlist_id: Owner of every emitted entity
            callback: Sink receiving batches

        Returns:
            ParseResult with per-kind counts
        """
        logger.info(f"Starting M3U parse for playlist {playlist_id}")
        start_time = time.monotonic()

        ctx = ParseContext(playlist_id=playlist_id)
        emitter = BatchEmitter(callback, self.batch_size)

        try:
            for raw_line in lines:
                ctx.line_count += 1
                if ctx.line_count % self.yield_interval == 0:
                    await asyncio.sleep(0)

                line = raw_line.strip()
                if not line:
                    continue

                if line.startswith(EXTINF_MARKER):
                    if ctx.state is ParserState.AWAITING_URL:
                        ctx.orphaned_count += 1
                    ctx.pending_metadata = line
                    ctx.state = ParserState.AWAITING_URL
                elif ctx.state is ParserState.AWAITING_URL and not line.startswith("#"):
                    await self._handle_entry(ctx, emitter, ctx.pending_metadata, line)
                    ctx.pending_metadata = None
                    ctx.state = ParserState.AWAITING_METADATA
        except OSError as e:
            logger.error(
                f"I/O error after {ctx.line_count} lines, {ctx.entry_count} entries: {e}"
            )
            raise parse_stream_error(e, ctx.entry_count) from e

        if ctx.state is ParserState.AWAITING_URL:
            ctx.orphaned_count += 1

        await emitter.finish(ctx.groups)

        elapsed = time.monotonic() - start_time
        result = ctx.to_result(elapsed)
        summary = (
            f"Parse complete in {elapsed:.2f}s: {result.channel_count} channels, "
            f"{result.movie_count} movies, {result.series_count} series, "
            f"{result.episode_count} episodes, {result.group_count} groups"
        )
        if ctx.blocked_count:
            summary += f", {ctx.blocked_count} filtered (adult content)"
        logger.info(summary)
        if ctx.orphaned_count:
            logger.debug(f"Dropped {ctx.orphaned_count} #EXTINF lines without a URL")
        return result

    async def _handle_entry(
        self, ctx: ParseContext, emitter: BatchEmitter, metadata: str, url_line: str
    ) -> None:
        # Group first so blocked entries cost a single attribute scan
        group_title = extract_attribute(metadata, GROUP_TITLE_KEY) or DEFAULT_GROUP
        if self.group_filter.is_blocked(group_title):
            ctx.blocked_count += 1
            return

        tvg_id = extract_attribute(metadata, TVG_ID_KEY)
        if tvg_id is not None and not tvg_id.strip():
            tvg_id = None
        tvg_logo = extract_attribute(metadata, TVG_LOGO_KEY)
        display_name = extract_display_name(metadata)
        url = url_line.strip()

        ctx.entry_count += 1
        ctx.groups.add(group_title)

        content_type = classify(url, group_title, display_name)

        if content_type is ContentType.MOVIE:
            await emitter.add_movie(
                Movie(
                    playlist_id=ctx.playlist_id,
                    name=display_name,
                    stream_url=url,
                    poster_url=tvg_logo,
                    genre=group_title,
                )
            )
            ctx.movie_count += 1
        elif content_type is ContentType.SERIES:
            await self._handle_series_entry(ctx, emitter, display_name, url, tvg_logo, group_title)
        else:
            await emitter.add_channel(
                Channel(
                    playlist_id=ctx.playlist_id,
                    name=display_name,
                    stream_url=url,
                    logo_url=tvg_logo,
                    group_title=group_title,
                    epg_channel_id=tvg_id,
                    order=ctx.entry_count,
                    is_divider=is_divider(display_name, tvg_id),
                )
            )
            ctx.channel_count += 1

    async def _handle_series_entry(
        self,
        ctx: ParseContext,
        emitter: BatchEmitter,
        display_name: str,
        url: str,
        tvg_logo: str | None,
        group_title: str,
    ) -> None:
        info = extract_series_info(display_name)
        series_name = info.series_name if info else display_name

        if series_name not in ctx.seen_series_names:
            ctx.seen_series_names.add(series_name)
            await emitter.add_series(
                Series(
                    playlist_id=ctx.playlist_id,
                    name=series_name,
                    poster_url=tvg_logo,
                    genre=group_title,
                )
            )
            ctx.series_count += 1

        if info is None:
            # Standalone entry without season/episode numbering
            return

        await emitter.add_episode(
            PendingEpisode(
                series_name=series_name,
                name=display_name,
                stream_url=url,
                season=info.season,
                episode_num=info.episode,
                poster_url=tvg_logo,
                genre=group_title,
            )
        )
        ctx.episode_count += 1
