"""
Bounded batch emission with deferred episode→series resolution.

Episodes reference their series by name while parsing. A series only gets
its real identifier once the sink has stored it, so episodes wait in a
pending queue until the series batch carrying their parent is flushed.
"""

import logging
from typing import Protocol

from iptvcatalog.ingest.entities import Channel, Episode, Movie, PendingEpisode, Series

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5000


class ParseCallback(Protocol):
    """Sink for parsed catalog batches."""

    async def on_channel_batch(self, channels: list[Channel]) -> None: ...

    async def on_movie_batch(self, movies: list[Movie]) -> None: ...

    async def on_series_batch(self, series: list[Series]) -> dict[str, int]:
        """Store series and return a map of series name to assigned id."""
        ...

    async def on_episode_batch(self, episodes: list[Episode]) -> None: ...

    async def on_groups_found(self, groups: set[str]) -> None: ...


class BatchEmitter:
    """Buffers entities per kind and flushes them to a ParseCallback."""

    def __init__(self, callback: ParseCallback, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.callback = callback
        self.batch_size = batch_size

        self.channels: list[Channel] = []
        self.movies: list[Movie] = []
        self.series: list[Series] = []
        self.episodes: list[Episode] = []
        self.pending_episodes: list[PendingEpisode] = []

        self.series_ids: dict[str, int] = {}
        self.dropped_episode_count = 0

    async def add_channel(self, channel: Channel) -> None:
        self.channels.append(channel)
        if len(self.channels) >= self.batch_size:
            await self._flush_channels()

    async def add_movie(self, movie: Movie) -> None:
        self.movies.append(movie)
        if len(self.movies) >= self.batch_size:
            await self._flush_movies()

    async def add_series(self, series: Series) -> None:
        self.series.append(series)
        if len(self.series) >= self.batch_size:
            await self._flush_series()

    async def add_episode(self, pending: PendingEpisode) -> None:
        series_id = self.series_ids.get(pending.series_name)
        if series_id is not None:
            await self._add_resolved_episode(pending.resolve(series_id))
        else:
            self.pending_episodes.append(pending)

    async def finish(self, groups: set[str]) -> None:
        """
        Flush everything that is still buffered.

        Series go first so their ids can resolve the pending episodes;
        episodes go last. Episodes whose series never resolved are dropped.
        """
        await self._flush_series()
        await self._flush_channels()
        await self._flush_movies()

        if self.pending_episodes:
            self.dropped_episode_count += len(self.pending_episodes)
            logger.debug(
                f"Dropping {len(self.pending_episodes)} episodes with unresolved series"
            )
            self.pending_episodes.clear()

        await self._flush_episodes()
        await self.callback.on_groups_found(groups)

    async def _flush_channels(self) -> None:
        if not self.channels:
            return
        batch, self.channels = self.channels, []
        await self.callback.on_channel_batch(batch)

    async def _flush_movies(self) -> None:
        if not self.movies:
            return
        batch, self.movies = self.movies, []
        await self.callback.on_movie_batch(batch)

    async def _flush_series(self) -> None:
        if not self.series:
            return
        batch, self.series = self.series, []
        new_ids = await self.callback.on_series_batch(batch)
        self.series_ids.update(new_ids)
        await self._resolve_pending()

    async def _flush_episodes(self) -> None:
        if not self.episodes:
            return
        batch, self.episodes = self.episodes, []
        await self.callback.on_episode_batch(batch)

    async def _add_resolved_episode(self, episode: Episode) -> None:
        self.episodes.append(episode)
        if len(self.episodes) >= self.batch_size:
            await self._flush_episodes()

    async def _resolve_pending(self) -> None:
        still_pending: list[PendingEpisode] = []
        resolved: list[Episode] = []
        for pending in self.pending_episodes:
            series_id = self.series_ids.get(pending.series_name)
            if series_id is None:
                still_pending.append(pending)
            else:
                resolved.append(pending.resolve(series_id))
        self.pending_episodes = still_pending

        for episode in resolved:
            await self._add_resolved_episode(episode)
