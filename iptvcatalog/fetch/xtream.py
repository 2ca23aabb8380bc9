"""
Xtream Codes API client and catalog conversion.

Providers expose ``player_api.php`` returning JSON lists of categories and
streams. Field types vary between panels (ids as strings or ints, empty
strings for missing numbers), so the response models coerce loosely and
ignore unknown fields.
"""

import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar, Union

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from iptvcatalog.fetch.errors import ErrorClassifier, ErrorType, FetchError, PlaylistError
from iptvcatalog.ingest.content_filter import BLOCKED_GROUP_PATTERNS, GroupFilter
from iptvcatalog.ingest.entities import Channel, ContentType, Episode, Movie, Series

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_CATEGORY = "Unknown"


class XtreamModel(BaseModel):
    """Base for provider responses: unknown fields ignored, "" treated as missing."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value == "":
            return None
        return value


class XtreamUserInfo(XtreamModel):
    username: Optional[str] = None
    message: Optional[str] = None
    auth: Optional[int] = None
    status: Optional[str] = None
    exp_date: Optional[str] = None
    is_trial: Optional[str] = None
    active_cons: Optional[str] = None
    max_connections: Optional[str] = None
    allowed_output_formats: Optional[list[str]] = None


class XtreamServerInfo(XtreamModel):
    url: Optional[str] = None
    port: Optional[str] = None
    https_port: Optional[str] = None
    server_protocol: Optional[str] = None
    timezone: Optional[str] = None
    timestamp_now: Optional[int] = None


class XtreamAuthResponse(XtreamModel):
    user_info: Optional[XtreamUserInfo] = None
    server_info: Optional[XtreamServerInfo] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_info is not None and self.user_info.auth == 1


class XtreamCategory(XtreamModel):
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    parent_id: Optional[int] = None

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class XtreamChannel(XtreamModel):
    num: Optional[int] = None
    name: Optional[str] = None
    stream_type: Optional[str] = None
    stream_id: Optional[int] = None
    stream_icon: Optional[str] = None
    epg_channel_id: Optional[str] = None
    category_id: Optional[str] = None
    tv_archive: Optional[int] = None

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class XtreamMovie(XtreamModel):
    num: Optional[int] = None
    name: Optional[str] = None
    stream_id: Optional[int] = None
    stream_icon: Optional[str] = None
    rating: Optional[str] = None
    rating_5based: Optional[float] = None
    category_id: Optional[str] = None
    container_extension: Optional[str] = None

    @field_validator("category_id", "rating", mode="before")
    @classmethod
    def coerce_to_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class XtreamSeries(XtreamModel):
    num: Optional[int] = None
    name: Optional[str] = None
    series_id: Optional[int] = None
    cover: Optional[str] = None
    plot: Optional[str] = None
    cast: Optional[str] = None
    director: Optional[str] = None
    genre: Optional[str] = None
    releaseDate: Optional[str] = None
    rating_5based: Optional[float] = None
    backdrop_path: Optional[list[str]] = None
    category_id: Optional[str] = None

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("backdrop_path", mode="before")
    @classmethod
    def coerce_backdrop(cls, value: Any) -> Any:
        return [value] if isinstance(value, str) else value


class XtreamEpisodeInfo(XtreamModel):
    movie_image: Optional[str] = None
    plot: Optional[str] = None
    releasedate: Optional[str] = None
    rating: Optional[float] = None
    duration_secs: Optional[int] = None


class XtreamEpisode(XtreamModel):
    id: Optional[str] = None
    episode_num: Optional[int] = None
    title: Optional[str] = None
    container_extension: Optional[str] = None
    season: Optional[int] = None
    info: Optional[XtreamEpisodeInfo] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("info", mode="before")
    @classmethod
    def empty_info(cls, value: Any) -> Any:
        # Some panels send [] instead of {} for missing info
        return None if isinstance(value, list) else value


class XtreamSeason(XtreamModel):
    id: Optional[int] = None
    name: Optional[str] = None
    season_number: Optional[int] = None
    episode_count: Optional[int] = None
    cover: Optional[str] = None


class XtreamSeriesInfo(XtreamModel):
    seasons: Optional[list[XtreamSeason]] = None
    info: Optional[XtreamSeries] = None
    episodes: Optional[dict[str, list[XtreamEpisode]]] = None

    @field_validator("episodes", mode="before")
    @classmethod
    def empty_episodes(cls, value: Any) -> Any:
        return None if isinstance(value, list) else value

    @field_validator("info", mode="before")
    @classmethod
    def empty_info(cls, value: Any) -> Any:
        return None if isinstance(value, list) else value


class XtreamClient:
    """Async client for one Xtream Codes account."""

    def __init__(
        self,
        server_url: str,
        username: str,
        password: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = server_url.rstrip("/")
        self.username = username
        self.password = password
        self.api_url = f"{self.base_url}/player_api.php"
        self.timeout = timeout
        self.transport = transport

    def _get_params(self, action: str | None = None, **kwargs: Any) -> dict[str, str]:
        params = {
            "username": self.username,
            "password": self.password,
        }
        if action:
            params["action"] = action
        params.update({key: str(value) for key, value in kwargs.items() if value is not None})
        return params

    async def _request(self, action: str | None = None, **kwargs: Any) -> Any:
        label = action or "authenticate"
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as client:
            try:
                response = await client.get(self.api_url, params=self._get_params(action, **kwargs))
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                failure = ErrorClassifier.classify_exception(e, {"action": label})
                logger.error(f"Error fetching {label}: {e}")
                raise failure.to_error() from e

            if not response.is_success:
                failure = ErrorClassifier.classify_status(
                    response.status_code, response.reason_phrase, response.text[:1000]
                )
                logger.error(f"HTTP error for {label}: {response.status_code}")
                raise failure.to_error()

            try:
                return response.json()
            except ValueError as e:
                logger.error(f"Invalid JSON for {label}: {e}")
                raise FetchError(
                    f"Invalid response from server for {label}", ErrorType.UNKNOWN, response.status_code
                ) from e

    @staticmethod
    def _parse_list(model: type[T], data: Any, label: str) -> list[T]:
        if not isinstance(data, list):
            logger.warning(f"Unexpected {label} payload: {type(data).__name__}")
            return []
        items = []
        for raw in data:
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                logger.debug(f"Skipping malformed {label} item: {e}")
        return items

    async def authenticate(self) -> XtreamAuthResponse:
        """
        Verify the account.

        Raises:
            FetchError: If the server rejects the credentials (``auth != 1``)
        """
        data = await self._request()
        try:
            auth_response = XtreamAuthResponse.model_validate(data)
        except ValidationError as e:
            raise FetchError("Invalid response from server", ErrorType.UNKNOWN) from e

        if not auth_response.is_authenticated:
            raise FetchError("Invalid credentials", ErrorType.HTTP_AUTH)

        user_info = auth_response.user_info
        logger.info(f"Authenticated {self.username} (status: {user_info.status}, expires: {user_info.exp_date})")
        return auth_response

    async def get_live_categories(self) -> list[XtreamCategory]:
        return self._parse_list(XtreamCategory, await self._request("get_live_categories"), "live category")

    async def get_vod_categories(self) -> list[XtreamCategory]:
        return self._parse_list(XtreamCategory, await self._request("get_vod_categories"), "VOD category")

    async def get_series_categories(self) -> list[XtreamCategory]:
        return self._parse_list(
            XtreamCategory, await self._request("get_series_categories"), "series category"
        )

    async def get_live_streams(self, category_id: str | None = None) -> list[XtreamChannel]:
        data = await self._request("get_live_streams", category_id=category_id)
        return self._parse_list(XtreamChannel, data, "live stream")

    async def get_vod_streams(self, category_id: str | None = None) -> list[XtreamMovie]:
        data = await self._request("get_vod_streams", category_id=category_id)
        return self._parse_list(XtreamMovie, data, "VOD stream")

    async def get_series(self, category_id: str | None = None) -> list[XtreamSeries]:
        data = await self._request("get_series", category_id=category_id)
        return self._parse_list(XtreamSeries, data, "series")

    async def get_series_info(self, series_id: Union[int, str]) -> XtreamSeriesInfo:
        data = await self._request("get_series_info", series_id=series_id)
        try:
            return XtreamSeriesInfo.model_validate(data)
        except ValidationError as e:
            raise FetchError(f"Invalid series info for series {series_id}", ErrorType.UNKNOWN) from e

    def build_live_stream_url(self, stream_id: Union[int, str]) -> str:
        return f"{self.base_url}/live/{self.username}/{self.password}/{stream_id}.ts"

    def build_vod_stream_url(self, stream_id: Union[int, str], extension: str = "mp4") -> str:
        return f"{self.base_url}/movie/{self.username}/{self.password}/{stream_id}.{extension}"

    def build_series_stream_url(self, episode_id: Union[int, str], extension: str = "mp4") -> str:
        return f"{self.base_url}/series/{self.username}/{self.password}/{episode_id}.{extension}"


@dataclass
class XtreamCategoryRef:
    """Provider category kept for persistence, in provider order."""

    name: str
    content_type: ContentType
    external_id: str | None = None


@dataclass
class XtreamContent:
    """Everything fetched from one Xtream account, already filtered."""

    channels: list[Channel] = field(default_factory=list)
    movies: list[Movie] = field(default_factory=list)
    series: list[Series] = field(default_factory=list)
    live_categories: list[XtreamCategoryRef] = field(default_factory=list)
    vod_categories: list[XtreamCategoryRef] = field(default_factory=list)
    series_categories: list[XtreamCategoryRef] = field(default_factory=list)
    blocked_count: int = 0

    @property
    def categories(self) -> list[XtreamCategoryRef]:
        return [*self.live_categories, *self.vod_categories, *self.series_categories]


class XtreamContentConverter:
    """
    Converts Xtream API responses into catalog entities.

    Each item's group is its provider category name, so the adult-content
    gate applies to Xtream feeds exactly as it does to M3U group titles.
    """

    def __init__(
        self,
        client: XtreamClient,
        blocked_group_patterns: Iterable[str] = BLOCKED_GROUP_PATTERNS,
    ):
        self.client = client
        self.group_filter = GroupFilter(blocked_group_patterns)

    @staticmethod
    async def _fetch_or_empty(call: Awaitable[list[T]], label: str) -> list[T]:
        try:
            return await call
        except PlaylistError as e:
            logger.warning(f"Failed to fetch {label}, continuing without it: {e.message}")
            return []

    def _convert_categories(
        self, categories: list[XtreamCategory], content_type: ContentType
    ) -> tuple[list[XtreamCategoryRef], dict[str, str]]:
        refs = []
        names: dict[str, str] = {}
        for category in categories:
            name = category.category_name or UNKNOWN_CATEGORY
            if category.category_id is not None:
                names[category.category_id] = name
            if self.group_filter.is_blocked(name):
                continue
            refs.append(XtreamCategoryRef(name, content_type, category.category_id))
        return refs, names

    async def fetch_all_content(self, playlist_id: int) -> XtreamContent:
        """
        Authenticate and fetch live, VOD and series listings.

        Raises:
            FetchError: If authentication fails. Failures of individual
                listing calls only empty that listing.
        """
        await self.client.authenticate()
        content = XtreamContent()

        live_categories = await self._fetch_or_empty(self.client.get_live_categories(), "live categories")
        content.live_categories, live_names = self._convert_categories(live_categories, ContentType.LIVE_TV)
        streams = await self._fetch_or_empty(self.client.get_live_streams(), "live streams")
        for index, stream in enumerate(streams):
            group = live_names.get(stream.category_id) if stream.category_id else None
            if self.group_filter.is_blocked(group):
                content.blocked_count += 1
                continue
            content.channels.append(
                Channel(
                    playlist_id=playlist_id,
                    name=stream.name or "Unknown Channel",
                    stream_url=self.client.build_live_stream_url(stream.stream_id or 0),
                    logo_url=stream.stream_icon,
                    group_title=group,
                    epg_channel_id=stream.epg_channel_id,
                    order=stream.num if stream.num is not None else index,
                    stream_id=str(stream.stream_id) if stream.stream_id is not None else None,
                )
            )

        vod_categories = await self._fetch_or_empty(self.client.get_vod_categories(), "VOD categories")
        content.vod_categories, vod_names = self._convert_categories(vod_categories, ContentType.MOVIE)
        vod_streams = await self._fetch_or_empty(self.client.get_vod_streams(), "VOD streams")
        for stream in vod_streams:
            group = vod_names.get(stream.category_id) if stream.category_id else None
            if self.group_filter.is_blocked(group):
                content.blocked_count += 1
                continue
            extension = stream.container_extension or "mp4"
            content.movies.append(
                Movie(
                    playlist_id=playlist_id,
                    name=stream.name or "Unknown Movie",
                    stream_url=self.client.build_vod_stream_url(stream.stream_id or 0, extension),
                    poster_url=stream.stream_icon,
                    genre=group,
                    stream_id=str(stream.stream_id) if stream.stream_id is not None else None,
                    rating=stream.rating_5based,
                    container_extension=stream.container_extension,
                )
            )

        series_categories = await self._fetch_or_empty(
            self.client.get_series_categories(), "series categories"
        )
        content.series_categories, series_names = self._convert_categories(
            series_categories, ContentType.SERIES
        )
        series_list = await self._fetch_or_empty(self.client.get_series(), "series")
        for item in series_list:
            group = series_names.get(item.category_id) if item.category_id else None
            if self.group_filter.is_blocked(group):
                content.blocked_count += 1
                continue
            content.series.append(
                Series(
                    playlist_id=playlist_id,
                    name=item.name or "Unknown Series",
                    poster_url=item.cover,
                    genre=group,
                    series_id=str(item.series_id) if item.series_id is not None else None,
                    plot=item.plot,
                    cast=item.cast,
                    director=item.director,
                    release_date=item.releaseDate,
                    rating=item.rating_5based,
                    backdrop_url=item.backdrop_path[0] if item.backdrop_path else None,
                )
            )

        logger.info(
            f"Xtream content for playlist {playlist_id}: {len(content.channels)} channels, "
            f"{len(content.movies)} movies, {len(content.series)} series, "
            f"{content.blocked_count} filtered"
        )
        return content

    def convert_episodes(self, series_info: XtreamSeriesInfo, series_id: int) -> list[Episode]:
        """Flatten a ``get_series_info`` response into episodes of a stored series."""
        episodes = []
        for season_key, season_episodes in (series_info.episodes or {}).items():
            for episode in season_episodes:
                if episode.id is None:
                    continue
                season = episode.season
                if season is None:
                    season = int(season_key) if season_key.isdigit() else 0
                extension = episode.container_extension or "mp4"
                episodes.append(
                    Episode(
                        series_id=series_id,
                        name=episode.title or f"Episode {episode.episode_num or 0}",
                        stream_url=self.client.build_series_stream_url(episode.id, extension),
                        season=season,
                        episode_num=episode.episode_num or 0,
                        poster_url=episode.info.movie_image if episode.info else None,
                        episode_id=episode.id,
                        container_extension=episode.container_extension,
                    )
                )
        return episodes
