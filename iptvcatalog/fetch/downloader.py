"""
Remote playlist download with user-agent rotation.

The whole response body is written to a local staging file before parsing
starts, so a slow parse can never trip a read timeout on a socket that has
already delivered everything.
"""

import asyncio
import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

import httpx

from iptvcatalog.config import FetchConfig
from iptvcatalog.fetch.errors import (
    ATTEMPT_RETRYABLE_TYPES,
    ErrorClassifier,
    ErrorType,
    FetchError,
    FetchFailure,
    build_exhausted_message,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
PROGRESS_LOG_BYTES = 10 * 1024 * 1024
ERROR_BODY_LIMIT = 1000


@dataclass
class DownloadResult:
    """A playlist body stored on local disk."""

    path: Path
    bytes_downloaded: int
    status_code: int
    user_agent: str
    elapsed_seconds: float


class PlaylistDownloader:
    """Downloads a playlist URL into a staging file, trying each user agent in turn."""

    def __init__(
        self,
        fetch_config: FetchConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = fetch_config or FetchConfig()
        self.transport = transport
        self.failures: list[FetchFailure] = []

    @staticmethod
    def build_headers(user_agent: str) -> dict[str, str]:
        return {
            "User-Agent": user_agent,
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            # Some providers send broken compressed bodies
            "Accept-Encoding": "identity",
            "Connection": "keep-alive",
        }

    def staging_path(self, playlist_id: int) -> Path:
        """Where the playlist body is staged. The directory is created on download."""
        if self.config.staging_dir:
            staging_dir = Path(self.config.staging_dir)
        else:
            staging_dir = Path(tempfile.gettempdir()) / "iptvcatalog"
        return staging_dir / f"playlist_{playlist_id}.m3u"

    def discard_staging(self, playlist_id: int) -> None:
        """Remove the playlist's staging file if there is one."""
        path = self.staging_path(playlist_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            # An unusable staging dir was already reported by the download
            logger.debug(f"Could not remove staging file {path}: {e}")

    def _agent_delay(self, failure: FetchFailure) -> float:
        delays = {
            ErrorType.HTTP_SERVER_ERROR: self.config.server_error_delay,
            ErrorType.HTTP_PROVIDER: self.config.server_error_delay,
            ErrorType.HTTP_AUTH: self.config.auth_error_delay,
            ErrorType.TIMEOUT: self.config.timeout_delay,
            ErrorType.CONNECTION_RESET: self.config.reset_delay,
            ErrorType.NETWORK_ERROR: self.config.network_error_delay,
        }
        return delays.get(failure.error_type, 0.0)

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self.config.read_timeout, connect=self.config.connect_timeout)
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    async def download(self, url: str, playlist_id: int) -> DownloadResult:
        """
        Download ``url`` into the playlist's staging file.

        Raises:
            FetchError: On a fatal error, or once every user agent has failed
        """
        self.failures = []
        user_agents = self.config.user_agents
        last_failure: FetchFailure | None = None

        async with self._client() as client:
            for index, user_agent in enumerate(user_agents):
                is_last_agent = index == len(user_agents) - 1
                logger.info(
                    f"Download attempt {index + 1}/{len(user_agents)} "
                    f"with User-Agent: {user_agent[:30]}..."
                )

                try:
                    request = client.build_request("GET", url, headers=self.build_headers(user_agent))
                    response = await client.send(request, stream=True)
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    failure = ErrorClassifier.classify_exception(e, {"user_agent": user_agent})
                    self.failures.append(failure)
                    logger.error(f"Request failed ({failure.error_type.value}): {e}")
                    if failure.is_fatal:
                        raise failure.to_error() from e
                    last_failure = failure
                    if not is_last_agent:
                        await asyncio.sleep(self._agent_delay(failure))
                    continue

                logger.info(f"HTTP Response: {response.status_code} {response.reason_phrase}")

                if response.is_success:
                    try:
                        return await self._write_staging(response, playlist_id, user_agent)
                    finally:
                        await response.aclose()

                body = await self._read_error_body(response)
                await response.aclose()

                failure = ErrorClassifier.classify_status(
                    response.status_code, response.reason_phrase, body
                )
                self.failures.append(failure)
                last_failure = failure
                logger.error(f"HTTP Error: {response.status_code}")
                if body:
                    logger.error(f"Error body: {body[:200]}")
                    if "#EXTM3U" in body:
                        logger.warning("Response contains M3U content despite error code")
                if failure.error_type in (ErrorType.HTTP_SERVER_ERROR, ErrorType.HTTP_PROVIDER):
                    logger.warning(f"Server error {response.status_code}, trying next User-Agent...")
                elif failure.error_type is ErrorType.HTTP_AUTH:
                    logger.warning(f"Auth error {response.status_code}, trying next User-Agent...")

                if not is_last_agent:
                    await asyncio.sleep(self._agent_delay(failure))

        message = build_exhausted_message(last_failure)
        logger.error(f"All {len(user_agents)} user agents failed: {message}")
        if last_failure is None:
            raise FetchError(message)
        raise FetchError(
            message,
            last_failure.error_type,
            last_failure.status_code,
            retryable=last_failure.error_type in ATTEMPT_RETRYABLE_TYPES,
        )

    async def _read_error_body(self, response: httpx.Response) -> str | None:
        try:
            raw = await response.aread()
        except httpx.HTTPError as e:
            logger.debug(f"Could not read error body: {e}")
            return None
        if not raw:
            return None
        return raw[:ERROR_BODY_LIMIT * 4].decode("utf-8", errors="replace")[:ERROR_BODY_LIMIT]

    async def _write_staging(
        self, response: httpx.Response, playlist_id: int, user_agent: str
    ) -> DownloadResult:
        path = self.staging_path(playlist_id)
        content_length = int(response.headers.get("Content-Length", "-1") or -1)
        logger.info(
            f"Downloading to staging file {path} "
            f"(Content-Length: {content_length} bytes)"
        )

        start_time = time.monotonic()
        bytes_downloaded = 0
        last_progress_log = 0

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as output:
                async for chunk in response.aiter_bytes(CHUNK_SIZE):
                    output.write(chunk)
                    bytes_downloaded += len(chunk)

                    if bytes_downloaded - last_progress_log > PROGRESS_LOG_BYTES:
                        percent = bytes_downloaded * 100 // content_length if content_length > 0 else 0
                        logger.info(
                            f"Download progress: {bytes_downloaded // (1024 * 1024)}MB ({percent}%)"
                        )
                        last_progress_log = bytes_downloaded
        except httpx.HTTPError as e:
            self.discard_staging(playlist_id)
            failure = ErrorClassifier.classify_exception(e, {"user_agent": user_agent})
            logger.error(
                f"Download failed after {bytes_downloaded} bytes ({failure.error_type.value}): {e}"
            )
            raise FetchError(
                f"{failure.message} Downloaded {bytes_downloaded // 1024}KB before the failure.",
                failure.error_type,
                response.status_code,
                retryable=not failure.is_fatal,
            ) from e
        except OSError as e:
            self.discard_staging(playlist_id)
            logger.error(f"Could not write staging file {path}: {e}")
            raise FetchError(
                f"Could not write playlist to local storage: {e.strerror or e}",
                ErrorType.LOCAL_STORAGE,
                response.status_code,
            ) from e

        if bytes_downloaded == 0:
            self.discard_staging(playlist_id)
            raise FetchError("Empty response from server", ErrorType.UNKNOWN, response.status_code)

        elapsed = time.monotonic() - start_time
        logger.info(
            f"Download complete: {bytes_downloaded // (1024 * 1024)}MB in {elapsed:.1f}s"
        )
        return DownloadResult(
            path=path,
            bytes_downloaded=bytes_downloaded,
            status_code=response.status_code,
            user_agent=user_agent,
            elapsed_seconds=elapsed,
        )
