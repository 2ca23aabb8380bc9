"""
Unit tests for the playlist downloader.

HTTP traffic goes through httpx.MockTransport; no network access is needed.
"""

import httpx
import pytest

from iptvcatalog.config import FetchConfig
from iptvcatalog.fetch.downloader import PlaylistDownloader
from iptvcatalog.fetch.errors import ErrorType, FetchError

PLAYLIST_URL = "http://provider.example/get.php?username=u&password=p&type=m3u_plus"
PLAYLIST_BODY = b'#EXTM3U\n#EXTINF:-1 group-title="News",CNN\nhttp://h/live/1.ts\n'


def make_downloader(fetch_config: FetchConfig, handler) -> PlaylistDownloader:
    return PlaylistDownloader(fetch_config, transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestPlaylistDownloaderSuccess:
    """Successful downloads."""

    @pytest.mark.asyncio
    async def test_writes_body_to_staging_file(self, fast_fetch_config):
        """The body lands in playlist_<id>.m3u under the staging dir."""
        downloader = make_downloader(
            fast_fetch_config, lambda request: httpx.Response(200, content=PLAYLIST_BODY)
        )

        result = await downloader.download(PLAYLIST_URL, 12)

        assert result.path.name == "playlist_12.m3u"
        assert result.path.read_bytes() == PLAYLIST_BODY
        assert result.bytes_downloaded == len(PLAYLIST_BODY)
        assert result.status_code == 200
        assert result.user_agent == fast_fetch_config.user_agents[0]
        assert downloader.failures == []

    @pytest.mark.asyncio
    async def test_request_headers(self, fast_fetch_config):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=PLAYLIST_BODY)

        await make_downloader(fast_fetch_config, handler).download(PLAYLIST_URL, 1)

        headers = seen[0].headers
        assert headers["User-Agent"] == fast_fetch_config.user_agents[0]
        assert headers["Accept"] == "*/*"
        assert headers["Accept-Encoding"] == "identity"

    @pytest.mark.asyncio
    async def test_server_error_moves_to_next_agent(self, fast_fetch_config):
        """A 503 on the first agent is followed by a request with the second agent."""
        agents = []

        def handler(request):
            agents.append(request.headers["User-Agent"])
            if len(agents) == 1:
                return httpx.Response(503, content=b"busy")
            return httpx.Response(200, content=PLAYLIST_BODY)

        downloader = make_downloader(fast_fetch_config, handler)
        result = await downloader.download(PLAYLIST_URL, 1)

        assert agents == fast_fetch_config.user_agents[:2]
        assert result.user_agent == fast_fetch_config.user_agents[1]
        assert [f.error_type for f in downloader.failures] == [ErrorType.HTTP_SERVER_ERROR]

    @pytest.mark.asyncio
    async def test_follows_redirects(self, fast_fetch_config):
        def handler(request):
            if request.url.path == "/get.php":
                return httpx.Response(302, headers={"Location": "http://cdn.example/list.m3u"})
            return httpx.Response(200, content=PLAYLIST_BODY)

        result = await make_downloader(fast_fetch_config, handler).download(PLAYLIST_URL, 1)

        assert result.path.read_bytes() == PLAYLIST_BODY

    def test_default_staging_dir(self):
        downloader = PlaylistDownloader(FetchConfig())

        path = downloader.staging_path(5)

        assert path.parent.name == "iptvcatalog"
        assert path.name == "playlist_5.m3u"


@pytest.mark.unit
class TestPlaylistDownloaderFailures:
    """Failure classification and user agent rotation."""

    @pytest.mark.asyncio
    async def test_forbidden_for_every_agent(self, fast_fetch_config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(403, content=b"Forbidden")

        downloader = make_downloader(fast_fetch_config, handler)

        with pytest.raises(FetchError) as exc_info:
            await downloader.download(PLAYLIST_URL, 1)

        error = exc_info.value
        assert error.message == "Access denied. Please verify your credentials are correct."
        assert error.error_type is ErrorType.HTTP_AUTH
        assert error.status_code == 403
        assert not error.retryable
        assert len(calls) == len(fast_fetch_config.user_agents)

    @pytest.mark.asyncio
    async def test_provider_error_code(self, fast_fetch_config):
        downloader = make_downloader(fast_fetch_config, lambda request: httpx.Response(884))

        with pytest.raises(FetchError) as exc_info:
            await downloader.download(PLAYLIST_URL, 1)

        assert exc_info.value.message.startswith("IPTV provider returned error code 884.")
        assert exc_info.value.error_type is ErrorType.HTTP_PROVIDER

    @pytest.mark.asyncio
    async def test_dns_failure_stops_immediately(self, fast_fetch_config):
        """DNS failures are fatal: no other user agent is tried."""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

        with pytest.raises(FetchError) as exc_info:
            await make_downloader(fast_fetch_config, handler).download(PLAYLIST_URL, 1)

        assert len(calls) == 1
        assert exc_info.value.error_type is ErrorType.DNS_ERROR
        assert exc_info.value.message == (
            "Cannot connect to server. Check your internet connection and URL."
        )
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_timeouts_exhaust_agents_and_are_retryable(self, fast_fetch_config):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FetchError) as exc_info:
            await make_downloader(fast_fetch_config, handler).download(PLAYLIST_URL, 1)

        assert len(calls) == len(fast_fetch_config.user_agents)
        assert exc_info.value.error_type is ErrorType.TIMEOUT
        assert exc_info.value.retryable
        assert exc_info.value.message == "Connection timed out. The server is not responding."

    @pytest.mark.asyncio
    async def test_empty_body(self, fast_fetch_config):
        downloader = make_downloader(fast_fetch_config, lambda request: httpx.Response(200))

        with pytest.raises(FetchError, match="Empty response from server"):
            await downloader.download(PLAYLIST_URL, 3)

        assert not downloader.staging_path(3).exists()

    @pytest.mark.asyncio
    async def test_staging_dir_under_a_file(self, fast_fetch_config, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        fast_fetch_config.staging_dir = str(blocker / "staging")
        downloader = make_downloader(
            fast_fetch_config, lambda request: httpx.Response(200, content=PLAYLIST_BODY)
        )

        with pytest.raises(FetchError) as exc_info:
            await downloader.download(PLAYLIST_URL, 4)

        error = exc_info.value
        assert error.error_type is ErrorType.LOCAL_STORAGE
        assert error.message == "Could not write playlist to local storage: Not a directory"
        assert error.status_code == 200
        assert not error.retryable

    @pytest.mark.asyncio
    async def test_write_failure_removes_partial_file(self, fast_fetch_config, monkeypatch):
        downloader = make_downloader(
            fast_fetch_config, lambda request: httpx.Response(200, content=PLAYLIST_BODY)
        )
        real_open = open

        class FullDisk:
            def __init__(self, path, mode):
                self.file = real_open(path, mode)

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self.file.close()

            def write(self, chunk):
                self.file.write(chunk[:1])
                raise OSError(28, "No space left on device")

        monkeypatch.setattr("iptvcatalog.fetch.downloader.open", FullDisk, raising=False)

        with pytest.raises(FetchError, match="No space left on device"):
            await downloader.download(PLAYLIST_URL, 5)

        assert not downloader.staging_path(5).exists()

    @pytest.mark.asyncio
    async def test_error_body_with_playlist_is_still_a_failure(self, fast_fetch_config):
        fast_fetch_config.user_agents = ["OnlyAgent/1.0"]
        downloader = make_downloader(
            fast_fetch_config, lambda request: httpx.Response(404, content=PLAYLIST_BODY)
        )

        with pytest.raises(FetchError) as exc_info:
            await downloader.download(PLAYLIST_URL, 1)

        assert exc_info.value.status_code == 404
        assert downloader.failures[0].body.startswith("#EXTM3U")

    @pytest.mark.asyncio
    async def test_expired_account_hint(self, fast_fetch_config):
        fast_fetch_config.user_agents = ["OnlyAgent/1.0"]
        downloader = make_downloader(
            fast_fetch_config,
            lambda request: httpx.Response(404, content=b"Account expired"),
        )

        with pytest.raises(FetchError, match="check if your subscription is active"):
            await downloader.download(PLAYLIST_URL, 1)

    @pytest.mark.asyncio
    async def test_unsupported_scheme_is_fatal(self, fast_fetch_config):
        downloader = PlaylistDownloader(fast_fetch_config)

        with pytest.raises(FetchError) as exc_info:
            await downloader.download("ftp://provider.example/list.m3u", 1)

        assert exc_info.value.error_type is ErrorType.INVALID_URL
        assert len(downloader.failures) == 1
