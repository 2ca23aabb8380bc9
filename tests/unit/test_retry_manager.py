"""
Unit tests for attempt-level retries.
"""

from unittest.mock import AsyncMock, patch

import pytest

from iptvcatalog.fetch.errors import ErrorType, FetchError, InvalidPlaylistError, ParseStreamError
from iptvcatalog.fetch.retry_manager import RefreshRetryManager, RetryConfig

SLEEP_PATH = "iptvcatalog.fetch.retry_manager.asyncio.sleep"


@pytest.mark.unit
class TestRefreshRetryManager:
    """Tests for RefreshRetryManager."""

    def test_linear_backoff(self):
        manager = RefreshRetryManager(RetryConfig(max_attempts=3, backoff_seconds=3.0))

        assert manager.calculate_backoff(2) == 6.0
        assert manager.calculate_backoff(3) == 9.0

    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        manager = RefreshRetryManager()
        operation = AsyncMock(return_value="ok")

        with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:
            result = await manager.execute_with_retry(operation)

        assert result == "ok"
        operation.assert_awaited_once_with(1)
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_retryable_errors_with_backoff(self):
        """Two timeouts then success: waits 2×backoff then 3×backoff."""
        manager = RefreshRetryManager(RetryConfig(max_attempts=3, backoff_seconds=3.0))
        timeout = FetchError("timed out", ErrorType.TIMEOUT, retryable=True)
        operation = AsyncMock(side_effect=[timeout, timeout, "done"])

        with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:
            result = await manager.execute_with_retry(operation, operation_name="refresh")

        assert result == "done"
        assert [c.args[0] for c in operation.await_args_list] == [1, 2, 3]
        assert [c.args[0] for c in mock_sleep.await_args_list] == [6.0, 9.0]
        assert [a.attempt_number for a in manager.attempt_history] == [1, 2]

    @pytest.mark.asyncio
    async def test_non_retryable_error_raises_immediately(self):
        manager = RefreshRetryManager()
        operation = AsyncMock(side_effect=FetchError("Access denied", ErrorType.HTTP_AUTH, 403))

        with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(FetchError, match="Access denied"):
                await manager.execute_with_retry(operation)

        operation.assert_awaited_once()
        mock_sleep.assert_not_awaited()
        assert manager.attempt_history[0].retryable is False

    @pytest.mark.asyncio
    async def test_last_error_raised_when_exhausted(self):
        manager = RefreshRetryManager(RetryConfig(max_attempts=2, backoff_seconds=0.0))
        errors = [ParseStreamError("first", 10), ParseStreamError("second", 20)]
        operation = AsyncMock(side_effect=errors)

        with patch(SLEEP_PATH, new_callable=AsyncMock):
            with pytest.raises(ParseStreamError) as exc_info:
                await manager.execute_with_retry(operation)

        assert exc_info.value is errors[1]
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_before_retry_runs_before_backoff(self):
        manager = RefreshRetryManager(RetryConfig(max_attempts=2, backoff_seconds=1.0))
        events = []

        async def operation(attempt):
            events.append(f"attempt {attempt}")
            if attempt == 1:
                raise ParseStreamError("reset", 5)
            return attempt

        async def before_retry(attempt):
            events.append(f"cleanup {attempt}")

        async def fake_sleep(delay):
            events.append(f"sleep {delay}")

        with patch(SLEEP_PATH, side_effect=fake_sleep):
            await manager.execute_with_retry(operation, before_retry=before_retry)

        assert events == ["attempt 1", "cleanup 2", "sleep 2.0", "attempt 2"]

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self):
        manager = RefreshRetryManager()
        operation = AsyncMock(side_effect=RuntimeError("bug"))

        with pytest.raises(RuntimeError):
            await manager.execute_with_retry(operation)

        assert manager.attempt_history == []

    @pytest.mark.asyncio
    async def test_invalid_playlist_is_not_retried(self):
        manager = RefreshRetryManager()
        operation = AsyncMock(side_effect=InvalidPlaylistError("Playlist has no URL"))

        with pytest.raises(InvalidPlaylistError):
            await manager.execute_with_retry(operation)

        operation.assert_awaited_once()
