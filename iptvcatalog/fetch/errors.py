"""
Error taxonomy for playlist download and ingestion.

Every error that reaches a caller is a PlaylistError whose message is meant
for the user; the classifier decides which failures are worth another user
agent, which are worth a whole new attempt, and which are fatal.
"""

import logging
import socket
import ssl
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Classification of fetch failures."""

    HTTP_AUTH = "http_auth"  # 401 / 403, may be user-agent specific
    HTTP_SERVER_ERROR = "http_server_error"  # 5xx
    HTTP_PROVIDER = "http_provider"  # Non-standard codes above 600
    HTTP_OTHER = "http_other"  # Remaining 4xx
    DNS_ERROR = "dns_error"
    TLS_ERROR = "tls_error"
    INVALID_URL = "invalid_url"
    CONNECTION_RESET = "connection_reset"  # Reset, broken pipe, abort
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"  # Any other transport failure
    LOCAL_STORAGE = "local_storage"  # Staging file could not be written
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"  # Transient, retry
    MEDIUM = "medium"  # May be agent or server specific, try another agent
    CRITICAL = "critical"  # Retrying cannot help


FATAL_ERROR_TYPES = frozenset({ErrorType.DNS_ERROR, ErrorType.TLS_ERROR, ErrorType.INVALID_URL})

# Failures that justify a whole new download+parse attempt once every
# user agent has been tried
ATTEMPT_RETRYABLE_TYPES = frozenset({ErrorType.TIMEOUT, ErrorType.CONNECTION_RESET})

DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "failed to resolve",
)
TLS_MARKERS = ("ssl", "tls", "certificate")
RESET_MARKERS = ("reset", "broken pipe", "connection abort", "server disconnected")


class PlaylistError(Exception):
    """Base error; ``message`` is safe to show to the user."""

    retryable = False

    def __init__(self, message: str, *, retryable: bool | None = None):
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class FetchError(PlaylistError):
    """Download failure with its classification."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNKNOWN,
        status_code: int | None = None,
        *,
        retryable: bool = False,
    ):
        super().__init__(message, retryable=retryable)
        self.error_type = error_type
        self.status_code = status_code


class ParseStreamError(PlaylistError):
    """I/O failure while reading playlist data after some entries were parsed."""

    retryable = True

    def __init__(self, message: str, entries_parsed: int = 0):
        super().__init__(message)
        self.entries_parsed = entries_parsed


class InvalidPlaylistError(PlaylistError):
    """Playlist record is missing what is needed to fetch it."""


class PlaylistNotFoundError(PlaylistError):
    """No playlist with the requested id."""


@dataclass
class FetchFailure:
    """One classified failure observed while downloading a playlist."""

    error_type: ErrorType
    severity: ErrorSeverity
    message: str
    status_code: int | None = None
    body: str | None = None
    original_exception: Exception | None = None
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_fatal(self) -> bool:
        return self.severity == ErrorSeverity.CRITICAL

    def to_error(self) -> FetchError:
        return FetchError(
            self.message,
            self.error_type,
            self.status_code,
            retryable=self.error_type in ATTEMPT_RETRYABLE_TYPES,
        )


def _exception_chain(error: BaseException) -> list[BaseException]:
    chain = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


class ErrorClassifier:
    """Classifies HTTP statuses and transport exceptions into FetchFailures."""

    @staticmethod
    def classify_status(status_code: int, reason: str = "", body: str | None = None) -> FetchFailure:
        """Classify a non-2xx HTTP response."""
        if 500 <= status_code <= 599:
            error_type = ErrorType.HTTP_SERVER_ERROR
            message = f"Server error {status_code}: {reason}".rstrip(": ")
        elif status_code > 600:
            error_type = ErrorType.HTTP_PROVIDER
            message = f"Server error {status_code}: {reason}".rstrip(": ")
        elif status_code in (401, 403):
            error_type = ErrorType.HTTP_AUTH
            message = f"Access denied ({status_code}): Check your credentials"
        else:
            error_type = ErrorType.HTTP_OTHER
            message = f"Server error {status_code}: {reason}".rstrip(": ")

        return FetchFailure(
            error_type=error_type,
            severity=ErrorSeverity.MEDIUM,
            message=message,
            status_code=status_code,
            body=body,
        )

    @staticmethod
    def classify_exception(error: Exception, context: dict[str, Any] | None = None) -> FetchFailure:
        """Classify a transport-level exception raised while requesting."""
        chain = _exception_chain(error)
        error_str = " ".join(str(e) for e in chain).lower()

        if isinstance(error, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            return FetchFailure(
                error_type=ErrorType.INVALID_URL,
                severity=ErrorSeverity.CRITICAL,
                message=f"Invalid playlist URL: {error}",
                original_exception=error,
                context=context or {},
            )

        if any(isinstance(e, socket.gaierror) for e in chain) or any(
            marker in error_str for marker in DNS_MARKERS
        ):
            return FetchFailure(
                error_type=ErrorType.DNS_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message="Cannot connect to server. Check your internet connection and URL.",
                original_exception=error,
                context=context or {},
            )

        if any(isinstance(e, ssl.SSLError) for e in chain) or (
            isinstance(error, httpx.ConnectError)
            and any(marker in error_str for marker in TLS_MARKERS)
        ):
            return FetchFailure(
                error_type=ErrorType.TLS_ERROR,
                severity=ErrorSeverity.CRITICAL,
                message=f"SSL/Security error: {error}",
                original_exception=error,
                context=context or {},
            )

        if isinstance(error, httpx.TimeoutException) or any(
            isinstance(e, TimeoutError) for e in chain
        ):
            return FetchFailure(
                error_type=ErrorType.TIMEOUT,
                severity=ErrorSeverity.LOW,
                message="Connection timed out. The server is not responding.",
                original_exception=error,
                context=context or {},
            )

        if (
            isinstance(error, httpx.RemoteProtocolError)
            or any(
                isinstance(e, (ConnectionResetError, BrokenPipeError, ConnectionAbortedError))
                for e in chain
            )
            or any(marker in error_str for marker in RESET_MARKERS)
        ):
            return FetchFailure(
                error_type=ErrorType.CONNECTION_RESET,
                severity=ErrorSeverity.LOW,
                message=(
                    "Connection was reset by server. This may be due to server load "
                    "or network issues. Please try again."
                ),
                original_exception=error,
                context=context or {},
            )

        if isinstance(error, (httpx.TransportError, OSError)):
            return FetchFailure(
                error_type=ErrorType.NETWORK_ERROR,
                severity=ErrorSeverity.LOW,
                message=f"Network error: {error}",
                original_exception=error,
                context=context or {},
            )

        return FetchFailure(
            error_type=ErrorType.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            message=str(error) or type(error).__name__,
            original_exception=error,
            context=context or {},
        )


def build_exhausted_message(last_failure: FetchFailure | None) -> str:
    """
    User-facing message once every user agent has failed.

    Chosen from the last observed failure: provider codes above 600 and
    401/403 point at the account, error bodies mentioning expiry point at the
    subscription, anything else reports the last transport problem.
    """
    if last_failure is None:
        return "Failed to fetch playlist after multiple attempts"

    status = last_failure.status_code
    body = (last_failure.body or "").lower()

    if status is not None and status > 600:
        return (
            f"IPTV provider returned error code {status}. This usually means:\n"
            "• Invalid username or password\n"
            "• Subscription expired\n"
            "• Account suspended\n"
            "• Too many connections\n\n"
            "Please check your IPTV provider account."
        )
    if status in (401, 403):
        return "Access denied. Please verify your credentials are correct."
    if "expire" in body or "invalid" in body:
        return (
            "The server indicates there may be an issue with your account. "
            "Please check if your subscription is active."
        )
    return last_failure.message or "Failed to fetch playlist after multiple attempts"


def parse_stream_error(error: OSError, entries_parsed: int) -> ParseStreamError:
    """Map an I/O error raised mid-parse to a message naming the progress made."""
    message = str(error).lower()

    if isinstance(error, TimeoutError) or "timeout" in message or "timed out" in message:
        text = (
            f"Connection timed out while loading playlist. Parsed {entries_parsed} entries "
            "before timeout. Please try again - the server may be slow."
        )
    elif isinstance(error, InterruptedError) or "interrupted" in message:
        text = (
            f"Download interrupted after loading {entries_parsed} entries. "
            "Please check your network connection and try again."
        )
    elif isinstance(error, (ConnectionResetError, BrokenPipeError)) or any(
        marker in message for marker in ("reset", "broken")
    ):
        text = (
            f"Connection was reset by server after loading {entries_parsed} entries. "
            "Please try again."
        )
    else:
        text = f"Error reading playlist data after {entries_parsed} entries: {error}"

    return ParseStreamError(text, entries_parsed=entries_parsed)
