"""Playlist fetching: download, retry policy, error taxonomy and Xtream Codes API"""

from iptvcatalog.fetch.downloader import DownloadResult, PlaylistDownloader
from iptvcatalog.fetch.errors import (
    ErrorClassifier,
    ErrorType,
    FetchError,
    InvalidPlaylistError,
    ParseStreamError,
    PlaylistError,
    PlaylistNotFoundError,
)
from iptvcatalog.fetch.retry_manager import RefreshRetryManager, RetryConfig

__all__ = [
    "DownloadResult",
    "ErrorClassifier",
    "ErrorType",
    "FetchError",
    "InvalidPlaylistError",
    "ParseStreamError",
    "PlaylistDownloader",
    "PlaylistError",
    "PlaylistNotFoundError",
    "RefreshRetryManager",
    "RetryConfig",
]
