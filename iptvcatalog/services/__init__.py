"""Playlist services"""

from iptvcatalog.services.playlist_service import PlaylistService, RefreshResult, RefreshState

__all__ = ["PlaylistService", "RefreshResult", "RefreshState"]
