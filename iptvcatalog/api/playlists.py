"""Playlists API endpoints"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..api.schemas import (
    EpisodeResponse,
    M3UPlaylistCreate,
    PlaylistActiveUpdate,
    PlaylistResponse,
    RefreshResponse,
    XtreamPlaylistCreate,
)
from ..database import get_db
from ..fetch.errors import InvalidPlaylistError, PlaylistError, PlaylistNotFoundError
from ..services.playlist_service import PlaylistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/playlists", tags=["Playlists"])


def get_playlist_service(db: Session = Depends(get_db)) -> PlaylistService:
    """FastAPI dependency building a PlaylistService on the request's session."""
    return PlaylistService(db)


def raise_http_error(error: PlaylistError) -> NoReturn:
    """Map a PlaylistError to an HTTPException carrying its user-facing message."""
    if isinstance(error, PlaylistNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message) from error
    if isinstance(error, InvalidPlaylistError):
        raise HTTPException(status_code=422, detail=error.message) from error
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error.message) from error


@router.get("", response_model=list[PlaylistResponse])
async def list_playlists(service: PlaylistService = Depends(get_playlist_service)):
    """Get all playlists."""
    return service.list_playlists()


@router.get("/{playlist_id}", response_model=PlaylistResponse)
async def get_playlist(playlist_id: int, service: PlaylistService = Depends(get_playlist_service)):
    """Get playlist by ID.

    Raises:
        HTTPException: If playlist not found
    """
    try:
        return service.get_playlist(playlist_id)
    except PlaylistError as e:
        raise_http_error(e)


@router.post("/m3u", response_model=PlaylistResponse, status_code=status.HTTP_201_CREATED)
async def add_m3u_playlist(
    request: M3UPlaylistCreate,
    service: PlaylistService = Depends(get_playlist_service),
):
    """Add an M3U playlist and ingest it.

    The playlist is only kept when its first refresh succeeds.
    """
    try:
        playlist = await service.add_m3u_playlist(request.name, request.url)
    except PlaylistError as e:
        logger.warning(f"Adding M3U playlist '{request.name}' failed: {e.message}")
        raise_http_error(e)
    return playlist


@router.post("/xtream", response_model=PlaylistResponse, status_code=status.HTTP_201_CREATED)
async def add_xtream_playlist(
    request: XtreamPlaylistCreate,
    service: PlaylistService = Depends(get_playlist_service),
):
    """Add an Xtream Codes account and ingest it."""
    try:
        playlist = await service.add_xtream_playlist(
            request.name, request.server_url, request.username, request.password
        )
    except PlaylistError as e:
        logger.warning(f"Adding Xtream playlist '{request.name}' failed: {e.message}")
        raise_http_error(e)
    return playlist


@router.post("/{playlist_id}/refresh", response_model=RefreshResponse)
async def refresh_playlist(
    playlist_id: int, service: PlaylistService = Depends(get_playlist_service)
):
    """Re-download and re-ingest a playlist."""
    try:
        result = await service.refresh_playlist(playlist_id)
    except PlaylistError as e:
        raise_http_error(e)
    return result.to_dict()


@router.patch("/{playlist_id}/active", response_model=PlaylistResponse)
async def set_playlist_active(
    playlist_id: int,
    update: PlaylistActiveUpdate,
    service: PlaylistService = Depends(get_playlist_service),
):
    try:
        return service.set_playlist_active(playlist_id, update.is_active)
    except PlaylistError as e:
        raise_http_error(e)


@router.delete("/{playlist_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_playlist(
    playlist_id: int, service: PlaylistService = Depends(get_playlist_service)
) -> None:
    """Delete a playlist and everything ingested from it."""
    try:
        service.delete_playlist(playlist_id)
    except PlaylistError as e:
        raise_http_error(e)


@router.get("/{playlist_id}/series/{series_id}/episodes", response_model=list[EpisodeResponse])
async def get_series_episodes(
    playlist_id: int,
    series_id: int,
    service: PlaylistService = Depends(get_playlist_service),
):
    """Episodes of a series; Xtream playlists fetch them from the provider first."""
    try:
        return await service.load_series_episodes(playlist_id, series_id)
    except PlaylistError as e:
        raise_http_error(e)
