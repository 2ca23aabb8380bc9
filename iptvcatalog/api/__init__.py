"""API routes for iptvcatalog"""

from fastapi import APIRouter

from .playlists import router as playlists_router

# Create the main API router
api_router = APIRouter(prefix="/api")

api_router.include_router(playlists_router, tags=["Playlists"])

__all__ = ["api_router"]
