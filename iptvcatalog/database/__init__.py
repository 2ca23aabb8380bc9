"""Database layer: models, connection management and the catalog sink"""

from iptvcatalog.database.connection import (
    close_db,
    get_db,
    get_sync_session,
    init_sync_db,
)
from iptvcatalog.database.models import (
    Base,
    Category,
    ChannelRow,
    EpisodeRow,
    MovieRow,
    PlaylistSource,
    SeriesRow,
)

__all__ = [
    "Base",
    "Category",
    "ChannelRow",
    "EpisodeRow",
    "MovieRow",
    "PlaylistSource",
    "SeriesRow",
    "close_db",
    "get_db",
    "get_sync_session",
    "init_sync_db",
]
