"""
iptvcatalog - IPTV playlist ingestion

Turns M3U/M3U8 playlists and Xtream Codes feeds into a categorized catalog:
- Streaming M3U parser that never loads the whole file into memory
- Live TV / movie / series classification with episode extraction
- Adult-content group filtering
- Resilient playlist download with user-agent rotation and retries
"""

__version__ = "1.0.0"
__license__ = "MIT"

from iptvcatalog.config import get_config, load_config

__all__ = [
    "__version__",
    "get_config",
    "load_config",
]
