"""M3U ingestion pipeline

This package provides:
- Attribute extraction for #EXTINF lines
- Live TV / movie / series classification
- Season/episode extraction from titles
- Adult-content group filtering
- The streaming parser, batch emitter and category assigner
"""


# Lazy imports keep `import iptvcatalog.ingest` cheap for callers that only
# need one helper
def __getattr__(name):
    """Lazy import for module attributes."""
    if name == "M3UParser":
        from .parser import M3UParser
        return M3UParser
    elif name == "ParseContext":
        from .parser import ParseContext
        return ParseContext
    elif name in ("BatchEmitter", "ParseCallback"):
        from . import batching
        return getattr(batching, name)
    elif name == "CategoryAssigner":
        from .categories import CategoryAssigner
        return CategoryAssigner
    elif name in ("classify", "is_divider"):
        from . import classifier
        return getattr(classifier, name)
    elif name in ("SeriesInfo", "extract_series_info"):
        from . import episodes
        return getattr(episodes, name)
    elif name in ("extract_attribute", "extract_display_name"):
        from . import attributes
        return getattr(attributes, name)
    elif name == "is_group_blocked":
        from .content_filter import is_group_blocked
        return is_group_blocked
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "BatchEmitter",
    "CategoryAssigner",
    "M3UParser",
    "ParseCallback",
    "ParseContext",
    "SeriesInfo",
    "classify",
    "extract_attribute",
    "extract_display_name",
    "extract_series_info",
    "is_divider",
    "is_group_blocked",
]
