"""
Adult-content gate for playlist groups.

Entries whose group title contains any blocked pattern (case-insensitive)
are dropped before any other per-entry work. Edit BLOCKED_GROUP_PATTERNS or
set ``ingest.blocked_group_patterns`` in config.yaml to change the list.
"""

from collections.abc import Iterable

from iptvcatalog.config import DEFAULT_BLOCKED_GROUP_PATTERNS

BLOCKED_GROUP_PATTERNS: tuple[str, ...] = tuple(DEFAULT_BLOCKED_GROUP_PATTERNS)


class GroupFilter:
    """Case-insensitive substring blocklist with patterns upper-cased once."""

    def __init__(self, patterns: Iterable[str] = BLOCKED_GROUP_PATTERNS):
        self.patterns = tuple(p.upper() for p in patterns if p)

    def is_blocked(self, group_title: str | None) -> bool:
        if not group_title:
            return False
        upper_group = group_title.upper()
        return any(pattern in upper_group for pattern in self.patterns)


_default_filter = GroupFilter()


def is_group_blocked(group_title: str | None) -> bool:
    """Check a group title against the default blocklist."""
    return _default_filter.is_blocked(group_title)
