"""
Content classification for playlist entries.

Rules are evaluated in order and the first match wins: URL shape is the most
reliable provider signal, then group-title keywords, then an episode marker
in the display name. Anything left over is live TV.
"""

from collections.abc import Callable
from dataclasses import dataclass

from iptvcatalog.ingest.entities import ContentType
from iptvcatalog.ingest.episodes import has_episode_marker

MOVIE_GROUP_KEYWORDS = ("vod", "movie", "film")
SERIES_GROUP_KEYWORDS = ("series", "serie")
DIVIDER_MARKER = "####"


@dataclass(frozen=True)
class ClassificationRule:
    """A named predicate over (url, group_title, display_name)."""

    name: str
    predicate: Callable[[str, str | None, str | None], bool]
    content_type: ContentType


def _url_has_movie_path(url: str, group_title: str | None, display_name: str | None) -> bool:
    return "/movie/" in url


def _url_has_series_path(url: str, group_title: str | None, display_name: str | None) -> bool:
    return "/series/" in url


def _group_has_movie_keyword(url: str, group_title: str | None, display_name: str | None) -> bool:
    if not group_title:
        return False
    group_lower = group_title.lower()
    return any(keyword in group_lower for keyword in MOVIE_GROUP_KEYWORDS)


def _group_has_series_keyword(url: str, group_title: str | None, display_name: str | None) -> bool:
    if not group_title:
        return False
    group_lower = group_title.lower()
    return any(keyword in group_lower for keyword in SERIES_GROUP_KEYWORDS)


def _name_has_episode_marker(url: str, group_title: str | None, display_name: str | None) -> bool:
    return bool(display_name) and has_episode_marker(display_name)


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("url_movie_path", _url_has_movie_path, ContentType.MOVIE),
    ClassificationRule("url_series_path", _url_has_series_path, ContentType.SERIES),
    ClassificationRule("group_movie_keyword", _group_has_movie_keyword, ContentType.MOVIE),
    ClassificationRule("group_series_keyword", _group_has_series_keyword, ContentType.SERIES),
    ClassificationRule("name_episode_marker", _name_has_episode_marker, ContentType.SERIES),
)


def classify(
    url: str,
    group_title: str | None,
    display_name: str | None = None,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> ContentType:
    """Decide whether an entry is live TV, a movie or a series."""
    for rule in rules:
        if rule.predicate(url, group_title, display_name):
            return rule.content_type
    return ContentType.LIVE_TV


def is_divider(display_name: str, tvg_id: str | None) -> bool:
    """
    Dividers are placeholder rows such as "##### SPORTS #####".

    They have no tvg-id and a run of '#' in the name.
    """
    if tvg_id and tvg_id.strip():
        return False
    return DIVIDER_MARKER in display_name
