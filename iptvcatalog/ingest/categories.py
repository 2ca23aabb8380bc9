"""Run-scoped category creation for catalog entities"""

import logging
from collections.abc import Callable

from iptvcatalog.ingest.entities import ContentType

logger = logging.getLogger(__name__)

# Key prefixes for the (kind, group) map
CATEGORY_KEY_PREFIXES = {
    ContentType.LIVE_TV: "LIVE",
    ContentType.MOVIE: "MOVIE",
    ContentType.SERIES: "SERIES",
}

CreateCategory = Callable[[ContentType, str, int, str | None], int]


class CategoryAssigner:
    """
    Lazily creates one category per (content kind, group) pair.

    ``create_category(content_type, name, order, external_id)`` persists a
    category and returns its identifier. It is called at most once per pair;
    the order argument increases by one for every category created in this
    run. ``external_id`` is the provider's category id for Xtream feeds.
    """

    def __init__(self, create_category: CreateCategory):
        self._create_category = create_category
        self._category_ids: dict[str, int] = {}
        self._next_order = 0

    @staticmethod
    def category_key(content_type: ContentType, name: str) -> str:
        return f"{CATEGORY_KEY_PREFIXES[content_type]}:{name}"

    def assign(
        self, content_type: ContentType, name: str | None, external_id: str | None = None
    ) -> int | None:
        """Return the category id for a group, creating the category on first use."""
        if name is None:
            return None

        key = self.category_key(content_type, name)
        category_id = self._category_ids.get(key)
        if category_id is None:
            category_id = self._create_category(content_type, name, self._next_order, external_id)
            self._next_order += 1
            self._category_ids[key] = category_id
            logger.debug(f"Created category {key} -> {category_id}")
        return category_id

    @property
    def category_count(self) -> int:
        return len(self._category_ids)

    def __contains__(self, key: str) -> bool:
        return key in self._category_ids
