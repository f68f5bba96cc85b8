"""Exception types raised by the search core.

Every error terminates the query that raised it. Nothing here is retried; a store client that wants
retry/backoff has to provide it itself.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for all compound search failures."""


class ItemNotFound(SearchError, KeyError):
    """The requested compound id is not present in the store."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(item_id)

    def __str__(self) -> str:
        return f"Compound not found: {self.item_id}"


class InvalidThreshold(SearchError, ValueError):
    """Similarity threshold outside (0, 1]."""


class InconsistentItem(SearchError):
    """A stored fingerprint count disagrees with the stored fingerprint set."""

    def __init__(self, item_id: str, feature_count: int, actual: int):
        self.item_id = item_id
        self.feature_count = feature_count
        self.actual = actual
        super().__init__(
            f"Compound {item_id} declares {feature_count} fingerprints but has {actual}"
        )


class StoreUnavailable(SearchError):
    """The backing store could not be reached or failed mid-query."""


class StrategyUnavailable(SearchError):
    """The store lacks the capability a search strategy needs."""
