"""Structured query objects understood by compound stores.

Stores receive these objects instead of script text: a store may evaluate them in-process (as the table store does)
or translate them into its native query language.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from ..similarity.models import Candidate, Item


@dataclass(frozen=True)
class CompoundFilter:
    """Fingerprint-count range plus an optional "contains any of" test.

    Every compound inside the count range is checked for a consistent fingerprint count before the membership test,
    so a corrupted record is reported whether or not it shares a prefix fingerprint.
    """

    min_count: int
    max_count: int
    any_features: Optional[FrozenSet[int]] = None

    def matches(self, item: Item) -> bool:
        if not (self.min_count <= item.feature_count <= self.max_count):
            return False
        item.check_consistency()
        if self.any_features is None:
            return True
        return not self.any_features.isdisjoint(item.features)


@dataclass(frozen=True)
class OverlapCounter:
    """Per-compound reducer: count fingerprints that are in the query set.

    Emits a candidate only when at least ``min_found`` fingerprints are shared.
    """

    features: FrozenSet[int]
    min_found: int

    def __call__(self, item: Item) -> Optional[Candidate]:
        item.check_consistency()
        found = sum(1 for f in item.features if f in self.features)
        if found < self.min_found:
            return None
        return Candidate(
            item_id=item.item_id,
            matched_count=found,
            total_count=item.feature_count,
            label=item.label,
        )
