"""
Candidate pruning for threshold Tanimoto search.

Two sound (no false negative) pre-tests narrow the corpus before exact
verification:

Size filter
    ``Tc(Q, C) >= t`` forces ``t * |Q| <= |C| <= |Q| / t`` because the
    intersection can never exceed ``min(|Q|, |C|)``.

Prefix filter
    A match needs at least ``min_size = ceil(t * |Q|)`` shared fingerprints.
    Keeping the first ``|Q| - min_size + 1`` query fingerprints (rarest first)
    leaves ``min_size - 1`` outside the prefix, so any compound sharing nothing
    with the prefix shares fewer than ``min_size`` with the query.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Sequence, Tuple


@dataclass(frozen=True)
class FilterResult:
    """Size bounds and prefix derived from a query."""

    min_size: int
    max_size: int
    prefix: Tuple[int, ...]
    query_size: int

    @property
    def is_empty(self) -> bool:
        """True when no compound can be a candidate (empty query)."""
        return self.query_size == 0

    def admits_size(self, feature_count: int) -> bool:
        return self.min_size <= feature_count <= self.max_size


def size_bounds(query_size: int, threshold: Fraction) -> Tuple[int, int]:
    """
    Calculate the admissible candidate sizes for a query.

    Parameters
    ----------
    query_size : int
        Number of distinct query fingerprints
    threshold : Fraction
        Similarity threshold in (0, 1]

    Returns
    -------
    tuple
        (min_size, max_size) = (ceil(t * q), floor(q / t))
    """
    if query_size < 0:
        raise ValueError(f"Query size must be >= 0, got {query_size}")
    num, den = threshold.numerator, threshold.denominator
    min_size = -((-num * query_size) // den)
    max_size = (query_size * den) // num
    return min_size, max_size


def prefix_length(query_size: int, min_size: int) -> int:
    """Number of rarest query fingerprints every match must touch."""
    if query_size == 0:
        return 0
    return max(1, min(query_size, query_size - min_size + 1))


def build_filter(ordered_features: Sequence[int], threshold: Fraction) -> FilterResult:
    """Compute size bounds and prefix for features already sorted rarest first."""
    q = len(ordered_features)
    min_size, max_size = size_bounds(q, threshold)
    prefix = tuple(ordered_features[: prefix_length(q, min_size)])
    return FilterResult(min_size=min_size, max_size=max_size, prefix=prefix, query_size=q)
