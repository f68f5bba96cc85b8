"""
Exact Tanimoto verification for sparse fingerprint sets.

The coefficient is computed from three integers:

    Tc = c / (a + b - c)

Where:
- a = fingerprints in the query
- b = fingerprints in the candidate
- c = fingerprints in both

Thresholds are held as ``Fraction`` so the ``Tc >= t`` decision is made by integer
cross-multiplication and never depends on floating point rounding.
"""

from __future__ import annotations

import math
from fractions import Fraction
from numbers import Real
from typing import AbstractSet, Iterable, Optional, Union

from ..errors import InvalidThreshold
from .models import Item, Match, Query

# Available similarity metrics
SIMILARITY_METRICS = {
    "tanimoto": "Tanimoto coefficient (Jaccard index): c / (a + b - c)",
}


def as_threshold(value: Union[str, Real, Fraction]) -> Fraction:
    """
    Validate a similarity threshold and convert it to an exact fraction.

    Floats are read through their shortest decimal form, so ``0.7`` becomes
    exactly ``7/10`` rather than the nearest binary double.

    Parameters
    ----------
    value : str, float, int or Fraction
        Threshold in (0, 1]

    Returns
    -------
    Fraction

    Raises
    ------
    InvalidThreshold
        If the value is not a number or lies outside (0, 1]
    """
    if isinstance(value, bool):
        raise InvalidThreshold(f"Threshold must be a number, got {value!r}")

    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidThreshold(f"Threshold must be finite, got {value!r}")

    try:
        if isinstance(value, Fraction):
            t = value
        elif isinstance(value, float):
            t = Fraction(str(float(value)))
        else:
            t = Fraction(str(value).strip())
    except (TypeError, ValueError, ZeroDivisionError) as err:
        raise InvalidThreshold(f"Threshold must be a number, got {value!r}") from err

    if not (0 < t <= 1):
        raise InvalidThreshold(f"Threshold must be in (0, 1], got {value}")
    return t


def intersection_size(query_features: AbstractSet[int], features: Iterable[int]) -> int:
    """Count fingerprints shared by the query and a candidate."""
    return sum(1 for f in features if f in query_features)


def union_size(query_size: int, feature_count: int, intersection: int) -> int:
    return query_size + feature_count - intersection


def tanimoto_similarity(intersection: int, union: int) -> float:
    """
    Calculate the Tanimoto coefficient from overlap counts.

    Returns 0.0 when the union is empty; two empty fingerprints are not
    considered similar.
    """
    if union <= 0:
        return 0.0
    return intersection / union


def meets_threshold(intersection: int, union: int, threshold: Fraction) -> bool:
    """Return True iff ``intersection / union >= threshold``, exactly."""
    if union <= 0:
        return False
    return intersection * threshold.denominator >= threshold.numerator * union


def to_match(item_id: str, label: str, intersection: int, union: int) -> Match:
    return Match(
        item_id=item_id,
        tanimoto=tanimoto_similarity(intersection, union),
        label=label,
    )


def evaluate(query: Query, item: Item) -> Optional[Match]:
    """
    Verify a single candidate against the query.

    Parameters
    ----------
    query : Query
        Query with its full fingerprint set
    item : Item
        Candidate returned by the store

    Returns
    -------
    Match or None
        The match when the Tanimoto coefficient reaches the threshold

    Raises
    ------
    InconsistentItem
        If the candidate's stored fingerprint count is wrong
    """
    item.check_consistency()

    # Full intersection, not just the prefix that selected the candidate
    common = intersection_size(query.feature_set, item.features)
    union = union_size(query.size, item.feature_count, common)

    if not meets_threshold(common, union, query.threshold):
        return None
    return to_match(item.item_id, item.label, common, union)
