"""Staged aggregation operators.

Each stage is a small frozen dataclass with an ``apply(frame)`` method evaluated with pandas. A similarity pipeline is
always, in this order:

1. ``MatchCountRange``  keep compounds whose fingerprint count is within bounds
2. ``Unwind``           one row per (compound, fingerprint)
3. ``MatchFeatures``    keep rows whose fingerprint is in the query
4. ``GroupMatches``     back to one row per compound, counting matched rows
5. ``ProjectTanimoto``  union size and Tanimoto coefficient per compound
6. ``MatchTanimoto``    keep compounds at or above the threshold
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import FrozenSet, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import InconsistentItem

GROUP_COLUMNS = ["item_id", "matched", "feature_count", "label"]
INT64_MAX = int(np.iinfo(np.int64).max)


def _empty(columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=object) for c in columns})


def _check_counts(frame: pd.DataFrame, actual: pd.Series) -> None:
    bad = np.flatnonzero(actual.to_numpy() != frame["feature_count"].to_numpy())
    if bad.size:
        i = int(bad[0])
        raise InconsistentItem(
            str(frame["item_id"].iloc[i]), int(frame["feature_count"].iloc[i]), int(actual.iloc[i])
        )


@dataclass(frozen=True)
class MatchCountRange:
    """Keep compounds whose declared fingerprint count is within bounds.

    Compounds inside the range are checked for a consistent count before the
    optional prefix membership test is applied.
    """

    min_count: int
    max_count: int
    any_features: Optional[FrozenSet[int]] = None

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        upper = min(self.max_count, INT64_MAX)
        frame = frame[frame["feature_count"].between(self.min_count, upper)]
        _check_counts(frame, frame["features"].map(len))
        if self.any_features is not None:
            wanted = self.any_features
            frame = frame[frame["features"].map(lambda fs: not wanted.isdisjoint(fs)).astype(bool)]
        return frame


@dataclass(frozen=True)
class Unwind:
    """Expand each compound into one row per fingerprint.

    Raises ``InconsistentItem`` when a compound does not expand into exactly
    ``feature_count`` rows.
    """

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        rows = frame.explode("features").rename(columns={"features": "feature"})
        rows = rows.dropna(subset=["feature"]).reset_index(drop=True)
        rows["feature"] = rows["feature"].astype(np.int64)

        expanded = rows.groupby("item_id").size().reindex(frame["item_id"], fill_value=0)
        _check_counts(frame, expanded)
        return rows


@dataclass(frozen=True)
class MatchFeatures:
    features: FrozenSet[int]

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        return frame[frame["feature"].isin(list(self.features))]


@dataclass(frozen=True)
class GroupMatches:
    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        if frame.empty:
            return _empty(GROUP_COLUMNS)
        grouped = frame.groupby("item_id", sort=True).agg(
            matched=("feature", "size"),
            feature_count=("feature_count", "first"),
            label=("label", "first"),
        )
        return grouped.reset_index()[GROUP_COLUMNS]


@dataclass(frozen=True)
class ProjectTanimoto:
    query_size: int

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        if frame.empty:
            return _empty(GROUP_COLUMNS + ["union", "tanimoto"])
        out = frame.copy()
        out["matched"] = out["matched"].astype(np.int64)
        out["feature_count"] = out["feature_count"].astype(np.int64)
        out["union"] = self.query_size + out["feature_count"] - out["matched"]
        out["tanimoto"] = out["matched"] / out["union"]
        return out


@dataclass(frozen=True)
class MatchTanimoto:
    """Keep rows with ``matched / union >= threshold``, compared exactly."""

    threshold: Fraction

    def apply(self, frame: pd.DataFrame) -> pd.DataFrame:
        if frame.empty:
            return frame
        num, den = self.threshold.numerator, self.threshold.denominator
        # Python ints: den and num can exceed the int64 range
        matched = frame["matched"].astype(object)
        union = frame["union"].astype(object)
        mask = (frame["union"] > 0) & (matched * den >= union * num).astype(bool)
        return frame[mask].reset_index(drop=True)


def run_pipeline(frame: pd.DataFrame, stages: Sequence) -> pd.DataFrame:
    for stage in stages:
        frame = stage.apply(frame)
    return frame
