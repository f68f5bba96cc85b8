"""Corpus-wide fingerprint frequencies.

A ``FrequencyIndex`` records, for every fingerprint id, how many compounds contain it. It is built once per corpus
snapshot and only ever read afterwards: the search core uses it to order a query's fingerprints rarest first, which
makes the prefix filter as selective as possible.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Tuple

import numpy as np
import pandas as pd

from ..core.io import read_table
from .models import Item

FEATURE_COLUMN = "Fingerprint"
COUNT_COLUMN = "Count"


class FrequencyIndex(Mapping):
    """Read-only mapping of fingerprint id -> number of compounds containing it."""

    def __init__(self, counts: Dict[int, int]):
        self._counts = MappingProxyType({int(k): int(v) for k, v in counts.items()})

    @classmethod
    def from_items(cls, items: Iterable[Item]) -> "FrequencyIndex":
        """Count fingerprint occurrences over a corpus."""
        chunks = [np.fromiter(item.features, dtype=np.int64) for item in items if item.features]
        if not chunks:
            return cls({})
        ids, counts = np.unique(np.concatenate(chunks), return_counts=True)
        return cls(dict(zip(ids.tolist(), counts.tolist())))

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        feature_col: str = FEATURE_COLUMN,
        count_col: str = COUNT_COLUMN,
    ) -> "FrequencyIndex":
        missing = [c for c in (feature_col, count_col) if c not in df.columns]
        if missing:
            raise ValueError(f"Frequency table is missing columns: {missing}")
        counts = df[count_col].astype(np.int64).groupby(df[feature_col].astype(np.int64)).sum()
        return cls({int(k): int(v) for k, v in counts.items()})

    @classmethod
    def from_table(cls, path: str | Path, **kwargs) -> "FrequencyIndex":
        return cls.from_dataframe(read_table(str(path)), **kwargs)

    def to_dataframe(self) -> pd.DataFrame:
        """Export as a two-column table sorted by ascending count."""
        if not self._counts:
            return pd.DataFrame(columns=[FEATURE_COLUMN, COUNT_COLUMN])
        df = pd.DataFrame(
            {FEATURE_COLUMN: list(self._counts.keys()), COUNT_COLUMN: list(self._counts.values())}
        )
        return df.sort_values([COUNT_COLUMN, FEATURE_COLUMN], ignore_index=True)

    def count(self, feature_id: int) -> int:
        return self._counts.get(int(feature_id), 0)

    def order(self, features: Iterable[int]) -> Tuple[int, ...]:
        """Sort fingerprints rarest first; ties broken by id."""
        return tuple(sorted({int(f) for f in features}, key=lambda f: (self.count(f), f)))

    def __getitem__(self, feature_id: int) -> int:
        return self._counts[feature_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"FrequencyIndex({len(self)} fingerprints)"
