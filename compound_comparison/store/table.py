"""In-process compound store backed by a pandas DataFrame.

The library table is loaded once and treated as an immutable snapshot. Every optional capability of the store contract
is implemented here, so all three search strategies can run against it:

- ``find``        predicate retrieval (fingerprint-count range + "contains any of")
- ``map_reduce``  per-compound ``OverlapCounter`` evaluation
- ``aggregate``   the staged pipeline from ``store.pipeline``

Expected columns (names are auto-detected, see ``core.columns``):

    Compound_ID, SMILES, Fingerprints[, Fingerprint_Count]

``Fingerprints`` holds space separated integer ids. When ``Fingerprint_Count`` is present it is stored as-is, so a
count that disagrees with the fingerprint list is reported as ``InconsistentItem`` at search time instead of being
silently repaired.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from ..core.columns import (
    detect_best_smiles_column,
    detect_count_column,
    detect_fingerprint_column,
    detect_id_column,
)
from ..core.io import format_features, parse_features, read_table
from ..errors import ItemNotFound, StoreUnavailable
from ..similarity.models import Candidate, Item
from .base import CompoundStore
from .pipeline import run_pipeline
from .predicates import CompoundFilter, OverlapCounter

STORE_COLUMNS = ["item_id", "label", "features", "feature_count"]


class TableCompoundStore(CompoundStore):
    supports_map_reduce = True
    supports_aggregation = True

    def __init__(self, frame: pd.DataFrame, source: Optional[str] = None):
        missing = [c for c in STORE_COLUMNS if c not in frame.columns]
        if missing:
            raise ValueError(f"Store frame is missing columns: {missing}")

        dupes = frame["item_id"][frame["item_id"].duplicated()]
        if not dupes.empty:
            raise ValueError(f"Duplicate compound ids in library: {sorted(set(dupes))[:5]}")

        self._frame = frame[STORE_COLUMNS].reset_index(drop=True)
        self._items: Dict[str, Item] = {
            row.item_id: Item(
                item_id=row.item_id,
                label=row.label,
                features=frozenset(row.features),
                feature_count=int(row.feature_count),
            )
            for row in self._frame.itertuples(index=False)
        }
        self.source = source
        self._closed = False

    # ------------------------------------------------------------------ loading

    @classmethod
    def from_items(cls, items: Iterable[Item]) -> "TableCompoundStore":
        records = [
            {
                "item_id": item.item_id,
                "label": item.label,
                "features": tuple(sorted(item.features)),
                "feature_count": int(item.feature_count),
            }
            for item in items
        ]
        frame = pd.DataFrame(records, columns=STORE_COLUMNS)
        return cls(frame)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        id_col: Optional[str] = None,
        label_col: Optional[str] = None,
        fp_col: Optional[str] = None,
        count_col: Optional[str] = None,
        source: Optional[str] = None,
    ) -> "TableCompoundStore":
        """Build a store from a library table."""
        id_col = id_col if id_col in df.columns else detect_id_column(df)
        label_col = label_col if label_col in df.columns else detect_best_smiles_column(df)
        fp_col = fp_col if fp_col in df.columns else detect_fingerprint_column(df)
        count_col = count_col if count_col in df.columns else detect_count_column(df)

        if fp_col is None:
            raise ValueError("Could not find a fingerprint column in library")

        features = [tuple(sorted(set(parse_features(v)))) for v in df[fp_col].tolist()]
        if count_col is not None:
            counts = pd.to_numeric(df[count_col], errors="raise").astype(int).tolist()
        else:
            counts = [len(fs) for fs in features]

        frame = pd.DataFrame(
            {
                "item_id": df[id_col].astype(str).str.strip().tolist(),
                "label": df[label_col].astype(str).tolist() if label_col else [""] * len(df),
                "features": features,
                "feature_count": counts,
            },
            columns=STORE_COLUMNS,
        )
        return cls(frame, source=source)

    @classmethod
    def from_table(cls, path: str | Path, **kwargs) -> "TableCompoundStore":
        try:
            df = read_table(str(path))
        except OSError as e:
            raise StoreUnavailable(f"Cannot read compound library {path}: {e}") from e
        return cls.from_dataframe(df, source=str(path), **kwargs)

    def to_dataframe(self) -> pd.DataFrame:
        """Export in library layout (Compound_ID, SMILES, Fingerprints, Fingerprint_Count)."""
        return pd.DataFrame(
            {
                "Compound_ID": self._frame["item_id"],
                "SMILES": self._frame["label"],
                "Fingerprints": self._frame["features"].map(format_features),
                "Fingerprint_Count": self._frame["feature_count"],
            }
        )

    # ------------------------------------------------------------------ contract

    def _check_open(self) -> None:
        if self._closed:
            raise StoreUnavailable("Compound store is closed")

    def get_item(self, item_id: str) -> Item:
        self._check_open()
        try:
            return self._items[str(item_id)]
        except KeyError:
            raise ItemNotFound(str(item_id)) from None

    def items(self) -> Iterator[Item]:
        self._check_open()
        return iter(list(self._items.values()))

    def find(self, predicate: CompoundFilter) -> Iterator[Item]:
        self._check_open()
        matches = [item for item in self._items.values() if predicate.matches(item)]
        return iter(matches)

    def map_reduce(self, predicate: CompoundFilter, reducer: OverlapCounter) -> List[Candidate]:
        self._check_open()
        out: List[Candidate] = []
        for item in self._items.values():
            if not predicate.matches(item):
                continue
            emitted = reducer(item)
            if emitted is not None:
                out.append(emitted)
        return out

    def aggregate(self, stages: Sequence) -> pd.DataFrame:
        self._check_open()
        return run_pipeline(self._frame, stages)

    def close(self) -> None:
        self._closed = True

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        src = f" from {self.source}" if self.source else ""
        return f"TableCompoundStore({len(self)} compounds{src})"
