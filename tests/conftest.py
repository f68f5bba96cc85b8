from __future__ import annotations

from pathlib import Path

import pytest

from compound_comparison.similarity.models import Item
from compound_comparison.store import TableCompoundStore

DATA_DIR = Path(__file__).resolve().parent / "data"
LIBRARY_CSV = DATA_DIR / "library.csv"


def make_item(item_id: str, features, feature_count=None, label: str = "") -> Item:
    fs = frozenset(features)
    return Item(
        item_id=item_id,
        label=label or f"SMILES_{item_id}",
        features=fs,
        feature_count=len(fs) if feature_count is None else feature_count,
    )


@pytest.fixture
def library_csv() -> Path:
    return LIBRARY_CSV


@pytest.fixture
def store() -> TableCompoundStore:
    return TableCompoundStore.from_table(LIBRARY_CSV)
