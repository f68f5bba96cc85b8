"""Column detection helpers.

Compound libraries come from many upstream exports, so we try multiple common names for the identifier, structure
label, fingerprint list and fingerprint count columns.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union


ID_CANDIDATES: Sequence[str] = (
    "Compound_ID",
    "compound_id",
    "compound_cid",
    "CID",
    "cid",
    "Name",
    "name",
    "ID",
    "id",
)

SMILES_PRIORITY: Sequence[str] = (
    "Canonical_SMILES",
    "SMILES",
    "smiles",
)

FINGERPRINT_CANDIDATES: Sequence[str] = (
    "Fingerprints",
    "fingerprints",
    "Features",
    "features",
)

COUNT_CANDIDATES: Sequence[str] = (
    "Fingerprint_Count",
    "fingerprint_count",
    "Feature_Count",
    "feature_count",
)


def _as_columns(df_or_columns: Union[Sequence[str], object]) -> list[str]:
    # Accept anything with a .columns attribute.
    if hasattr(df_or_columns, "columns"):
        cols = getattr(df_or_columns, "columns")
    else:
        cols = df_or_columns
    return [str(c) for c in cols]  # type: ignore[union-attr]


def _first_present(cols: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
    for c in candidates:
        if c in cols:
            return c
    return None


def detect_id_column(df_or_columns: Union[Sequence[str], object]) -> str:
    """Detect a compound identifier column.

    Accepts a pandas DataFrame or a list of column names.
    """

    cols = _as_columns(df_or_columns)
    found = _first_present(cols, ID_CANDIDATES)
    if found:
        return found
    return cols[0] if cols else "Compound_ID"


def detect_best_smiles_column(
    columns: Union[Sequence[str], object],
    priority: Sequence[str] = SMILES_PRIORITY,
) -> Optional[str]:
    """Pick the structure label column, if any."""

    cols = _as_columns(columns)
    found = _first_present(cols, priority)
    if found:
        return found
    for c in cols:
        if "smiles" in c.lower():
            return c
    return None


def detect_fingerprint_column(df_or_columns: Union[Sequence[str], object]) -> Optional[str]:
    cols = _as_columns(df_or_columns)
    found = _first_present(cols, FINGERPRINT_CANDIDATES)
    if found:
        return found
    for c in cols:
        if "fingerprint" in c.lower() and "count" not in c.lower():
            return c
    return None


def detect_count_column(df_or_columns: Union[Sequence[str], object]) -> Optional[str]:
    return _first_present(_as_columns(df_or_columns), COUNT_CANDIDATES)
