"""Table IO helpers (CSV/TSV/Parquet).

Compound libraries, fingerprint-count tables and search results are all exchanged as tables.

These helpers provide:
- transparent support for CSV/TSV and Parquet,
- centralized format detection so every entry point behaves the same,
- parsing/formatting of the fingerprint list column.

Parquet support requires `pyarrow` (install the `parquet` extra).
"""

from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Any, Literal, Optional, Tuple

import numpy as np
import pandas as pd

TableFormat = Literal["csv", "tsv", "parquet"]

_SEPARATORS = re.compile(r"[\s,;]+")


def detect_table_format(path: str, fmt: Optional[str] = None) -> TableFormat:
    """Detect table format.

    If fmt is provided and not 'auto', it takes precedence.
    Otherwise, detect from file extension.
    """

    if fmt and fmt.lower() != "auto":
        f = fmt.lower()
        if f in ("csv", "tsv", "parquet"):
            return f  # type: ignore[return-value]
        raise ValueError(f"Unknown table format: {fmt}")

    ext = Path(path).suffix.lower()
    if ext in (".parquet", ".pq"):
        return "parquet"
    if ext in (".tsv", ".tab"):
        return "tsv"
    return "csv"


def read_table(path: str, *, fmt: Optional[str] = None, **kwargs: Any) -> pd.DataFrame:
    """Read a table (CSV/TSV/Parquet) with consistent defaults."""

    f = detect_table_format(path, fmt)

    if f == "parquet":
        try:
            return pd.read_parquet(path, **kwargs)
        except ImportError as e:  # pragma: no cover
            raise RuntimeError(
                "Reading Parquet requires pyarrow. Install with: pip install 'compound-comparison[parquet]'"
            ) from e

    # Fingerprint lists and ids must stay text; never let pandas guess.
    kwargs.setdefault("dtype", str)
    kwargs.setdefault("keep_default_na", False)

    if f == "tsv":
        kwargs.setdefault("sep", "\t")

    return pd.read_csv(path, **kwargs)


def write_table(
    df: pd.DataFrame, path: str, *, fmt: Optional[str] = None, **kwargs: Any
) -> None:
    """Write a table (CSV/TSV/Parquet), creating parent directories."""

    Path(path).parent.mkdir(parents=True, exist_ok=True)

    f = detect_table_format(path, fmt)

    if f == "parquet":
        try:
            return df.to_parquet(path, index=False, **kwargs)
        except ImportError as e:  # pragma: no cover
            raise RuntimeError(
                "Writing Parquet requires pyarrow. Install with: pip install 'compound-comparison[parquet]'"
            ) from e

    if f == "tsv":
        kwargs.setdefault("sep", "\t")

    return df.to_csv(path, index=False, **kwargs)


def parse_features(value: Any) -> Tuple[int, ...]:
    """Parse a fingerprint cell into a tuple of ints.

    Accepts whitespace/comma separated text ("12 48 1033", "[12, 48]") or a list-like cell (Parquet list columns).
    Empty cells give an empty tuple.
    """

    if value is None:
        return ()
    if isinstance(value, float) and math.isnan(value):
        return ()
    if isinstance(value, (list, tuple, set, frozenset, np.ndarray, pd.Series)):
        return tuple(int(v) for v in value)

    text = str(value).strip().strip("[](){}")
    if not text:
        return ()
    return tuple(int(tok) for tok in _SEPARATORS.split(text) if tok)


def format_features(features: Any) -> str:
    return " ".join(str(int(f)) for f in sorted(features))
