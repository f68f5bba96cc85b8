"""Shared utilities for Compound Comparison.

This subpackage is intentionally lightweight: table IO, column detection, printing and run metadata.
"""

from __future__ import annotations

from .columns import (
    detect_best_smiles_column,
    detect_count_column,
    detect_fingerprint_column,
    detect_id_column,
)
from .io import detect_table_format, format_features, parse_features, read_table, write_table
from .metadata import metadata_sidecar_path, sha256_file, write_run_metadata
from .printing import print_banner, print_section
