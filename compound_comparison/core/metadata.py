"""Run metadata helpers.

Every search that writes a results table also emits a small, machine-readable metadata JSON artifact capturing
provenance (library hash, threshold, strategies, timings, versions).

Convention:
- for an output table path like `hits.csv` or `hits.parquet`, write a sidecar
  file next to it named `hits.metadata.json`.
"""

from __future__ import annotations

import hashlib
import json
import os
import sys
from datetime import datetime
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any, Dict, Optional


def get_package_version(dist: str) -> str:
    """Return installed distribution version if available, else 'unknown'."""

    try:
        return importlib_metadata.version(dist)
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


def sha256_file(path: Path, *, max_bytes: int = 200 * 1024 * 1024) -> Optional[str]:
    """Compute SHA256 for a file, returning None if too large or unreadable."""

    try:
        if path.stat().st_size > max_bytes:
            return None
        h = hashlib.sha256()
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(1024 * 1024), b""):
                h.update(chunk)
        return h.hexdigest()
    except OSError:
        return None


def metadata_sidecar_path(output_table_path: str | Path) -> Path:
    p = Path(output_table_path)
    return p.with_name(f"{p.stem}.metadata.json")


def write_run_metadata(
    *,
    tool: str,
    output_table_path: str | Path,
    input_path: Optional[str | Path] = None,
    parameters: Optional[Dict[str, Any]] = None,
    results: Optional[Dict[str, Any]] = None,
    notes: Optional[str] = None,
) -> Path:
    """Write a standardized run metadata JSON sidecar.

    Called by CLIs after they have written the output table.
    """

    out_p = Path(output_table_path)
    in_p = Path(input_path) if input_path else None

    payload: Dict[str, Any] = {
        "tool": str(tool),
        "created_at": datetime.now().isoformat(timespec="seconds"),
        "cwd": os.getcwd(),
        "argv": list(sys.argv),
        "versions": {
            "compound_comparison": get_package_version("compound-comparison"),
            "python": sys.version.split()[0],
            "pandas": get_package_version("pandas"),
            "numpy": get_package_version("numpy"),
        },
        "input": None,
        "output": {
            "path": str(out_p.resolve()),
            "name": out_p.name,
            "format": out_p.suffix.lower().lstrip(".") or "unknown",
            "size_bytes": int(out_p.stat().st_size) if out_p.exists() else None,
        },
        "parameters": parameters or {},
        "results": results or {},
    }

    if notes:
        payload["notes"] = str(notes)

    if in_p is not None:
        payload["input"] = {
            "path": str(in_p.resolve()),
            "name": in_p.name,
            "sha256": sha256_file(in_p),
            "size_bytes": int(in_p.stat().st_size) if in_p.exists() else None,
        }

    sidecar = metadata_sidecar_path(out_p)
    sidecar.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return sidecar
