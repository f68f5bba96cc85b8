"""Compound Comparison (importable package).

Threshold Tanimoto similarity search over sparse compound fingerprints, with three interchangeable execution
strategies that can be benchmarked against each other.
"""

from __future__ import annotations

# ruff: noqa: F401

__version__ = "0.3.0"
