"""Compound stores consumed by the search core."""

from __future__ import annotations

from .base import CompoundStore
from .pipeline import (
    GroupMatches,
    MatchCountRange,
    MatchFeatures,
    MatchTanimoto,
    ProjectTanimoto,
    Unwind,
    run_pipeline,
)
from .predicates import CompoundFilter, OverlapCounter
from .table import TableCompoundStore
