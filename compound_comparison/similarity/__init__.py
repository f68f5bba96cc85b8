"""Compound Comparison - Similarity Search Module.

This subpackage holds the threshold Tanimoto search core: fingerprint frequencies, candidate pruning, exact
verification, the interchangeable search strategies and the orchestrator that runs them.

Design notes
------------
- Pruning (size + prefix filter) is sound: it never drops a true match.
- Match decisions are exact; thresholds are compared by integer cross-multiplication.
"""

from __future__ import annotations

from .filters import FilterResult, build_filter, prefix_length, size_bounds
from .frequency import FrequencyIndex
from .metrics import (
    SIMILARITY_METRICS,
    as_threshold,
    evaluate,
    intersection_size,
    meets_threshold,
    tanimoto_similarity,
)
from .models import Candidate, Item, Match, Query
from .query import QueryOrchestrator, QueryReport, StrategyReport
from .strategies import (
    SEARCH_STRATEGIES,
    FunctionalAggregateStrategy,
    PipelineAggregateStrategy,
    ScanStrategy,
    SearchStrategy,
    get_strategy,
)

__all__ = [
    # models
    "Item",
    "Query",
    "Candidate",
    "Match",
    # frequencies + filters
    "FrequencyIndex",
    "FilterResult",
    "build_filter",
    "size_bounds",
    "prefix_length",
    # metrics
    "as_threshold",
    "intersection_size",
    "tanimoto_similarity",
    "meets_threshold",
    "evaluate",
    "SIMILARITY_METRICS",
    # strategies
    "SearchStrategy",
    "ScanStrategy",
    "FunctionalAggregateStrategy",
    "PipelineAggregateStrategy",
    "get_strategy",
    "SEARCH_STRATEGIES",
    # orchestration
    "QueryOrchestrator",
    "QueryReport",
    "StrategyReport",
]
