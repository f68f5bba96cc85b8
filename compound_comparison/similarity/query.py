"""
Threshold similarity queries against a compound store.

The orchestrator loads the query compound, orders its fingerprints by corpus
frequency, computes the candidate filter once, then hands identical inputs to
each configured search strategy and times it.
"""

from __future__ import annotations

import multiprocessing
import time
from dataclasses import dataclass, field
from fractions import Fraction
from typing import TYPE_CHECKING, FrozenSet, List, Optional, Sequence, Tuple, Union

import pandas as pd
from joblib import Parallel, delayed

from ..config import SearchConfig
from ..errors import StoreUnavailable
from .filters import FilterResult, build_filter
from .frequency import FrequencyIndex
from .metrics import as_threshold
from .models import Match, Query
from .strategies import SearchStrategy, get_strategy

if TYPE_CHECKING:
    from ..store.base import CompoundStore


@dataclass
class StrategyReport:
    """Outcome of one strategy run."""

    strategy: str
    matches: FrozenSet[Match]
    elapsed_ms: float

    @property
    def n_matches(self) -> int:
        return len(self.matches)


@dataclass
class QueryReport:
    """All strategy outcomes for one query."""

    query: Query
    bounds: FilterResult
    reports: List[StrategyReport] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.mismatches()

    def mismatches(self) -> List[Tuple[str, str]]:
        """Strategy pairs whose match sets differ from the first strategy's."""
        if not self.reports:
            return []
        ref = self.reports[0]
        return [(ref.strategy, r.strategy) for r in self.reports[1:] if r.matches != ref.matches]

    @property
    def matches(self) -> FrozenSet[Match]:
        return self.reports[0].matches if self.reports else frozenset()

    def to_dataframe(self) -> pd.DataFrame:
        """Matches of the first strategy, best first."""
        columns = ["Rank", "Compound_ID", "SMILES", "Tanimoto"]
        if not self.matches:
            return pd.DataFrame(columns=columns)
        ordered = sorted(self.matches, key=lambda m: (-m.tanimoto, m.item_id))
        rows = [{"Rank": i, **m.to_dict()} for i, m in enumerate(ordered, 1)]
        return pd.DataFrame(rows, columns=columns)

    def summary_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {"Strategy": r.strategy, "Matches": r.n_matches, "Elapsed_ms": round(r.elapsed_ms, 3)}
                for r in self.reports
            ],
            columns=["Strategy", "Matches", "Elapsed_ms"],
        )


def _timed_search(strategy: SearchStrategy, query: Query, bounds: FilterResult) -> StrategyReport:
    start = time.perf_counter()
    matches = strategy.search(query, bounds)
    elapsed = (time.perf_counter() - start) * 1000.0
    return StrategyReport(strategy=strategy.name, matches=matches, elapsed_ms=elapsed)


def _run_sequential(
    selected: Sequence[SearchStrategy], query: Query, bounds: FilterResult
) -> List[StrategyReport]:
    return [_timed_search(s, query, bounds) for s in selected]


class QueryOrchestrator:
    """Run threshold Tanimoto queries with one or more strategies.

    Parameters
    ----------
    store : CompoundStore
        Read-only compound store
    frequency_index : FrequencyIndex, optional
        Corpus fingerprint frequencies; computed from the store once if omitted
    config : SearchConfig, optional
        Strategy selection and execution options
    """

    def __init__(
        self,
        store: CompoundStore,
        frequency_index: Optional[FrequencyIndex] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.store = store
        self.config = config or SearchConfig()
        self.frequency_index = frequency_index if frequency_index is not None else store.feature_counts()

    def build_query(self, item_id: str, threshold: Union[float, str, Fraction]) -> Query:
        # Threshold is rejected before the store is touched
        t = as_threshold(threshold)
        item = self.store.get_item(item_id)
        item.check_consistency()
        return Query(item=item, threshold=t, ordered_features=self.frequency_index.order(item.features))

    def strategies(self, names: Optional[Sequence[str]] = None) -> List[SearchStrategy]:
        return [
            get_strategy(
                name,
                self.store,
                show_progress=self.config.show_progress,
                use_prefix=self.config.pipeline_prefix,
            )
            for name in (names or self.config.strategies)
        ]

    def run(
        self,
        item_id: str,
        threshold: Union[float, str, Fraction],
        strategies: Optional[Sequence[str]] = None,
    ) -> QueryReport:
        """
        Find every compound at least ``threshold`` similar to ``item_id``.

        Returns
        -------
        QueryReport
            One StrategyReport per strategy, in the requested order

        Raises
        ------
        InvalidThreshold, ItemNotFound, StoreUnavailable, InconsistentItem,
        StrategyUnavailable
        """
        selected = self.strategies(strategies)
        query = self.build_query(item_id, threshold)
        bounds = build_filter(query.ordered_features, query.threshold)

        if self.config.n_jobs != 1:
            tasks = [delayed(_timed_search)(s, query, bounds) for s in selected]
            reports = self._run_parallel(tasks, self.config.n_jobs)
        elif self.config.timeout is not None:
            # One worker runs the strategies in order while the caller waits with the timeout
            tasks = [delayed(_run_sequential)(selected, query, bounds)]
            reports = self._run_parallel(tasks, 2)[0]
        else:
            reports = _run_sequential(selected, query, bounds)

        return QueryReport(query=query, bounds=bounds, reports=reports)

    def _run_parallel(self, tasks: list, n_jobs: int) -> list:
        # Strategies share only read-only state, so threads are safe
        try:
            return Parallel(
                n_jobs=n_jobs,
                backend="threading",
                timeout=self.config.timeout,
            )(tasks)
        except (TimeoutError, multiprocessing.TimeoutError) as e:
            raise StoreUnavailable(
                f"Search did not finish within {self.config.timeout} s"
            ) from e
