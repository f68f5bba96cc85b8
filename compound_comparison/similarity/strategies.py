"""
Interchangeable ways of running the same threshold search against a store.

All strategies consume the same ``FilterResult`` and must return identical
match sets; they differ only in how much of the work the store does:

- ``scan``        store filters by size + prefix, every candidate is verified
                  locally
- ``map_reduce``  store runs a per-compound overlap counter, the Tanimoto
                  division and threshold test happen locally
- ``aggregate``   the whole computation, including the threshold test, runs as
                  a staged pipeline inside the store
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, FrozenSet, List

from ..errors import StrategyUnavailable
from .filters import FilterResult
from .metrics import evaluate, meets_threshold, to_match, union_size
from .models import Match, Query
from ..store.pipeline import (
    GroupMatches,
    MatchCountRange,
    MatchFeatures,
    MatchTanimoto,
    ProjectTanimoto,
    Unwind,
)
from ..store.predicates import CompoundFilter, OverlapCounter

if TYPE_CHECKING:
    from ..store.base import CompoundStore


class SearchStrategy(ABC):
    """Base class: one way of turning filter bounds into verified matches."""

    name: str = ""
    description: str = ""

    def __init__(self, store: CompoundStore):
        self.store = store

    @property
    def available(self) -> bool:
        return True

    def search(self, query: Query, bounds: FilterResult) -> FrozenSet[Match]:
        """
        Return every compound whose Tanimoto similarity to the query reaches
        the query threshold.

        Parameters
        ----------
        query : Query
            Query with fingerprints ordered rarest first
        bounds : FilterResult
            Size bounds and prefix computed from the query

        Returns
        -------
        frozenset of Match
        """
        if bounds.is_empty:
            return frozenset()
        if not self.available:
            raise StrategyUnavailable(
                f"Strategy '{self.name}' is not supported by {type(self.store).__name__}"
            )
        return frozenset(self._search(query, bounds))

    @abstractmethod
    def _search(self, query: Query, bounds: FilterResult) -> List[Match]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.store!r})"


class ScanStrategy(SearchStrategy):
    name = "scan"
    description = "Native query on size + prefix, verify each candidate locally"

    def __init__(self, store: CompoundStore, show_progress: bool = False):
        super().__init__(store)
        self.show_progress = show_progress

    def _search(self, query: Query, bounds: FilterResult) -> List[Match]:
        predicate = CompoundFilter(
            min_count=bounds.min_size,
            max_count=bounds.max_size,
            any_features=frozenset(bounds.prefix),
        )
        candidates = self.store.find(predicate)

        if self.show_progress:
            from tqdm import tqdm

            candidates = tqdm(candidates, desc="Verifying candidates", unit="cpd")

        matches = []
        for item in candidates:
            match = evaluate(query, item)
            if match is not None:
                matches.append(match)
        return matches


class FunctionalAggregateStrategy(SearchStrategy):
    name = "map_reduce"
    description = "Store-side overlap counter, Tanimoto test locally"

    @property
    def available(self) -> bool:
        return self.store.supports_map_reduce

    def _search(self, query: Query, bounds: FilterResult) -> List[Match]:
        predicate = CompoundFilter(
            min_count=bounds.min_size,
            max_count=bounds.max_size,
            any_features=frozenset(bounds.prefix),
        )
        reducer = OverlapCounter(features=query.feature_set, min_found=bounds.min_size)

        matches = []
        for cand in self.store.map_reduce(predicate, reducer):
            union = union_size(query.size, cand.total_count, cand.matched_count)
            # The reducer only bounds the overlap; the threshold still has to be checked
            if meets_threshold(cand.matched_count, union, query.threshold):
                matches.append(to_match(cand.item_id, cand.label, cand.matched_count, union))
        return matches


class PipelineAggregateStrategy(SearchStrategy):
    name = "aggregate"
    description = "Six-stage store pipeline including the Tanimoto test"

    def __init__(self, store: CompoundStore, use_prefix: bool = False):
        super().__init__(store)
        self.use_prefix = use_prefix

    @property
    def available(self) -> bool:
        return self.store.supports_aggregation

    def stages(self, query: Query, bounds: FilterResult) -> list:
        # Stage order is fixed; the size range must run before unwinding.
        return [
            MatchCountRange(
                bounds.min_size,
                bounds.max_size,
                frozenset(bounds.prefix) if self.use_prefix else None,
            ),
            Unwind(),
            MatchFeatures(query.feature_set),
            GroupMatches(),
            ProjectTanimoto(query.size),
            MatchTanimoto(query.threshold),
        ]

    def _search(self, query: Query, bounds: FilterResult) -> List[Match]:
        result = self.store.aggregate(self.stages(query, bounds))
        return [
            to_match(str(row.item_id), str(row.label), int(row.matched), int(row.union))
            for row in result.itertuples(index=False)
        ]


_STRATEGIES = {
    ScanStrategy.name: ScanStrategy,
    FunctionalAggregateStrategy.name: FunctionalAggregateStrategy,
    PipelineAggregateStrategy.name: PipelineAggregateStrategy,
}

SEARCH_STRATEGIES = {name: cls.description for name, cls in _STRATEGIES.items()}


def get_strategy(name: str, store: CompoundStore, **kwargs) -> SearchStrategy:
    """
    Instantiate a search strategy by name.

    Parameters
    ----------
    name : str
        One of ``SEARCH_STRATEGIES``
    store : CompoundStore
        Store the strategy queries
    **kwargs
        Strategy options (``show_progress`` for scan, ``use_prefix`` for
        aggregate); options a strategy does not take are ignored

    Returns
    -------
    SearchStrategy
    """
    key = name.lower()
    if key not in _STRATEGIES:
        raise ValueError(
            f"Unknown search strategy: {name}. "
            f"Available: {list(_STRATEGIES.keys())}"
        )

    cls = _STRATEGIES[key]
    if cls is ScanStrategy:
        return cls(store, show_progress=kwargs.get("show_progress", False))
    if cls is PipelineAggregateStrategy:
        return cls(store, use_prefix=kwargs.get("use_prefix", False))
    return cls(store)
