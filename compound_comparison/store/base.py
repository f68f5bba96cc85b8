"""Contract the search core expects from a compound store.

Required: point lookup by id and predicate-based retrieval. Optional: server-side evaluation of a per-compound
reducer (``map_reduce``) and staged pipeline execution (``aggregate``); a store advertises them through the
``supports_*`` flags and strategies that need a missing capability are unavailable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, List, Sequence

import pandas as pd

from ..errors import StrategyUnavailable
from ..similarity.frequency import FrequencyIndex
from ..similarity.models import Candidate, Item
from .predicates import CompoundFilter, OverlapCounter


class CompoundStore(ABC):
    supports_map_reduce: bool = False
    supports_aggregation: bool = False

    @abstractmethod
    def get_item(self, item_id: str) -> Item:
        """Return a compound by id or raise ``ItemNotFound``."""

    @abstractmethod
    def find(self, predicate: CompoundFilter) -> Iterator[Item]:
        """Yield compounds matching the predicate."""

    @abstractmethod
    def items(self) -> Iterator[Item]:
        """Yield every stored compound."""

    def feature_counts(self) -> FrequencyIndex:
        return FrequencyIndex.from_items(self.items())

    def map_reduce(self, predicate: CompoundFilter, reducer: OverlapCounter) -> List[Candidate]:
        raise StrategyUnavailable(f"{type(self).__name__} does not evaluate reducers")

    def aggregate(self, stages: Sequence) -> pd.DataFrame:
        raise StrategyUnavailable(f"{type(self).__name__} does not run aggregation pipelines")

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
