"""Records passed between the store, the strategies and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Dict, FrozenSet, Tuple

from ..errors import InconsistentItem


@dataclass(frozen=True)
class Item:
    """A stored compound: identifier, structure label and fingerprint set."""

    item_id: str
    label: str
    features: FrozenSet[int]
    feature_count: int

    def check_consistency(self) -> None:
        actual = len(self.features)
        if actual != self.feature_count:
            raise InconsistentItem(self.item_id, self.feature_count, actual)


@dataclass(frozen=True)
class Query:
    """A compound to search for, with its features ordered rarest first."""

    item: Item
    threshold: Fraction
    ordered_features: Tuple[int, ...]
    feature_set: FrozenSet[int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "feature_set", frozenset(self.ordered_features))

    @property
    def size(self) -> int:
        return len(self.ordered_features)


@dataclass(frozen=True)
class Candidate:
    """Per-compound overlap counts emitted by a store-side reducer."""

    item_id: str
    matched_count: int
    total_count: int
    label: str = ""


@dataclass(frozen=True)
class Match:
    """A verified hit."""

    item_id: str
    tanimoto: float
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Compound_ID": self.item_id,
            "SMILES": self.label,
            "Tanimoto": self.tanimoto,
        }
