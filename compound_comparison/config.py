"""Search session configuration.

A frozen dataclass holds everything that selects *how* a query is executed; the query itself (compound id and
threshold) is passed separately. CLIs build it from flags, optionally seeded from a JSON file via ``--config``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

DEFAULT_STRATEGIES: Tuple[str, ...] = ("scan", "map_reduce", "aggregate")


@dataclass(frozen=True)
class SearchConfig:
    strategies: Tuple[str, ...] = DEFAULT_STRATEGIES
    # 1 runs strategies one after another; anything else runs them concurrently
    n_jobs: int = 1
    # Seconds for the whole run, sequential or concurrent
    timeout: Optional[float] = None
    show_progress: bool = False
    # Add the prefix membership test to the first pipeline stage
    pipeline_prefix: bool = False

    def __post_init__(self):
        if isinstance(self.strategies, str):
            object.__setattr__(self, "strategies", (self.strategies,))
        else:
            object.__setattr__(self, "strategies", tuple(self.strategies))
        if not self.strategies:
            raise ValueError("At least one search strategy is required")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero (use -1 for all CPUs)")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SearchConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        return cls(**dict(data))

    def replace(self, **overrides: Any) -> "SearchConfig":
        """Copy with the non-None overrides applied."""
        data = asdict(self)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SearchConfig(**data)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["strategies"] = list(self.strategies)
        return data


def load_config(path: Optional[str | Path]) -> SearchConfig:
    """Load a JSON config file; ``None`` gives the defaults."""

    if path is None:
        return SearchConfig()
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {p}")
    return SearchConfig.from_mapping(data)
