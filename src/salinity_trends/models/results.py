"""
Stage reports and per-partition model outcomes.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

import pandas as pd


@dataclass
class StageReport:
    """
    Audit counts for one pipeline stage.

    ``issues`` counts excluded records per kind (e.g. ``MissingField``,
    ``UnparseableDate``); ``details`` holds free-form facts worth reporting,
    such as the units found per parameter.
    """

    stage: str
    rows_in: int = 0
    rows_out: int = 0
    issues: Counter = field(default_factory=Counter)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def rows_dropped(self) -> int:
        return self.rows_in - self.rows_out

    def count(self, kind: str, n: int = 1) -> None:
        """Record ``n`` excluded records of the given kind."""
        if n:
            self.issues[kind] += n

    def summary(self) -> str:
        issues = ", ".join(f"{kind}={n}" for kind, n in sorted(self.issues.items()))
        text = f"{self.stage}: {self.rows_in} -> {self.rows_out} rows"
        return f"{text} ({issues})" if issues else text


PartitionKey = Tuple[Any, ...]


@dataclass(frozen=True, eq=False)
class Fitted:
    """A partition whose model was fitted."""

    key: PartitionKey
    output: pd.DataFrame

    state = "Fitted"


@dataclass(frozen=True)
class Failed:
    """A partition whose model could not be fitted."""

    key: PartitionKey
    reason: str
    message: str = ""

    state = "Failed"


PartitionOutcome = Union[Fitted, Failed]


@dataclass
class RunResult:
    """Flattened output of a partitioned model run."""

    group_by: List[str]
    results: pd.DataFrame
    outcomes: List[PartitionOutcome]

    @property
    def fitted(self) -> List[Fitted]:
        return [o for o in self.outcomes if isinstance(o, Fitted)]

    @property
    def failed(self) -> List[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def failures(self) -> pd.DataFrame:
        """One row per failed partition: key columns, reason, message."""
        rows = [
            dict(zip(self.group_by, outcome.key), reason=outcome.reason, message=outcome.message)
            for outcome in self.failed
        ]
        return pd.DataFrame(rows, columns=self.group_by + ["reason", "message"])
