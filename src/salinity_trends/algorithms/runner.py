"""
Partitioned model runner.

Fits one model independently to every partition of a table and flattens the
successful outputs into a single result table.
"""

import logging
from typing import Callable, List, Optional, Sequence, Union

import pandas as pd

from ..core import constants
from ..core.errors import ModelFitError
from ..models import Failed, Fitted, PartitionOutcome, RunResult

ModelFunction = Callable[[pd.DataFrame], pd.DataFrame]


class PartitionedModelRunner:
    """Apply a model function to each partition of a table."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize model runner.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    def run(
        self,
        table: pd.DataFrame,
        group_by: Union[str, Sequence[str]],
        model: ModelFunction
    ) -> RunResult:
        """
        Fit ``model`` to every partition of ``table``.

        Partitions are visited in order of first appearance of their key
        combination. Each partition is handed its own copy of its rows. A
        ``ModelFitError`` (insufficient data, singular fit) marks that
        partition Failed and the run continues; any other exception propagates.

        Args:
            table: Input table
            group_by: Grouping column or columns
            model: Callable returning a table of term, estimate, std_error,
                   statistic and p_value rows

        Returns:
            RunResult with the flattened results, every partition outcome and
            a failure table
        """
        keys: List[str] = [group_by] if isinstance(group_by, str) else list(group_by)
        if not keys:
            raise ValueError("group_by must name at least one column")
        missing = [key for key in keys if key not in table.columns]
        if missing:
            raise KeyError(f"Grouping columns not in table: {missing}")

        outcomes: List[PartitionOutcome] = []
        for key, rows in table.groupby(keys, sort=False, dropna=True):
            key = key if isinstance(key, tuple) else (key,)
            partition = rows.copy().reset_index(drop=True)
            label = ", ".join(f"{k}={v}" for k, v in zip(keys, key))

            try:
                output = model(partition)
            except ModelFitError as e:
                self.logger.debug(f"Partition {label} failed: {e.reason}: {e}")
                outcomes.append(Failed(key=key, reason=e.reason, message=str(e)))
                continue

            if not isinstance(output, pd.DataFrame):
                raise TypeError(f"Model returned {type(output).__name__}, expected a DataFrame")
            outcomes.append(Fitted(key=key, output=output.copy()))

        result = RunResult(
            group_by=keys,
            results=self._flatten(keys, outcomes),
            outcomes=outcomes,
        )

        self.logger.info(
            f"Fitted {len(result.fitted)} of {len(outcomes)} partitions by {keys} "
            f"with {model!r}"
        )
        if result.failed:
            reasons = result.failures["reason"].value_counts().to_dict()
            self.logger.warning(f"{len(result.failed)} partitions failed: {reasons}")
        return result

    @staticmethod
    def _flatten(keys: List[str], outcomes: List[PartitionOutcome]) -> pd.DataFrame:
        tagged = []
        for outcome in outcomes:
            if not isinstance(outcome, Fitted):
                continue
            frame = outcome.output.copy()
            for position, (column, value) in enumerate(zip(keys, outcome.key)):
                frame.insert(position, column, value, allow_duplicates=True)
            tagged.append(frame)

        if not tagged:
            return pd.DataFrame(columns=keys + constants.MODEL_OUTPUT_COLUMNS)
        return pd.concat(tagged, ignore_index=True)
