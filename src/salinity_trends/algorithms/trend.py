"""
Non-parametric monotonic trend test.

Mann-Kendall test with tie-corrected variance and Sen's slope estimator.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from ..core import constants
from ..core.date_utils import DateUtils
from ..core.errors import DuplicateOrderError, InsufficientDataError


@dataclass(frozen=True)
class MannKendallResult:
    """Mann-Kendall statistics for one ordered series."""

    n: int
    s: float
    variance: float
    z: float
    p_value: float


def mann_kendall(values: Sequence[float]) -> MannKendallResult:
    """
    Perform the Mann-Kendall trend test on an ordered series.

    The variance of S is corrected for tied values; z uses the usual
    continuity correction and the p-value is two-sided. A series whose
    variance is zero (e.g. all values equal) has z = 0 and p = 1.

    Args:
        values: Series in time order, without missing values

    Returns:
        MannKendallResult

    Raises:
        InsufficientDataError: With fewer than three values
    """
    x = np.asarray(values, dtype=float)
    n = len(x)
    if n < constants.MIN_TREND_POINTS:
        raise InsufficientDataError(
            f"Trend test needs at least {constants.MIN_TREND_POINTS} points, got {n}"
        )

    # signs[i, j] = sign(x[j] - x[i]); only pairs with i < j count
    signs = np.sign(x[np.newaxis, :] - x[:, np.newaxis])
    s = float(np.triu(signs, k=1).sum())

    _, counts = np.unique(x, return_counts=True)
    ties = counts[counts > 1]
    variance = (
        n * (n - 1) * (2 * n + 5) - float(np.sum(ties * (ties - 1) * (2 * ties + 5)))
    ) / 18.0

    if variance <= 0:
        z = 0.0
    elif s > 0:
        z = (s - 1) / math.sqrt(variance)
    elif s < 0:
        z = (s + 1) / math.sqrt(variance)
    else:
        z = 0.0

    p_value = 1.0 if variance <= 0 else float(2 * stats.norm.sf(abs(z)))
    return MannKendallResult(n=n, s=s, variance=variance, z=z, p_value=p_value)


def sens_slope(values: Sequence[float], times: Optional[Sequence[float]] = None) -> float:
    """
    Sen's slope: median of all pairwise slopes.

    Args:
        values: Series values
        times: Time coordinate per value (default: 0, 1, 2, ...)
    """
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float) if times is None else np.asarray(times, dtype=float)
    return float(stats.theilslopes(y, x)[0])


class MannKendallTrend:
    """
    Trend model for the partitioned model runner.

    Sorts the partition by ``order``, drops missing values and reports Sen's
    slope with the Mann-Kendall z statistic and two-sided p-value. The order
    column must not repeat a value within the partition.
    """

    def __init__(self, value: str = "value", order: str = "date", time: str = "index"):
        """
        Initialize trend model.

        Args:
            value: Column holding the series values
            order: Column that orders the series (dates or years)
            time: 'index' to measure the slope per position in the series,
                  'order' to measure it per unit of the order column
                  (dates are converted to decimal years)
        """
        if time not in ("index", "order"):
            raise ValueError("time must be 'index' or 'order'")
        self.value = value
        self.order = order
        self.time = time

    def __call__(self, partition: pd.DataFrame) -> pd.DataFrame:
        for column in (self.value, self.order):
            if column not in partition.columns:
                raise KeyError(f"Trend model needs column '{column}'")

        series = partition[[self.order, self.value]].dropna()
        distinct = series[self.order].nunique()
        if distinct < constants.MIN_TREND_POINTS:
            raise InsufficientDataError(
                f"Trend needs at least {constants.MIN_TREND_POINTS} distinct "
                f"'{self.order}' values, got {distinct}"
            )
        if distinct < len(series):
            raise DuplicateOrderError(
                f"{len(series) - distinct} repeated '{self.order}' values; "
                f"group by every key that separates the series"
            )
        series = series.sort_values(self.order, kind="mergesort")
        values = series[self.value].to_numpy(dtype=float)

        result = mann_kendall(values)

        times = None
        if self.time == "order":
            order = series[self.order]
            if pd.api.types.is_datetime64_any_dtype(order):
                order = DateUtils.decimal_year(order)
            times = order.to_numpy(dtype=float)
        slope = sens_slope(values, times)

        return pd.DataFrame(
            [
                {
                    "term": "sen_slope",
                    "estimate": slope,
                    "std_error": np.nan,
                    "statistic": result.z,
                    "p_value": result.p_value,
                },
                {
                    "term": "mann_kendall_s",
                    "estimate": result.s,
                    "std_error": math.sqrt(result.variance) if result.variance > 0 else 0.0,
                    "statistic": result.z,
                    "p_value": result.p_value,
                },
            ],
            columns=constants.MODEL_OUTPUT_COLUMNS,
        )

    def __repr__(self) -> str:
        return f"MannKendallTrend(value={self.value!r}, order={self.order!r}, time={self.time!r})"
