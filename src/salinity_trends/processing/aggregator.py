"""
Temporal aggregation module.

Collapses same-day observations into daily values and daily values into
monthly and annual summaries.
"""

import logging
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from ..core import constants
from ..models import StageReport

DAILY_KEYS = ["site_id", "date", "parameter"]
MONTHLY_KEYS = ["site_id", "year", "month", "parameter"]
ANNUAL_KEYS = ["site_id", "year", "parameter"]


def resolve_months(months: Optional[Iterable[int]]) -> List[int]:
    """
    Validate an included-months filter; None means all twelve months.

    Raises:
        ValueError: If the filter is empty or names a month outside 1-12
    """
    if months is None:
        return list(constants.ALL_MONTHS)
    resolved = sorted({int(m) for m in months})
    if not resolved:
        raise ValueError("Month filter must include at least one month")
    invalid = [m for m in resolved if m not in constants.ALL_MONTHS]
    if invalid:
        raise ValueError(f"Invalid months: {invalid}")
    return resolved


class TemporalAggregator:
    """Aggregate observations across time windows."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize temporal aggregator.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    def daily(self, observations: pd.DataFrame) -> Tuple[pd.DataFrame, StageReport]:
        """
        Collapse observations to one value per (site_id, date, parameter).

        The value is the mean of the non-missing observations sharing the key;
        ``n_obs`` is the number of input rows collapsed into the row. Keys whose
        observations are all missing produce no row.

        Args:
            observations: Clean observation table

        Returns:
            Tuple of (daily series table, stage report). The report's
            ``details['duplicates']`` counts non-missing rows merged into
            another row.
        """
        self.logger.info("Calculating daily values")
        report = StageReport(stage="daily", rows_in=len(observations))

        grouped = observations.groupby(DAILY_KEYS, sort=True)["value"]
        daily = grouped.agg(value="mean", n_obs="size", n_valid="count").reset_index()

        all_missing = daily["n_valid"] == 0
        report.details["all_missing_groups"] = int(all_missing.sum())
        report.count("AllMissing", int(daily.loc[all_missing, "n_obs"].sum()))

        daily = daily.loc[~all_missing].reset_index(drop=True)
        daily["n_obs"] = daily["n_obs"].astype(int)

        # Rows with a missing value are counted in n_obs but were not merged
        report.details["duplicates"] = int((daily["n_valid"] - 1).sum())
        daily = daily.drop(columns="n_valid")

        report.rows_out = len(daily)
        self.logger.info(
            f"{report.summary()}; {report.details['duplicates']} same-day duplicates collapsed"
        )
        return daily, report

    def _seasonal_subset(self, daily: pd.DataFrame, months: Optional[Iterable[int]]) -> pd.DataFrame:
        included = resolve_months(months)
        dates = pd.to_datetime(daily["date"])
        subset = daily.loc[dates.dt.month.isin(included)].copy()
        subset["year"] = dates[subset.index].dt.year.astype(int)
        subset["month"] = dates[subset.index].dt.month.astype(int)
        if len(included) < 12:
            self.logger.debug(f"Month filter {included} kept {len(subset)} of {len(daily)} daily rows")
        return subset

    def monthly(
        self,
        daily: pd.DataFrame,
        months: Optional[Iterable[int]] = None
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Summarize daily values per (site_id, year, month, parameter).

        Args:
            daily: Daily series table
            months: Included months (default: all)

        Returns:
            Tuple of (monthly summary table with mean and n, stage report)
        """
        report = StageReport(stage="monthly", rows_in=len(daily))
        subset = self._seasonal_subset(daily, months)

        monthly = (
            subset.groupby(MONTHLY_KEYS, sort=True)["value"]
            .agg(mean="mean", n="count")
            .reset_index()
        )
        monthly = monthly.loc[monthly["n"] > 0].reset_index(drop=True)

        report.rows_out = len(monthly)
        self.logger.info(report.summary())
        return monthly, report

    def annual(
        self,
        daily: pd.DataFrame,
        months: Optional[Iterable[int]] = None
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Summarize daily values per (site_id, calendar year, parameter).

        ``mean`` is defined whenever one non-missing value exists;
        ``variance`` is the sample variance (n-1 denominator) and is null
        with fewer than two values.

        Args:
            daily: Daily series table
            months: Included months (default: all), e.g. [7, 8, 9, 10]

        Returns:
            Tuple of (annual summary table with mean, variance and n, stage report)
        """
        report = StageReport(stage="annual", rows_in=len(daily))
        subset = self._seasonal_subset(daily, months)

        annual = (
            subset.groupby(ANNUAL_KEYS, sort=True)["value"]
            .agg(mean="mean", variance="var", n="count")
            .reset_index()
        )
        annual = annual.loc[annual["n"] > 0].reset_index(drop=True)
        annual.loc[annual["n"] < constants.MIN_VARIANCE_POINTS, "variance"] = float("nan")
        annual["variance"] = annual["variance"].astype(float)

        report.details["months"] = resolve_months(months)
        report.details["undefined_variance"] = int(annual["variance"].isna().sum())
        report.rows_out = len(annual)
        self.logger.info(report.summary())
        return annual, report

    @staticmethod
    def pivot_parameters(daily: pd.DataFrame) -> pd.DataFrame:
        """
        Reshape a daily series to one column per parameter, keyed by (site_id, date).

        Args:
            daily: Daily series table (unique per site, date and parameter)

        Returns:
            Wide table with ``site_id``, ``date`` and one value column per parameter
        """
        wide = daily.pivot(index=["site_id", "date"], columns="parameter", values="value")
        wide = wide.reset_index()
        wide.columns.name = None
        return wide
