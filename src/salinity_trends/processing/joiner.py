"""
Cohort joining module.

Matches measurement streams on shared (site_id, date) keys and attaches
static site metadata to summary tables.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from ..models import StageReport

DEFAULT_KEYS = ("site_id", "date")


class CohortJoiner:
    """Strict inner joins between keyed tables."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize cohort joiner.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _prepare(table: pd.DataFrame, keys: List[str], position: int) -> pd.DataFrame:
        missing = [key for key in keys if key not in table.columns]
        if missing:
            raise KeyError(f"Table {position} is missing key columns: {missing}")

        prepared = table.copy()
        if "site_id" in keys:
            prepared["site_id"] = prepared["site_id"].astype(str)
        if "date" in keys:
            prepared["date"] = pd.to_datetime(prepared["date"])

        duplicated = prepared.duplicated(subset=keys, keep=False)
        if duplicated.any():
            raise ValueError(
                f"Table {position} has {int(duplicated.sum())} rows with duplicate keys {keys}"
            )
        return prepared

    def join(
        self,
        *tables: pd.DataFrame,
        keys: Sequence[str] = DEFAULT_KEYS,
        suffixes: Optional[Sequence[str]] = None
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Inner-join two or three tables on shared keys.

        Only keys present in every table survive. Non-key columns that appear
        in more than one table are renamed with that table's suffix.

        Args:
            *tables: Two or three tables, each unique on ``keys``
            keys: Key columns (default: site_id, date)
            suffixes: One label per table (default: '1', '2', '3')

        Returns:
            Tuple of (joined table, stage report). The report's
            ``details['dropped']`` lists, per input table, the rows without a
            partner in every other table.

        Raises:
            ValueError: On a wrong number of tables or duplicate keys
            KeyError: If a table lacks a key column
        """
        if len(tables) not in (2, 3):
            raise ValueError(f"join expects two or three tables, got {len(tables)}")

        keys = list(keys)
        labels = list(suffixes) if suffixes is not None else [str(i + 1) for i in range(len(tables))]
        if len(labels) != len(tables):
            raise ValueError("Provide one suffix per table")

        prepared = [self._prepare(table, keys, i + 1) for i, table in enumerate(tables)]

        value_columns = [[c for c in table.columns if c not in keys] for table in prepared]
        renamed = []
        for i, (table, columns) in enumerate(zip(prepared, value_columns)):
            others = {c for j, cols in enumerate(value_columns) if j != i for c in cols}
            mapping = {c: f"{c}_{labels[i]}" for c in columns if c in others}
            renamed.append(table.rename(columns=mapping))

        joined = renamed[0]
        for table in renamed[1:]:
            joined = joined.merge(table, on=keys, how="inner", validate="one_to_one")
        joined = joined.sort_values(keys, kind="mergesort").reset_index(drop=True)

        report = StageReport(stage="join", rows_in=sum(len(t) for t in tables), rows_out=len(joined))
        dropped = [len(table) - len(joined) for table in prepared]
        report.details["dropped"] = dict(zip(labels, dropped))
        report.count("Unmatched", sum(dropped))

        self.logger.info(
            f"Joined {len(tables)} tables on {keys}: {len(joined)} matched keys; "
            + ", ".join(f"table {label} dropped {n}" for label, n in zip(labels, dropped))
        )
        if not len(joined):
            self.logger.warning("No overlapping keys between joined tables")
        return joined, report

    def attach_sites(
        self,
        summary: pd.DataFrame,
        sites: pd.DataFrame,
        key: str = "site_id"
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Attach site metadata to a summary table (many rows per site to one site).

        Summary rows without site metadata are dropped and counted.

        Args:
            summary: Table keyed by site (e.g. annual summary keyed by site and year)
            sites: Site metadata table, unique on ``key``
            key: Join column

        Returns:
            Tuple of (summary with site columns, stage report)
        """
        for name, table in (("summary", summary), ("sites", sites)):
            if key not in table.columns:
                raise KeyError(f"{name} table is missing key column '{key}'")

        site_table = sites.copy()
        site_table[key] = site_table[key].astype(str)
        if site_table[key].duplicated().any():
            raise ValueError("Site metadata must be unique per site; normalize sites first")

        left = summary.copy()
        left[key] = left[key].astype(str)
        joined = left.merge(
            site_table, on=key, how="inner", validate="many_to_one", suffixes=("", "_site")
        )

        report = StageReport(stage="attach_sites", rows_in=len(summary), rows_out=len(joined))
        unmatched = sorted(set(left[key]) - set(site_table[key]))
        report.count("Unmatched", len(summary) - len(joined))
        report.details["sites_without_metadata"] = unmatched
        if unmatched:
            self.logger.warning(f"No site metadata for: {', '.join(unmatched)}")
        self.logger.info(report.summary())
        return joined, report
