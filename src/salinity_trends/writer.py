"""
Result writer for partitioned model runs.

Writes result and failure tables to CSV and logs a run summary.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .models import RunResult, StageReport


class ResultWriter:
    """Write model results and stage audits to an output directory."""

    def __init__(self, output_dir: str, logger: Optional[logging.Logger] = None):
        """
        Initialize result writer.

        Args:
            output_dir: Directory that receives the CSV files
            logger: Logger instance
        """
        self.output_dir = Path(output_dir)
        self.logger = logger or logging.getLogger(__name__)

    def write_table(self, table: pd.DataFrame, name: str) -> Path:
        """
        Write one table as CSV.

        Args:
            table: Table to write
            name: File stem

        Returns:
            Path of the written file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{name}.csv"
        table.to_csv(path, index=False)
        self.logger.debug(f"Wrote {len(table)} rows to {path}")
        return path

    def write_run(self, result: RunResult, name: str = "model") -> Dict[str, Path]:
        """
        Write the result and failure tables of a model run.

        Args:
            result: Partitioned model run
            name: File stem prefix

        Returns:
            Paths keyed by 'results' and 'failures'
        """
        paths = {
            "results": self.write_table(result.results, f"{name}_results"),
            "failures": self.write_table(result.failures, f"{name}_failures"),
        }
        self.logger.info(f"Wrote model results to {self.output_dir}")
        return paths

    def write_reports(self, reports: List[StageReport], name: str = "stage_reports") -> Path:
        """Write the stage audit counts as one row per stage and issue kind."""
        rows = []
        for report in reports:
            rows.append({"stage": report.stage, "kind": "rows_in", "count": report.rows_in})
            rows.append({"stage": report.stage, "kind": "rows_out", "count": report.rows_out})
            for kind, count in sorted(report.issues.items()):
                rows.append({"stage": report.stage, "kind": kind, "count": count})
        return self.write_table(pd.DataFrame(rows, columns=["stage", "kind", "count"]), name)

    def log_run_summary(self, result: RunResult, reports: List[StageReport]) -> None:
        """
        Log summary of a pipeline run.

        Args:
            result: Partitioned model run
            reports: Stage reports in pipeline order
        """
        self.logger.info("=" * 60)
        self.logger.info("Run Summary")
        self.logger.info("=" * 60)
        for report in reports:
            self.logger.info(report.summary())
        self.logger.info(f"Partitions fitted: {len(result.fitted)}")
        self.logger.info(f"Partitions failed: {len(result.failed)}")

        if result.failed:
            self.logger.warning("Failed partitions:")
            for outcome in result.failed:
                key = ", ".join(str(k) for k in outcome.key)
                self.logger.warning(f"  - ({key}): {outcome.reason}")

        self.logger.info("=" * 60)
