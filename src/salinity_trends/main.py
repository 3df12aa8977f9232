"""
Main entry point for the salinity trends pipeline.

Orchestrates retrieval, harmonization, aggregation, joining and the
partitioned model run.
"""

import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from .core import Config, DateUtils, LoggerContext, setup_logger
from .core.constants import SourceShape
from .models import RunResult, StageReport
from .processing import DataProcessor
from .algorithms import PartitionedModelRunner, build_model
from .services import WaterDataService
from .writer import ResultWriter


@dataclass
class PipelineTables:
    """Intermediate tables of one run, kept for inspection and presentation."""

    chemistry: pd.DataFrame
    streams: Dict[str, pd.DataFrame]
    sites: pd.DataFrame
    analysis: Optional[pd.DataFrame] = None
    reports: List[StageReport] = field(default_factory=list)


class SalinityTrendsApp:
    """Main application for the salinity trends pipeline."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        config: Optional[Config] = None,
        service: Optional[WaterDataService] = None,
        log_file: Optional[str] = None
    ):
        """
        Initialize application.

        Args:
            config_file: Path to configuration file
            config: Ready configuration (takes precedence over config_file)
            service: Data-source service (default: built from configuration)
            log_file: Log file path (default: LOG_FILE env var)
        """
        self.config = config or Config(config_file)

        self.logger = setup_logger(log_file=log_file)
        self.logger.info("=" * 60)
        self.logger.info("Salinity Trends Pipeline")
        self.logger.info("=" * 60)
        self.logger.info(f"Configuration: {self.config}")

        self.service = service
        self.processor: Optional[DataProcessor] = None
        self.runner: Optional[PartitionedModelRunner] = None
        self.writer: Optional[ResultWriter] = None
        self.tables: Optional[PipelineTables] = None

    def initialize_components(self, start_date: str, end_date: str) -> None:
        """Initialize all application components."""
        self.logger.info("Initializing components...")

        if self.service is None:
            self.service = WaterDataService.from_config(self.config, self.logger)

        self.processor = DataProcessor(
            parameters=self.config.parameters,
            unit_policy=self.config.unit_policy,
            restrict_parameters=self.config.restrict_parameters,
            start_date=start_date,
            end_date=end_date,
            logger=self.logger
        )
        self.runner = PartitionedModelRunner(logger=self.logger)
        self.writer = ResultWriter(self.config.output_dir, logger=self.logger)

        self.logger.info("All components initialized successfully")

    def resolve_period(self, start_date: Optional[str] = None, end_date: Optional[str] = None):
        """Resolve the retrieval window from arguments, then configuration, then today."""
        date_utils = DateUtils(self.logger)
        start = DateUtils.to_iso_date(start_date or self.config.start_date)
        end_value = end_date or self.config.end_date
        end = (
            DateUtils.to_iso_date(end_value)
            if end_value
            else DateUtils.to_iso_date(date_utils.today(self.config.timezone))
        )
        if start > end:
            raise ValueError(f"Start date {start} is after end date {end}")
        return start, end

    def run(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        write: bool = True
    ) -> RunResult:
        """
        Run the pipeline once.

        Args:
            start_date: Override of the configured start date (YYYY-MM-DD)
            end_date: Override of the configured end date (YYYY-MM-DD)
            write: Write result tables to the output directory

        Returns:
            Flattened model results with per-partition outcomes

        Raises:
            SourceUnavailableError: If an upstream retrieval fails
            UnitMismatchError: Under the strict unit policy
        """
        start, end = self.resolve_period(start_date, end_date)
        self.logger.info(f"Analysis period: {start} to {end}")

        try:
            self.initialize_components(start, end)

            with LoggerContext(self.logger, "retrieval and harmonization"):
                self.tables = self.harmonize(start, end)

            with LoggerContext(self.logger, f"{self.config.analysis_level} table assembly"):
                analysis = self.build_analysis_table(self.tables)
                self.tables.analysis = analysis

            model = build_model(self.config.model_spec)
            with LoggerContext(self.logger, "partitioned model run"):
                result = self.runner.run(analysis, self.config.group_by, model)

            self.writer.log_run_summary(result, self.tables.reports)
            if write:
                self.writer.write_run(result)
                self.writer.write_table(analysis, f"{self.config.analysis_level}_table")
                self.writer.write_reports(self.tables.reports)

            self.logger.info("Processing complete")
            return result

        except Exception as e:
            self.logger.error(f"Application error: {e}")
            raise

        finally:
            if self.service is not None:
                self.service.close()

    def harmonize(self, start: str, end: str) -> PipelineTables:
        """
        Retrieve every source and harmonize it to daily series.

        Returns:
            PipelineTables with the chemistry daily series, one daily series per
            NWIS parameter code and the site metadata
        """
        sites = self.config.sites
        reports: List[StageReport] = []

        raw_results = self.service.fetch_observations(
            sites, start, end, self.config.medium, self.config.characteristic_names
        )
        chemistry, chemistry_reports = self.processor.harmonize(raw_results, SourceShape.WQP_RESULT)
        reports.extend(chemistry_reports)

        streams: Dict[str, pd.DataFrame] = {}
        for code in self.config.daily_value_codes:
            raw_values = self.service.fetch_daily_values(sites, code, start, end)
            stream, stream_reports = self.processor.harmonize(
                raw_values, SourceShape.NWIS_DAILY, parameter_code=code
            )
            streams[code] = stream
            reports.extend(stream_reports)

        if self.config.site_source == "wqp":
            raw_sites = self.service.fetch_stations(sites)
            site_shape = SourceShape.WQP_RESULT
        else:
            raw_sites = self.service.fetch_sites(sites)
            site_shape = SourceShape.NWIS_DAILY
        site_table, site_report = self.processor.normalizer.normalize_sites(raw_sites, site_shape)
        reports.append(site_report)

        return PipelineTables(chemistry=chemistry, streams=streams, sites=site_table, reports=reports)

    def build_analysis_table(self, tables: PipelineTables) -> pd.DataFrame:
        """
        Assemble the table the models run on, per ``analysis.level``.

        - daily: long daily chemistry (site_id, date, parameter, value)
        - monthly: monthly summaries over the included months, with site metadata
        - annual: annual summaries over the included months, with site metadata
        - joined: wide daily chemistry inner-joined with the NWIS streams on
          (site_id, date); colliding columns carry 'sample' or the parameter code
        """
        aggregator = self.processor.aggregator
        joiner = self.processor.joiner
        level = self.config.analysis_level

        if level == "daily":
            return tables.chemistry.copy()

        if level in ("monthly", "annual"):
            summarize = aggregator.monthly if level == "monthly" else aggregator.annual
            summary, summary_report = summarize(tables.chemistry, self.config.included_months)
            tables.reports.append(summary_report)
            with_sites, site_report = joiner.attach_sites(summary, tables.sites)
            tables.reports.append(site_report)
            return with_sites

        wide = [aggregator.pivot_parameters(tables.chemistry)]
        labels = ["sample"]
        for code, stream in tables.streams.items():
            wide.append(aggregator.pivot_parameters(stream))
            labels.append(code)
        joined, join_report = joiner.join(*wide, suffixes=labels)
        tables.reports.append(join_report)
        return joined


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Salinity and ion-chemistry trend analysis for water-quality sites"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--start",
        type=str,
        default=None,
        help="Start date (YYYY-MM-DD). Default: period.start_date"
    )
    parser.add_argument(
        "--end",
        type=str,
        default=None,
        help="End date (YYYY-MM-DD). Default: period.end_date or today"
    )
    parser.add_argument(
        "--no-write",
        action="store_true",
        help="Do not write result tables"
    )

    args = parser.parse_args()

    for value in (args.start, args.end):
        if value:
            try:
                DateUtils.parse_date(value)
            except ValueError:
                print(f"Invalid date format: {value}. Use YYYY-MM-DD")
                sys.exit(1)

    try:
        app = SalinityTrendsApp(config_file=args.config)
        app.run(start_date=args.start, end_date=args.end, write=not args.no_write)
    except Exception as e:
        print(f"Application failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
