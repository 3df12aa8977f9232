"""
Data processing module for the salinity trends pipeline.

Provides schema normalization, filtering, temporal aggregation and joining.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..core import constants
from ..core.constants import SourceShape
from ..models import StageReport
from .aggregator import TemporalAggregator
from .cleaner import ObservationCleaner
from .joiner import CohortJoiner
from .normalizer import SchemaNormalizer


class DataProcessor:
    """
    Unified processor running the harmonization stages in order.

    Each call returns a new table plus the stage reports produced on the way.
    """

    def __init__(
        self,
        parameters: Optional[Dict[str, List[str]]] = None,
        unit_policy: str = constants.UNIT_POLICY_DROP,
        restrict_parameters: bool = True,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize data processor.

        Args:
            parameters: Canonical parameter name -> upstream name variants
            unit_policy: Unit mismatch policy ('drop', 'strict' or 'ignore')
            restrict_parameters: Drop parameters absent from the mapping
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self.normalizer = SchemaNormalizer(logger)
        self.cleaner = ObservationCleaner(
            parameters=parameters,
            unit_policy=unit_policy,
            restrict_parameters=restrict_parameters,
            start_date=start_date,
            end_date=end_date,
            logger=logger
        )
        self.aggregator = TemporalAggregator(logger)
        self.joiner = CohortJoiner(logger)

    def harmonize(
        self,
        records: Iterable[Dict[str, Any]],
        shape: SourceShape,
        parameter_code: Optional[str] = None
    ) -> Tuple[pd.DataFrame, List[StageReport]]:
        """
        Normalize, clean and roll up raw records to a daily series.

        Args:
            records: Raw records from one upstream shape
            shape: Source shape identifier
            parameter_code: NWIS parameter code for daily-value records

        Returns:
            Tuple of (daily series table, stage reports)
        """
        observations, normalize_report = self.normalizer.normalize(records, shape, parameter_code)
        # Daily-value parameters come from the NWIS code table, not the name mapping
        restrict = False if SourceShape(shape) is SourceShape.NWIS_DAILY else None
        clean, clean_report = self.cleaner.clean(observations, restrict_parameters=restrict)
        daily, daily_report = self.aggregator.daily(clean)
        return daily, [normalize_report, clean_report, daily_report]


__all__ = [
    "SchemaNormalizer",
    "ObservationCleaner",
    "TemporalAggregator",
    "CohortJoiner",
    "DataProcessor",
]
