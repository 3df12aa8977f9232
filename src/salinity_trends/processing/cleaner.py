"""
Filter and clean module.

Restricts canonical observations to water samples with one unit per
parameter, canonicalizes parameter labels and parses dates.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from ..core import constants
from ..core.date_utils import DateUtils
from ..core.errors import UnitMismatchError
from ..models import Medium, StageReport

MISSING_UNIT = "(none)"

# Provenance columns are not carried past the clean stage
CLEAN_COLUMNS = [
    column for column in constants.OBSERVATION_COLUMNS
    if column not in constants.PROVENANCE_COLUMNS
]


class ObservationCleaner:
    """Apply validity rules to canonical observations."""

    def __init__(
        self,
        parameters: Optional[Dict[str, List[str]]] = None,
        unit_policy: str = constants.UNIT_POLICY_DROP,
        restrict_parameters: bool = True,
        start_date: Optional[Union[str, date]] = None,
        end_date: Optional[Union[str, date]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize observation cleaner.

        Args:
            parameters: Canonical parameter name -> upstream name variants
            unit_policy: 'drop' (exclude parameters with mixed units),
                         'strict' (raise UnitMismatchError) or 'ignore'
            restrict_parameters: Drop parameters absent from the mapping
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            logger: Logger instance
        """
        if unit_policy not in constants.UNIT_POLICIES:
            raise ValueError(f"Unknown unit policy: {unit_policy}")

        self.logger = logger or logging.getLogger(__name__)
        self.parameters = parameters or {}
        self.unit_policy = unit_policy
        self.restrict_parameters = restrict_parameters and bool(self.parameters)
        self.start_date = pd.Timestamp(DateUtils.parse_date(start_date)) if start_date else None
        self.end_date = pd.Timestamp(DateUtils.parse_date(end_date)) if end_date else None

        self._variant_lookup: Dict[str, str] = {}
        for canonical, variants in self.parameters.items():
            for name in [canonical] + list(variants):
                self._variant_lookup[name.strip().lower()] = canonical

    def clean(
        self,
        observations: pd.DataFrame,
        restrict_parameters: Optional[bool] = None
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Filter and clean canonical observations.

        Args:
            observations: Canonical observation table (mixed media/units allowed)
            restrict_parameters: Override the instance setting for this call

        Returns:
            Tuple of (clean observation table, stage report). The report's
            ``details['units']`` lists the units found per parameter.

        Raises:
            UnitMismatchError: Under the 'strict' policy, if any parameter has
                               more than one unit
        """
        report = StageReport(stage="clean", rows_in=len(observations))
        frame = observations.copy()

        for column in ("site_id", "parameter", "unit"):
            frame[column] = frame[column].map(lambda v: v.strip() if isinstance(v, str) else v)

        is_water = frame["medium"].map(lambda label: Medium.from_label(label) is Medium.WATER).astype(bool)
        report.count("WrongMedium", int((~is_water).sum()))
        frame = frame.loc[is_water].copy()

        restrict = self.restrict_parameters if restrict_parameters is None else restrict_parameters
        frame = self._canonicalize_parameters(frame, report, restrict)

        frame["date"] = DateUtils.parse_date_column(frame["date"])
        unparseable = frame["date"].isna()
        if unparseable.any():
            self.logger.debug(f"{int(unparseable.sum())} records with unparseable dates")
        report.count("UnparseableDate", int(unparseable.sum()))
        frame = frame.loc[~unparseable].copy()

        in_window = pd.Series(True, index=frame.index)
        if self.start_date is not None:
            in_window &= frame["date"] >= self.start_date
        if self.end_date is not None:
            in_window &= frame["date"] <= self.end_date
        report.count("OutOfPeriod", int((~in_window).sum()))
        frame = frame.loc[in_window]

        frame = self._check_units(frame, report)

        frame = frame[CLEAN_COLUMNS].reset_index(drop=True)
        frame["medium"] = Medium.WATER.value
        report.rows_out = len(frame)
        self.logger.info(report.summary())
        return frame, report

    def _canonicalize_parameters(
        self,
        frame: pd.DataFrame,
        report: StageReport,
        restrict: bool
    ) -> pd.DataFrame:
        if not self._variant_lookup:
            return frame

        canonical = frame["parameter"].map(
            lambda name: self._variant_lookup.get(str(name).lower())
        )
        unknown = canonical.isna()
        if restrict:
            if unknown.any():
                names = sorted(frame.loc[unknown, "parameter"].astype(str).unique())
                self.logger.debug(f"Dropping unconfigured parameters: {names}")
            report.count("UnknownParameter", int(unknown.sum()))
            frame = frame.loc[~unknown].copy()
            frame["parameter"] = canonical[~unknown]
        else:
            frame = frame.copy()
            frame["parameter"] = canonical.where(~unknown, frame["parameter"])
        return frame

    def units_by_parameter(self, frame: pd.DataFrame) -> Dict[str, List[str]]:
        """Distinct units found for each parameter (a missing unit counts as one)."""
        units = frame["unit"].where(frame["unit"].notna(), MISSING_UNIT)
        return {
            str(parameter): sorted(str(u) for u in group.unique())
            for parameter, group in units.groupby(frame["parameter"], sort=True)
        }

    def _check_units(self, frame: pd.DataFrame, report: StageReport) -> pd.DataFrame:
        units = self.units_by_parameter(frame)
        report.details["units"] = units

        mismatched = {parameter: found for parameter, found in units.items() if len(found) > 1}
        if not mismatched:
            return frame

        for parameter, found in mismatched.items():
            self.logger.warning(f"Unit mismatch for {parameter}: {', '.join(found)}")
        report.details["unit_mismatch"] = mismatched

        if self.unit_policy == constants.UNIT_POLICY_STRICT:
            raise UnitMismatchError(mismatched)

        if self.unit_policy == constants.UNIT_POLICY_IGNORE:
            self.logger.warning("Keeping parameters with mixed units (unit_policy=ignore)")
            return frame

        failing = frame["parameter"].isin(list(mismatched))
        report.count("UnitMismatch", int(failing.sum()))
        self.logger.warning(f"Excluded parameters with mixed units: {', '.join(sorted(mismatched))}")
        return frame.loc[~failing]
