"""
Source schema normalization module.

Maps raw upstream records onto the canonical observation and site schemas
using the declarative column tables in ``core.constants``.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from ..core import constants
from ..core.constants import SourceShape
from ..models import Medium, StageReport

RawRecords = Union[pd.DataFrame, Iterable[Dict[str, Any]]]

# X_00095_00003 (dataRetrieval) or 00095_00003 (flattened service JSON)
_DAILY_VALUE_COLUMN = re.compile(r"^(?:X_)?(\d{5})_" + constants.DAILY_MEAN_STAT + r"$")


def _as_frame(records: RawRecords) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        return records.copy()
    return pd.DataFrame(list(records))


def _is_blank(values: pd.Series) -> pd.Series:
    """True where a raw field is absent: None, NaN or an empty string."""
    as_text = values.astype("string").str.strip()
    return (values.isna() | (as_text == "").fillna(False)).astype(bool)


def _strip_site_prefix(site_id: Any) -> Any:
    if isinstance(site_id, str):
        site_id = site_id.strip()
        if site_id.startswith(constants.USGS_SITE_PREFIX):
            return site_id[len(constants.USGS_SITE_PREFIX):]
    return site_id


def _date_text(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.strftime(constants.DATE_FORMAT)
    return value


class SchemaNormalizer:
    """Normalize raw records from either upstream shape into canonical tables."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize schema normalizer.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    def normalize(
        self,
        records: RawRecords,
        shape: Union[SourceShape, str],
        parameter_code: Optional[str] = None
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Normalize raw observation records.

        Args:
            records: Raw records (DataFrame or iterable of dicts)
            shape: Source shape identifier
            parameter_code: NWIS parameter code to read from a daily-value
                            record set holding several value columns

        Returns:
            Tuple of (canonical observation table, stage report)

        Raises:
            ValueError: If the shape is unknown or the daily-value column cannot
                        be resolved
        """
        shape = SourceShape(shape)
        raw = _as_frame(records)
        report = StageReport(stage=f"normalize[{shape.value}]", rows_in=len(raw))

        if shape is SourceShape.NWIS_DAILY:
            frame = self._from_daily_values(raw, parameter_code, report)
        else:
            frame = self._from_result_records(raw)

        if not len(raw):
            report.rows_out = 0
            return pd.DataFrame(columns=constants.OBSERVATION_COLUMNS), report

        missing = pd.Series(False, index=frame.index)
        for column in constants.REQUIRED_FIELDS:
            absent = _is_blank(frame[column])
            if absent.any():
                self.logger.debug(f"{int(absent.sum())} records missing '{column}'")
            missing |= absent
        report.count("MissingField", int(missing.sum()))
        frame = frame.loc[~missing].copy()

        numeric = pd.to_numeric(frame["value"], errors="coerce")
        non_numeric = int((numeric.isna() & frame["value"].notna()).sum())
        if non_numeric:
            report.details["non_numeric_values"] = non_numeric
            self.logger.debug(f"{non_numeric} non-numeric values treated as missing")
        frame["value"] = numeric.astype(float)

        frame["unit"] = frame["unit"].astype("string").str.strip().astype(object)
        frame["unit"] = frame["unit"].where(frame["unit"].notna(), None)
        frame["date"] = frame["date"].map(_date_text)
        frame["site_id"] = frame["site_id"].astype(str)
        frame["parameter"] = frame["parameter"].astype(str)

        frame = frame[constants.OBSERVATION_COLUMNS].reset_index(drop=True)
        report.rows_out = len(frame)
        self.logger.info(report.summary())
        return frame, report

    def _from_result_records(self, raw: pd.DataFrame) -> pd.DataFrame:
        mapping = constants.SOURCE_COLUMN_MAPS[SourceShape.WQP_RESULT]
        frame = self._apply_mapping(raw, mapping, constants.OBSERVATION_COLUMNS)
        frame["medium"] = frame["medium"].map(lambda label: Medium.from_label(label).value)
        frame["site_id"] = frame["site_id"].map(_strip_site_prefix)
        return frame

    def _from_daily_values(
        self,
        raw: pd.DataFrame,
        parameter_code: Optional[str],
        report: StageReport
    ) -> pd.DataFrame:
        value_columns = {}
        for column in raw.columns:
            match = _DAILY_VALUE_COLUMN.match(str(column))
            if match:
                value_columns[match.group(1)] = column

        if parameter_code is None:
            if len(value_columns) > 1:
                raise ValueError(
                    f"Daily values hold several parameters ({', '.join(sorted(value_columns))}); "
                    "pass parameter_code"
                )
            parameter_code = next(iter(value_columns), None)

        if parameter_code is not None and parameter_code not in constants.NWIS_PARAMETER_CODES:
            raise ValueError(f"Unknown NWIS parameter code: {parameter_code}")

        mapping = dict(constants.SOURCE_COLUMN_MAPS[SourceShape.NWIS_DAILY])
        if parameter_code in value_columns:
            mapping[value_columns[parameter_code]] = "value"
        elif len(raw):
            self.logger.warning(f"No daily-mean column for parameter code {parameter_code}")

        frame = self._apply_mapping(raw, mapping, constants.OBSERVATION_COLUMNS)
        if parameter_code is not None:
            parameter, unit = constants.NWIS_PARAMETER_CODES[parameter_code]
            frame["parameter"] = parameter
            frame["unit"] = unit
            report.details["parameter_code"] = parameter_code
        frame["medium"] = Medium.WATER.value
        return frame

    def _apply_mapping(
        self,
        raw: pd.DataFrame,
        mapping: Dict[str, str],
        columns: List[str]
    ) -> pd.DataFrame:
        """Rename mapped columns, drop everything else, add absent canonical columns."""
        present = {raw_name: canonical for raw_name, canonical in mapping.items() if raw_name in raw.columns}
        dropped = [column for column in raw.columns if column not in present]
        if dropped:
            self.logger.debug(f"Dropping {len(dropped)} unmapped columns")

        frame = pd.DataFrame(index=raw.index)
        for raw_name, canonical in present.items():
            # Several raw spellings may map to one canonical column; first present wins
            if canonical not in frame.columns:
                frame[canonical] = raw[raw_name]
        for column in columns:
            if column not in frame.columns:
                frame[column] = None
        return frame

    def normalize_sites(
        self,
        records: RawRecords,
        shape: Union[SourceShape, str]
    ) -> Tuple[pd.DataFrame, StageReport]:
        """
        Normalize raw site records into the site metadata schema.

        Records without a site identifier are excluded; duplicate identifiers
        keep the first record seen.

        Args:
            records: Raw site records (NWIS site service or WQP station rows)
            shape: Source shape identifier

        Returns:
            Tuple of (site metadata table, stage report)
        """
        shape = SourceShape(shape)
        raw = _as_frame(records)
        report = StageReport(stage=f"normalize_sites[{shape.value}]", rows_in=len(raw))

        frame = self._apply_mapping(raw, constants.SITE_COLUMN_MAPS[shape], constants.SITE_COLUMNS)
        for column in ("drainage_area", "latitude", "longitude"):
            frame[column] = pd.to_numeric(frame[column], errors="coerce")
        if shape is SourceShape.NWIS_DAILY:
            frame["area_unit"] = frame["drainage_area"].map(
                lambda area: constants.NWIS_AREA_UNIT if pd.notna(area) else None
            )

        missing = _is_blank(frame["site_id"])
        report.count("MissingField", int(missing.sum()))
        frame = frame.loc[~missing].copy()
        frame["site_id"] = frame["site_id"].astype(str).str.strip()
        frame["site_id"] = frame["site_id"].map(_strip_site_prefix)

        duplicated = frame["site_id"].duplicated(keep="first")
        report.count("DuplicateSite", int(duplicated.sum()))
        frame = frame.loc[~duplicated, constants.SITE_COLUMNS].reset_index(drop=True)

        report.rows_out = len(frame)
        self.logger.info(report.summary())
        return frame, report
