"""
Application-wide constants for the salinity trends pipeline.

Declares the canonical observation schema, the raw column tables for each
upstream record shape, and the NWIS parameter-code lookup.
"""

from enum import Enum


class SourceShape(str, Enum):
    """Upstream record shapes accepted by the schema normalizer."""

    WQP_RESULT = "wqp_result"  # multi-site broad Water Quality Portal records
    NWIS_DAILY = "nwis_daily"  # single-site NWIS daily values


# Canonical observation schema
OBSERVATION_COLUMNS = [
    "site_id",
    "date",
    "parameter",
    "value",
    "unit",
    "medium",
    "organization",
    "method",
]
REQUIRED_FIELDS = ["site_id", "date", "parameter", "value"]
PROVENANCE_COLUMNS = ["organization", "method"]

SITE_COLUMNS = [
    "site_id",
    "name",
    "drainage_area",
    "area_unit",
    "latitude",
    "longitude",
]

# Fixed, unambiguous date format for every record shape
DATE_FORMAT = "%Y-%m-%d"

# Water Quality Portal query dates are month-first
WQP_QUERY_DATE_FORMAT = "%m-%d-%Y"

WATER_MEDIUM = "Water"
OTHER_MEDIUM = "Other"

# Raw column -> canonical column, per source shape.
# WQP CSV downloads use "/" separators, dataRetrieval-style frames use ".".
SOURCE_COLUMN_MAPS = {
    SourceShape.WQP_RESULT: {
        "MonitoringLocationIdentifier": "site_id",
        "ActivityStartDate": "date",
        "CharacteristicName": "parameter",
        "ResultMeasureValue": "value",
        "ResultMeasure/MeasureUnitCode": "unit",
        "ResultMeasure.MeasureUnitCode": "unit",
        "ActivityMediaName": "medium",
        "OrganizationIdentifier": "organization",
        "ResultAnalyticalMethod/MethodName": "method",
        "ResultAnalyticalMethod.MethodName": "method",
    },
    SourceShape.NWIS_DAILY: {
        "site_no": "site_id",
        "Date": "date",
        "agency_cd": "organization",
    },
}

SITE_COLUMN_MAPS = {
    SourceShape.NWIS_DAILY: {
        "site_no": "site_id",
        "station_nm": "name",
        "drain_area_va": "drainage_area",
        "dec_lat_va": "latitude",
        "dec_long_va": "longitude",
    },
    SourceShape.WQP_RESULT: {
        "MonitoringLocationIdentifier": "site_id",
        "MonitoringLocationName": "name",
        "DrainageAreaMeasure/MeasureValue": "drainage_area",
        "DrainageAreaMeasure/MeasureUnitCode": "area_unit",
        "LatitudeMeasure": "latitude",
        "LongitudeMeasure": "longitude",
    },
}

# NWIS site service reports drainage area in square miles
NWIS_AREA_UNIT = "sq mi"

# NWIS daily-value statistic code for the daily mean
DAILY_MEAN_STAT = "00003"

# NWIS parameter code -> (canonical parameter, unit)
NWIS_PARAMETER_CODES = {
    "00095": ("Specific conductance", "uS/cm @25C"),
    "00060": ("Discharge", "ft3/s"),
    "00010": ("Temperature, water", "deg C"),
}

# Unit-mismatch policies for the filter & clean stage
UNIT_POLICY_STRICT = "strict"
UNIT_POLICY_DROP = "drop"
UNIT_POLICY_IGNORE = "ignore"
UNIT_POLICIES = (UNIT_POLICY_STRICT, UNIT_POLICY_DROP, UNIT_POLICY_IGNORE)

ALL_MONTHS = tuple(range(1, 13))

# Minimum points per model
MIN_TREND_POINTS = 3
MIN_VARIANCE_POINTS = 2

# Columns of a model output table
MODEL_OUTPUT_COLUMNS = ["term", "estimate", "std_error", "statistic", "p_value"]

# WQP identifies USGS sites as "USGS-<site number>"; canonical site ids are
# the bare site number so both sources join on the same key
USGS_SITE_PREFIX = "USGS-"
