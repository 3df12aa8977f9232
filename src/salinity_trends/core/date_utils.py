"""
Date utilities.

Centralizes date parsing and formatting so every stage uses the same fixed
calendar-date format.
"""

import logging
from datetime import date, datetime
from typing import Optional, Union

import pandas as pd
import pytz
from pytz.tzinfo import BaseTzInfo

from . import constants

DateLike = Union[str, date, datetime]


class DateUtils:
    """Utilities for calendar-date handling."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize date utilities.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def parse_timezone(timezone_str: str) -> BaseTzInfo:
        """
        Parse timezone string to pytz timezone object.

        Raises:
            ValueError: If timezone is invalid
        """
        try:
            return pytz.timezone(timezone_str)
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"Invalid timezone: {timezone_str}")

    def today(self, timezone_str: str = "UTC", reference_time: Optional[datetime] = None) -> date:
        """
        Get the current calendar date in the given timezone.

        Used as the default end of the retrieval window.

        Args:
            timezone_str: Timezone string (e.g., 'America/New_York')
            reference_time: Reference time (defaults to now in UTC)

        Returns:
            Local calendar date
        """
        tz = self.parse_timezone(timezone_str)

        if reference_time is None:
            reference_time = datetime.now(pytz.UTC)
        elif reference_time.tzinfo is None:
            reference_time = pytz.UTC.localize(reference_time)

        local_date = reference_time.astimezone(tz).date()
        self.logger.debug(f"Today in {timezone_str}: {local_date.isoformat()}")
        return local_date

    @staticmethod
    def parse_date(value: DateLike) -> date:
        """
        Parse a single date using the fixed YYYY-MM-DD format.

        Raises:
            ValueError: If the string does not match the format
        """
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return datetime.strptime(str(value).strip(), constants.DATE_FORMAT).date()

    @staticmethod
    def parse_date_column(values: pd.Series) -> pd.Series:
        """
        Parse a column of date strings; unparseable entries become NaT.

        Values that are already datetimes pass through unchanged.
        """
        if pd.api.types.is_datetime64_any_dtype(values):
            return values.dt.normalize()
        text = values.astype("string").str.strip()
        return pd.to_datetime(text, format=constants.DATE_FORMAT, errors="coerce")

    @staticmethod
    def to_wqp_date(value: DateLike) -> str:
        """Format a date the way the Water Quality Portal expects (MM-DD-YYYY)."""
        return DateUtils.parse_date(value).strftime(constants.WQP_QUERY_DATE_FORMAT)

    @staticmethod
    def to_iso_date(value: DateLike) -> str:
        """Format a date as YYYY-MM-DD."""
        return DateUtils.parse_date(value).strftime(constants.DATE_FORMAT)

    @staticmethod
    def decimal_year(values: pd.Series) -> pd.Series:
        """
        Convert a datetime column to decimal years (e.g. 2020-07-02 -> ~2020.5).
        """
        dates = pd.to_datetime(values)
        year_start = pd.to_datetime(dates.dt.year.astype(str) + "-01-01")
        days_in_year = 365 + dates.dt.is_leap_year.astype(int)
        return dates.dt.year + (dates - year_start).dt.days / days_in_year
