"""
USGS NWIS web service operations.

Retrieves daily values and site descriptions and reshapes them into the
flat NWIS record layout (one dict per site and day).
"""

import io
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .client import APIClient
from ..core import constants
from ..core.date_utils import DateLike, DateUtils


def flatten_daily_values(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Flatten a daily-values JSON payload into per-day records.

    Each record carries ``agency_cd``, ``site_no``, ``Date`` and
    ``X_<pcode>_00003`` (value) / ``X_<pcode>_00003_cd`` (qualifiers).
    The service's no-data sentinel becomes None.

    Raises:
        KeyError: If the payload is not a daily-values response
    """
    rows: List[Dict[str, Any]] = []
    for series in payload["value"]["timeSeries"]:
        source = series["sourceInfo"]["siteCode"][0]
        variable = series["variable"]
        code = variable["variableCode"][0]["value"]
        no_data = variable.get("noDataValue")
        column = f"X_{code}_{constants.DAILY_MEAN_STAT}"

        for block in series.get("values", []):
            for point in block.get("value", []):
                value = point.get("value")
                if value is not None and no_data is not None and float(value) == float(no_data):
                    value = None
                rows.append({
                    "agency_cd": source.get("agencyCode"),
                    "site_no": source.get("value"),
                    "Date": str(point.get("dateTime", ""))[:10],
                    column: value,
                    f"{column}_cd": " ".join(point.get("qualifiers", [])),
                })
    return rows


def read_rdb(text: str) -> List[Dict[str, Any]]:
    """
    Parse an RDB (tab-delimited, '#' comments, field-format line) body.
    """
    lines = [line for line in text.splitlines() if line and not line.startswith("#")]
    if len(lines) < 2:
        return []
    # Second line holds field widths/types (e.g. '5s\t15s'), not data
    body = "\n".join([lines[0]] + lines[2:])
    frame = pd.read_csv(io.StringIO(body), sep="\t", dtype=str, keep_default_na=False, na_values=[""])
    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict(orient="records")


class NWISAPI(APIClient):
    """USGS NWIS web services (waterservices.usgs.gov/nwis) client."""

    def get_daily_values(
        self,
        site_ids: Iterable[str],
        parameter_code: str,
        start_date: DateLike,
        end_date: Optional[DateLike] = None
    ) -> List[Dict[str, Any]]:
        """
        Get daily mean values for one parameter code.

        Args:
            site_ids: USGS site numbers (e.g. '03207800')
            parameter_code: NWIS parameter code (e.g. '00095')
            start_date: First day
            end_date: Last day (default: latest available)

        Returns:
            Flattened daily-value records
        """
        params = {
            "format": "json",
            "sites": ",".join(site_ids),
            "parameterCd": parameter_code,
            "statCd": constants.DAILY_MEAN_STAT,
            "startDT": DateUtils.to_iso_date(start_date),
        }
        if end_date is not None:
            params["endDT"] = DateUtils.to_iso_date(end_date)

        rows = flatten_daily_values(self.get_json("/dv/", params=params))
        self.logger.info(f"Retrieved {len(rows)} daily values for parameter {parameter_code}")
        return rows

    def get_sites(self, site_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """
        Get expanded site descriptions (name, drainage area, coordinates).

        Args:
            site_ids: USGS site numbers

        Returns:
            Raw site-service records
        """
        params = {
            "format": "rdb",
            "sites": ",".join(site_ids),
            "siteOutput": "expanded",
            "siteStatus": "all",
        }
        rows = read_rdb(self.get_text("/site/", params=params))
        self.logger.info(f"Retrieved {len(rows)} site descriptions")
        return rows
