"""
Water Quality Portal API operations.

Retrieves discrete sample results and monitoring-location descriptions as
raw CSV records.
"""

import io
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .client import APIClient
from ..core.date_utils import DateLike, DateUtils


def _read_csv_records(text: str) -> List[Dict[str, Any]]:
    """Parse a CSV body into raw records, keeping every field as text."""
    if not text.strip():
        return []
    frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, na_values=[""])
    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict(orient="records")


class WaterQualityPortalAPI(APIClient):
    """Water Quality Portal (waterqualitydata.us) client."""

    def get_results(
        self,
        site_ids: Iterable[str],
        start_date: DateLike,
        end_date: Optional[DateLike] = None,
        medium: Optional[str] = "Water",
        characteristic_names: Optional[Iterable[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        Get sample results for a set of sites.

        Args:
            site_ids: Monitoring location identifiers (e.g. 'USGS-03207800')
            start_date: First sample date
            end_date: Last sample date (default: open-ended)
            medium: Sample media filter (None for all media)
            characteristic_names: Characteristic names to request

        Returns:
            Raw result records in the portal's broad column schema
        """
        params = [
            ("siteid", ";".join(site_ids)),
            ("startDateLo", DateUtils.to_wqp_date(start_date)),
            ("mimeType", "csv"),
            ("zip", "no"),
        ]
        if end_date is not None:
            params.append(("startDateHi", DateUtils.to_wqp_date(end_date)))
        if medium:
            params.append(("sampleMedia", medium))
        if characteristic_names:
            params.append(("characteristicName", ";".join(characteristic_names)))

        records = _read_csv_records(self.get_text("/Result/search", params=params))
        self.logger.info(f"Retrieved {len(records)} result records from the Water Quality Portal")
        return records

    def get_stations(self, site_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """
        Get monitoring-location descriptions.

        Args:
            site_ids: Monitoring location identifiers

        Returns:
            Raw station records
        """
        params = [
            ("siteid", ";".join(site_ids)),
            ("mimeType", "csv"),
            ("zip", "no"),
        ]
        records = _read_csv_records(self.get_text("/Station/search", params=params))
        self.logger.info(f"Retrieved {len(records)} station records")
        return records
