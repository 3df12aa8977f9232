"""
API layer for the public water-data services.

Provides low-level clients for the Water Quality Portal and USGS NWIS.
"""

from .client import APIClient
from .wqp import WaterQualityPortalAPI
from .nwis import NWISAPI, flatten_daily_values, read_rdb

__all__ = [
    "APIClient",
    "WaterQualityPortalAPI",
    "NWISAPI",
    "flatten_daily_values",
    "read_rdb",
]
