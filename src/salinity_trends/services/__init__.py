"""
Services for the salinity trends pipeline.

Services sit between the HTTP clients and the analytic core.
"""

from .data_source import WaterDataService, to_nwis_site_id, to_wqp_site_id

__all__ = [
    "WaterDataService",
    "to_nwis_site_id",
    "to_wqp_site_id",
]
