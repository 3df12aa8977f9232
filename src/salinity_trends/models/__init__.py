"""
Data models for the salinity trends pipeline.

Contains record types for observations and sites, and result types for
stage reports and partitioned model runs.
"""

from .observation import Medium, Observation
from .site import SiteMetadata
from .results import StageReport, Fitted, Failed, PartitionOutcome, RunResult

__all__ = [
    "Medium",
    "Observation",
    "SiteMetadata",
    "StageReport",
    "Fitted",
    "Failed",
    "PartitionOutcome",
    "RunResult",
]
