"""
Core utilities for the salinity trends pipeline.

Provides configuration, logging, error types and date handling.
"""

from .config import Config
from .logger import setup_logger, LoggerContext
from . import constants
from . import errors
from .date_utils import DateUtils

__all__ = [
    "Config",
    "setup_logger",
    "LoggerContext",
    "constants",
    "errors",
    "DateUtils",
]
