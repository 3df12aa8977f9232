"""
Statistical models for the salinity trends pipeline.

Provides the trend test, the OLS regression and the partitioned runner that
applies either to every partition of a table.
"""

from typing import Any, Dict

from .trend import MannKendallTrend, MannKendallResult, mann_kendall, sens_slope
from .regression import OLSRegression
from .runner import PartitionedModelRunner, ModelFunction


def build_model(spec: Dict[str, Any]) -> ModelFunction:
    """
    Build a model function from a configuration entry.

    Examples:
        {"type": "trend", "value": "mean", "order": "year", "time": "order"}
        {"type": "ols", "response": "Calcium", "predictors": ["Specific conductance", "Discharge"],
         "interaction": true}

    Raises:
        ValueError: On an unknown model type
    """
    options = dict(spec)
    model_type = options.pop("type", None)

    if model_type == "trend":
        return MannKendallTrend(**options)
    if model_type == "ols":
        return OLSRegression(**options)
    raise ValueError(f"Unknown model type: {model_type!r} (expected 'trend' or 'ols')")


__all__ = [
    "MannKendallTrend",
    "MannKendallResult",
    "mann_kendall",
    "sens_slope",
    "OLSRegression",
    "PartitionedModelRunner",
    "ModelFunction",
    "build_model",
]
