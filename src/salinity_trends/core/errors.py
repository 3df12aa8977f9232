"""
Error taxonomy for the salinity trends pipeline.

Record-level faults (missing fields, unparseable dates) are counted in stage
reports rather than raised. The exceptions below cover faults that stop a
parameter, a partition or the whole run.
"""

from typing import Dict, Iterable


class SalinityTrendsError(Exception):
    """Base class for pipeline errors."""


class UnitMismatchError(SalinityTrendsError):
    """More than one unit remains for a parameter after filtering."""

    def __init__(self, units_by_parameter: Dict[str, Iterable[str]]):
        self.units_by_parameter = {
            parameter: sorted(units) for parameter, units in units_by_parameter.items()
        }
        details = "; ".join(
            f"{parameter}: {', '.join(units)}"
            for parameter, units in sorted(self.units_by_parameter.items())
        )
        super().__init__(f"Mixed units after filtering ({details})")


class ModelFitError(SalinityTrendsError):
    """A model could not be fitted to one partition."""

    reason = "ModelFitError"


class InsufficientDataError(ModelFitError):
    """Too few points for the requested model."""

    reason = "InsufficientData"


class SingularFitError(ModelFitError):
    """Degenerate design matrix; the regression has no unique solution."""

    reason = "SingularFit"


class DuplicateOrderError(ModelFitError):
    """The order column repeats a value, so the series has no single ordering."""

    reason = "DuplicateOrder"


class SourceUnavailableError(SalinityTrendsError):
    """An upstream retrieval call failed."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"{source} unavailable: {detail}")
