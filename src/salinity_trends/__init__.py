"""
Salinity Trends

Exploratory analysis of public water-quality records: harmonizes Water
Quality Portal samples and NWIS daily values, aggregates them over time
windows and fits trend and regression models per site and parameter.
"""

__version__ = "0.1.0"
__description__ = "Salinity and ion-chemistry trend analysis for water-quality monitoring sites"


def __getattr__(name):
    """Lazy import to avoid importing dependencies when not needed."""
    if name == "SalinityTrendsApp":
        from .main import SalinityTrendsApp
        return SalinityTrendsApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "SalinityTrendsApp",
]
