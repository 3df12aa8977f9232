"""
Site metadata models.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Optional

import pandas as pd

from ..core import constants


@dataclass(frozen=True)
class SiteMetadata:
    """Static description of one monitoring site."""

    site_id: str
    name: Optional[str] = None
    drainage_area: Optional[float] = None
    area_unit: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


def to_frame(sites: Iterable[SiteMetadata]) -> pd.DataFrame:
    """Build a site metadata table from SiteMetadata records."""
    return pd.DataFrame([asdict(site) for site in sites], columns=constants.SITE_COLUMNS)
