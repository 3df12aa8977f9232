"""
Observation data models.

Row-level view of the canonical observation table.
"""

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Union

import pandas as pd

from ..core import constants


class Medium(str, Enum):
    """Sample medium."""

    WATER = constants.WATER_MEDIUM
    OTHER = constants.OTHER_MEDIUM

    @classmethod
    def from_label(cls, label: Union["Medium", str, None]) -> "Medium":
        """Classify a raw medium label; anything but 'water' is Other."""
        if isinstance(label, Medium):
            return label
        if label is not None and str(label).strip().lower() == "water":
            return cls.WATER
        return cls.OTHER


@dataclass(frozen=True)
class Observation:
    """One measured value of a constituent at a site and date."""

    site_id: str
    date: Union[str, date]
    parameter: str
    value: Optional[float]
    unit: Optional[str] = None
    medium: Medium = Medium.WATER
    organization: Optional[str] = None
    method: Optional[str] = None


def to_frame(observations: Iterable[Observation]) -> pd.DataFrame:
    """Build a canonical observation table from Observation records."""
    rows = []
    for observation in observations:
        row = asdict(observation)
        row["medium"] = Medium(observation.medium).value
        rows.append(row)
    return pd.DataFrame(rows, columns=constants.OBSERVATION_COLUMNS)
