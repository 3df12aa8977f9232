"""
Pytest configuration and shared fixtures for all tests.
"""

import sys
from pathlib import Path

import pandas as pd
import pytest

# Add the project root to sys.path so we can import from src
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture
def make_observations():
    """Build a canonical observation table from (site, date, parameter, value) tuples."""
    def _make(rows, unit="mg/l", medium="Water"):
        return pd.DataFrame(
            [
                {
                    "site_id": site,
                    "date": pd.Timestamp(day),
                    "parameter": parameter,
                    "value": value,
                    "unit": unit,
                    "medium": medium,
                }
                for site, day, parameter, value in rows
            ]
        )
    return _make


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring network access"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
