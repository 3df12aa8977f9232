"""
Configuration tests.

Tests loading, validation, defaults and environment overrides.
"""

import json
from pathlib import Path

import pytest  # type: ignore

from src.salinity_trends.core import Config


def base_config():
    return {
        "sites": ["01646500", "01589000"],
        "parameters": {
            "Calcium": ["Calcium, dissolved"],
            "Chloride": "Chloride, dissolved",
        },
        "period": {"start_date": "2000-01-01", "end_date": "2020-12-31"},
        "analysis": {
            "group_by": ["parameter", "site_id"],
            "model": {"type": "trend", "value": "mean", "order": "year"},
        },
    }


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(base_config()), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CONFIG_FILE", "WQP_BASE_URL", "NWIS_BASE_URL", "START_DATE", "END_DATE", "OUTPUT_DIR"):
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    """Test configuration loading."""

    def test_load_from_file(self, config_file):
        config = Config(str(config_file))

        assert config.sites == ["01646500", "01589000"]
        assert config.start_date == "2000-01-01"
        assert config.end_date == "2020-12-31"
        assert config.group_by == ["parameter", "site_id"]
        assert config.model_spec["type"] == "trend"

    def test_defaults(self, config_file):
        config = Config(str(config_file))

        assert config.wqp_base_url == "https://www.waterqualitydata.us/data"
        assert config.nwis_base_url == "https://waterservices.usgs.gov/nwis"
        assert config.api_timeout == 120
        assert config.api_max_retries == 0
        assert config.timezone == "UTC"
        assert config.medium == "Water"
        assert config.unit_policy == "drop"
        assert config.restrict_parameters is True
        assert config.included_months == list(range(1, 13))
        assert config.daily_value_codes == []
        assert config.analysis_level == "annual"
        assert config.site_source == "nwis"
        assert config.output_dir == "output"

    def test_parameter_variants(self, config_file):
        config = Config(str(config_file))

        assert config.parameters == {
            "Calcium": ["Calcium, dissolved"],
            "Chloride": ["Chloride, dissolved"],
        }
        assert config.characteristic_names == [
            "Calcium", "Calcium, dissolved", "Chloride", "Chloride, dissolved"
        ]

    def test_config_file_from_env(self, config_file, monkeypatch):
        monkeypatch.setenv("CONFIG_FILE", str(config_file))

        config = Config()

        assert config.config_file == str(config_file)

    def test_environment_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("START_DATE", "2010-01-01")
        monkeypatch.setenv("OUTPUT_DIR", "/tmp/results")
        monkeypatch.setenv("WQP_BASE_URL", "http://localhost:8080/data")

        config = Config(str(config_file))

        assert config.start_date == "2010-01-01"
        assert config.output_dir == "/tmp/results"
        assert config.wqp_base_url == "http://localhost:8080/data"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "missing.json"))

    def test_dot_notation_get(self, config_file):
        config = Config(str(config_file))

        assert config.get("period.start_date") == "2000-01-01"
        assert config.get("period.missing", "fallback") == "fallback"
        assert config.get("sites.first", "fallback") == "fallback"


class TestConfigValidation:
    """Test configuration validation."""

    def test_from_dict(self):
        config = Config.from_dict(base_config())

        assert config.config_file is None
        assert config.sites == ["01646500", "01589000"]

    def test_from_dict_copies_input(self):
        data = base_config()
        config = Config.from_dict(data)

        data["sites"].append("99999999")

        assert len(config.sites) == 2

    def test_missing_section(self):
        data = base_config()
        del data["analysis"]

        with pytest.raises(ValueError, match="analysis"):
            Config.from_dict(data)

    def test_missing_key(self):
        data = base_config()
        del data["period"]["start_date"]

        with pytest.raises(ValueError, match="period.start_date"):
            Config.from_dict(data)

    def test_empty_sites(self):
        data = base_config()
        data["sites"] = []

        with pytest.raises(ValueError, match="sites"):
            Config.from_dict(data)

    def test_parameters_must_be_a_mapping(self):
        data = base_config()
        data["parameters"] = ["Calcium"]

        with pytest.raises(ValueError, match="parameters"):
            Config.from_dict(data)

    def test_invalid_months(self):
        data = base_config()
        data["aggregation"] = {"months": [7, 13]}

        with pytest.raises(ValueError, match="months"):
            Config.from_dict(data)

    def test_invalid_unit_policy(self):
        data = base_config()
        data["cleaning"] = {"unit_policy": "convert"}

        with pytest.raises(ValueError, match="unit_policy"):
            Config.from_dict(data)

    def test_model_needs_type(self):
        data = base_config()
        data["analysis"]["model"] = {"value": "mean"}

        with pytest.raises(ValueError, match="type"):
            Config.from_dict(data)

    def test_invalid_level(self):
        data = base_config()
        data["analysis"]["level"] = "weekly"

        with pytest.raises(ValueError, match="level"):
            Config.from_dict(data)

    def test_group_by_string(self):
        data = base_config()
        data["analysis"]["group_by"] = "site_id"

        assert Config.from_dict(data).group_by == ["site_id"]

    def test_monthly_level(self):
        data = base_config()
        data["analysis"]["level"] = "monthly"

        assert Config.from_dict(data).analysis_level == "monthly"

    def test_unknown_daily_value_code(self):
        data = base_config()
        data["daily_values"] = {"parameter_codes": ["00095", "99999"]}

        with pytest.raises(ValueError, match="99999"):
            Config.from_dict(data)

    @pytest.mark.parametrize("codes", [[], ["00095", "00060", "00010"]])
    def test_joined_stream_count(self, codes):
        data = base_config()
        data["daily_values"] = {"parameter_codes": codes}
        data["analysis"]["level"] = "joined"

        with pytest.raises(ValueError, match="daily_values.parameter_codes"):
            Config.from_dict(data)

    def test_three_streams_outside_joined_level(self):
        data = base_config()
        data["daily_values"] = {"parameter_codes": ["00095", "00060", "00010"]}

        assert len(Config.from_dict(data).daily_value_codes) == 3

    def test_site_source(self):
        data = base_config()
        data["site_metadata"] = {"source": "wqp"}

        assert Config.from_dict(data).site_source == "wqp"

        data["site_metadata"] = {"source": "storet"}
        with pytest.raises(ValueError, match="site_metadata.source"):
            Config.from_dict(data)

    def test_example_configuration_is_valid(self):
        example = Path(__file__).parent.parent / "config.example.json"

        config = Config(str(example))

        assert config.daily_value_codes == ["00095", "00060"]
        assert config.included_months == [7, 8, 9, 10]
