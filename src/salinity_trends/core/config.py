"""
Configuration module for the salinity trends pipeline.

Loads configuration from a JSON file and environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import constants

# Table the models run on: long daily values, monthly or annual summaries
# with site metadata, or daily chemistry joined with NWIS daily-value streams
ANALYSIS_LEVELS = ("daily", "monthly", "annual", "joined")

MAX_JOINED_STREAMS = 2

# Service that describes the sites: NWIS site service or portal stations
SITE_SOURCES = ("nwis", "wqp")


class Config:
    """Configuration manager for a pipeline run."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration JSON file. If None, uses CONFIG_FILE env var
                        or defaults to 'config.json'
        """
        self.config_file = config_file or os.getenv("CONFIG_FILE", "config.json")
        self.config: Dict[str, Any] = {}
        self._load_config()
        self._override_from_env()
        self._validate_config()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build a configuration from an in-memory dictionary (no file, no env overrides)."""
        instance = cls.__new__(cls)
        instance.config_file = None
        instance.config = json.loads(json.dumps(data))
        instance._validate_config()
        return instance

    def _load_config(self) -> None:
        """Load configuration from JSON file."""
        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        with open(config_path, "r", encoding="utf-8") as f:
            self.config = json.load(f)

    def _override_from_env(self) -> None:
        """Override configuration with environment variables."""
        if os.getenv("WQP_BASE_URL"):
            self.config.setdefault("api", {})["wqp_base_url"] = os.getenv("WQP_BASE_URL")

        if os.getenv("NWIS_BASE_URL"):
            self.config.setdefault("api", {})["nwis_base_url"] = os.getenv("NWIS_BASE_URL")

        if os.getenv("START_DATE"):
            self.config.setdefault("period", {})["start_date"] = os.getenv("START_DATE")

        if os.getenv("END_DATE"):
            self.config.setdefault("period", {})["end_date"] = os.getenv("END_DATE")

        if os.getenv("OUTPUT_DIR"):
            self.config.setdefault("output", {})["directory"] = os.getenv("OUTPUT_DIR")

    def _validate_config(self) -> None:
        """Validate that required configuration keys are present and well formed."""
        required_config = {
            "sites": [],
            "parameters": [],
            "period": ["start_date"],
            "analysis": ["group_by", "model"],
        }

        missing_sections = [section for section in required_config if section not in self.config]
        if missing_sections:
            raise ValueError(
                f"Missing required configuration sections: {', '.join(missing_sections)}"
            )

        missing_keys = []
        for section, keys in required_config.items():
            for key in keys:
                if key not in self.config[section]:
                    missing_keys.append(f"{section}.{key}")

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}"
            )

        if not isinstance(self.config["sites"], list) or not self.config["sites"]:
            raise ValueError("'sites' must be a non-empty list of site identifiers")

        if not isinstance(self.config["parameters"], dict) or not self.config["parameters"]:
            raise ValueError("'parameters' must map canonical names to upstream name variants")

        months = self.included_months
        invalid = [m for m in months if m not in constants.ALL_MONTHS]
        if invalid:
            raise ValueError(f"Invalid months in aggregation.months: {invalid}")

        if self.unit_policy not in constants.UNIT_POLICIES:
            raise ValueError(
                f"cleaning.unit_policy must be one of {', '.join(constants.UNIT_POLICIES)}"
            )

        if not isinstance(self.model_spec, dict) or "type" not in self.model_spec:
            raise ValueError("analysis.model must be a dictionary with a 'type' key")

        if self.analysis_level not in ANALYSIS_LEVELS:
            raise ValueError(f"analysis.level must be one of {', '.join(ANALYSIS_LEVELS)}")

        codes = self.daily_value_codes
        unknown = [code for code in codes if code not in constants.NWIS_PARAMETER_CODES]
        if unknown:
            raise ValueError(f"Unknown NWIS codes in daily_values.parameter_codes: {unknown}")

        # The chemistry table plus at most two streams
        if self.analysis_level == "joined" and not 1 <= len(codes) <= MAX_JOINED_STREAMS:
            raise ValueError(
                f"analysis.level 'joined' needs 1 to {MAX_JOINED_STREAMS} "
                f"daily_values.parameter_codes, got {len(codes)}"
            )

        if self.site_source not in SITE_SOURCES:
            raise ValueError(f"site_metadata.source must be one of {', '.join(SITE_SOURCES)}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key (supports dot notation).

        Args:
            key: Configuration key (e.g., 'api.timeout')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    @property
    def wqp_base_url(self) -> str:
        """Get Water Quality Portal base URL."""
        return self.get("api.wqp_base_url", "https://www.waterqualitydata.us/data")

    @property
    def nwis_base_url(self) -> str:
        """Get NWIS web services base URL."""
        return self.get("api.nwis_base_url", "https://waterservices.usgs.gov/nwis")

    @property
    def api_timeout(self) -> int:
        """Get API timeout in seconds."""
        return self.get("api.timeout", 120)

    @property
    def api_max_retries(self) -> int:
        """Get maximum API retry attempts (0 means a failed call aborts the run)."""
        return self.get("api.max_retries", 0)

    @property
    def sites(self) -> List[str]:
        """Get monitoring site identifiers."""
        return [str(site) for site in self.config["sites"]]

    @property
    def parameters(self) -> Dict[str, List[str]]:
        """Get canonical parameter name -> upstream name variants."""
        return {
            canonical: list(variants) if isinstance(variants, list) else [variants]
            for canonical, variants in self.config["parameters"].items()
        }

    @property
    def characteristic_names(self) -> List[str]:
        """Get every upstream name to request (canonical names and their variants)."""
        names: List[str] = []
        for canonical, variants in self.parameters.items():
            for name in [canonical] + variants:
                if name not in names:
                    names.append(name)
        return names

    @property
    def start_date(self) -> str:
        """Get start of the retrieval window (YYYY-MM-DD)."""
        return self.get("period.start_date")

    @property
    def end_date(self) -> Optional[str]:
        """Get end of the retrieval window (YYYY-MM-DD); None means today."""
        return self.get("period.end_date")

    @property
    def timezone(self) -> str:
        """Get timezone used to resolve 'today' when no end date is set."""
        return self.get("period.timezone", "UTC")

    @property
    def medium(self) -> str:
        """Get sample medium requested from the portal."""
        return self.get("cleaning.medium", constants.WATER_MEDIUM)

    @property
    def daily_value_codes(self) -> List[str]:
        """Get NWIS parameter codes retrieved as daily values."""
        return [str(code) for code in self.get("daily_values.parameter_codes", [])]

    @property
    def included_months(self) -> List[int]:
        """Get months included in seasonal aggregation."""
        return [int(m) for m in self.get("aggregation.months", list(constants.ALL_MONTHS))]

    @property
    def unit_policy(self) -> str:
        """Get unit mismatch policy."""
        return self.get("cleaning.unit_policy", constants.UNIT_POLICY_DROP)

    @property
    def restrict_parameters(self) -> bool:
        """Drop observations whose parameter is not in the configured mapping."""
        return self.get("cleaning.restrict_parameters", True)

    @property
    def group_by(self) -> List[str]:
        """Get grouping-key columns for the partitioned model runner."""
        group_by = self.get("analysis.group_by")
        return [group_by] if isinstance(group_by, str) else list(group_by)

    @property
    def model_spec(self) -> Dict[str, Any]:
        """Get model selection."""
        return self.get("analysis.model", {})

    @property
    def site_source(self) -> str:
        """Get the service site metadata is read from: 'nwis' or 'wqp'."""
        return self.get("site_metadata.source", "nwis")

    @property
    def analysis_level(self) -> str:
        """Get the table the models run on: 'daily', 'monthly', 'annual' or 'joined'."""
        return self.get("analysis.level", "annual")

    @property
    def output_dir(self) -> str:
        """Get output directory for result tables."""
        return self.get("output.directory", "output")

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(file={self.config_file}, sites={len(self.config.get('sites', []))})"
