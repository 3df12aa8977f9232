"""
Upstream data-source service.

Wraps the Water Quality Portal and NWIS clients behind synchronous,
return-or-fail retrieval calls. Any failure is reported as
SourceUnavailableError and aborts the run; nothing is retried here.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

import requests  # type: ignore

from ..api import NWISAPI, WaterQualityPortalAPI
from ..core import constants
from ..core.date_utils import DateLike
from ..core.errors import SourceUnavailableError

if TYPE_CHECKING:
    from ..core.config import Config


def to_wqp_site_id(site_id: str) -> str:
    """Qualify a bare USGS site number for the Water Quality Portal."""
    if "-" in site_id:
        return site_id
    return f"{constants.USGS_SITE_PREFIX}{site_id}"


def to_nwis_site_id(site_id: str) -> str:
    """Strip the agency prefix from a portal site identifier."""
    if site_id.startswith(constants.USGS_SITE_PREFIX):
        return site_id[len(constants.USGS_SITE_PREFIX):]
    return site_id


class WaterDataService:
    """Retrieve raw records for a set of monitoring sites."""

    def __init__(
        self,
        wqp_client: WaterQualityPortalAPI,
        nwis_client: NWISAPI,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize data-source service.

        Args:
            wqp_client: Water Quality Portal client
            nwis_client: NWIS client
            logger: Logger instance
        """
        self.wqp_client = wqp_client
        self.nwis_client = nwis_client
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: "Config", logger: Optional[logging.Logger] = None) -> "WaterDataService":
        """Build the service and its clients from configuration."""
        wqp = WaterQualityPortalAPI(
            base_url=config.wqp_base_url,
            timeout=config.api_timeout,
            max_retries=config.api_max_retries,
            logger=logger
        )
        nwis = NWISAPI(
            base_url=config.nwis_base_url,
            timeout=config.api_timeout,
            max_retries=config.api_max_retries,
            logger=logger
        )
        return cls(wqp, nwis, logger)

    def _call(self, source: str, fetch: Callable[[], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        try:
            return fetch()
        except requests.exceptions.RequestException as e:
            raise SourceUnavailableError(source, str(e)) from e
        except (KeyError, TypeError, ValueError) as e:
            raise SourceUnavailableError(source, f"malformed response: {e}") from e

    def fetch_observations(
        self,
        site_ids: Iterable[str],
        start_date: DateLike,
        end_date: Optional[DateLike],
        medium: Optional[str],
        parameter_names: Iterable[str]
    ) -> List[Dict[str, Any]]:
        """
        Retrieve discrete sample results (multi-site broad records).

        Raises:
            SourceUnavailableError: If the portal call fails
        """
        sites = [to_wqp_site_id(site) for site in site_ids]
        names = list(parameter_names)
        self.logger.info(f"Requesting {len(names)} characteristics for {len(sites)} sites")
        return self._call(
            "Water Quality Portal results",
            lambda: self.wqp_client.get_results(sites, start_date, end_date, medium, names)
        )

    def fetch_daily_values(
        self,
        site_ids: Iterable[str],
        parameter_code: str,
        start_date: DateLike,
        end_date: Optional[DateLike]
    ) -> List[Dict[str, Any]]:
        """
        Retrieve daily mean values for one parameter code.

        Raises:
            SourceUnavailableError: If the NWIS call fails
        """
        sites = [to_nwis_site_id(site) for site in site_ids]
        return self._call(
            f"NWIS daily values ({parameter_code})",
            lambda: self.nwis_client.get_daily_values(sites, parameter_code, start_date, end_date)
        )

    def fetch_sites(self, site_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """
        Retrieve site descriptions from the NWIS site service.

        Raises:
            SourceUnavailableError: If the NWIS call fails
        """
        sites = [to_nwis_site_id(site) for site in site_ids]
        return self._call("NWIS site service", lambda: self.nwis_client.get_sites(sites))

    def fetch_stations(self, site_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """
        Retrieve monitoring-location descriptions from the Water Quality Portal.

        Raises:
            SourceUnavailableError: If the portal call fails
        """
        sites = [to_wqp_site_id(site) for site in site_ids]
        return self._call(
            "Water Quality Portal stations", lambda: self.wqp_client.get_stations(sites)
        )

    def close(self) -> None:
        """Close both client sessions."""
        self.wqp_client.close()
        self.nwis_client.close()
