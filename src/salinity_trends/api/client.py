"""
Base HTTP client for the public water-data services.

Handles HTTP requests, session management, and error handling.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import requests  # type: ignore
from requests.adapters import HTTPAdapter  # type: ignore
from urllib3.util.retry import Retry  # type: ignore

QueryParams = Union[Dict[str, Any], List[Tuple[str, Any]]]


class APIClient:
    """Base client for a read-only water-data web service."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 120,
        max_retries: int = 0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize API client.

        Args:
            base_url: Base URL for the service
            timeout: Request timeout in seconds
            max_retries: Retry attempts on 429/5xx responses (0 disables retries)
            logger: Logger instance
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> requests.Response:
        """
        Make HTTP request to the service.

        Args:
            method: HTTP method
            endpoint: Endpoint path (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            requests.exceptions.RequestException: On request failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        self.logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            return response

        except requests.exceptions.RequestException as e:
            self.logger.error(f"API request failed: {method} {url} - {e}")
            raise

    def get_json(self, endpoint: str, params: Optional[QueryParams] = None) -> Any:
        """
        Make GET request and decode a JSON body.

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            Decoded JSON
        """
        response = self._make_request("GET", endpoint, params=params)
        return response.json()

    def get_text(self, endpoint: str, params: Optional[QueryParams] = None) -> str:
        """
        Make GET request and return the body as text (CSV, RDB).

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            Response body
        """
        response = self._make_request("GET", endpoint, params=params)
        return response.text

    def close(self) -> None:
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
