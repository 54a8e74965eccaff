"""
Management console API client wrapper.

Provides a high-level interface to the agent package endpoints of the
SentinelOne management console REST API.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx

from .config import HelperConfig, load_config
from .error_handling import (
    CatalogAuthenticationError,
    CatalogError,
    is_authentication_failure,
    map_http_error,
)
from .packages.models import CatalogQuery, PackageRecord

logger = logging.getLogger(__name__)

PACKAGES_ENDPOINT = "/web/api/v2.1/update/agent/packages"


class ManagementConsoleClient:
    """Client for the management console's agent package API."""

    def __init__(
        self,
        config: Optional[HelperConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the console client.

        Args:
            config: Connection settings. If not provided, will be loaded
                from the environment.
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or load_config()
        self._transport = transport
        self._http: Optional[httpx.Client] = None

    def _create_session(self) -> httpx.Client:
        """Create an HTTP session carrying the bearer credential."""
        return httpx.Client(
            base_url=self.config.base_url,
            headers={
                "Authorization": self.config.authorization_header,
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(self.config.catalog_timeout),
            verify=self.config.verify_tls,
            follow_redirects=True,
            transport=self._transport,
        )

    def connect(self) -> None:
        """Open the HTTP session."""
        if self._http is None:
            self._http = self._create_session()

    def close(self) -> None:
        """Close the HTTP session."""
        if self._http is not None:
            self._http.close()
            self._http = None

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self.connect()
        return self._http

    def list_agent_packages(self, query: CatalogQuery) -> list[PackageRecord]:
        """Issue one catalog listing request and return its records.

        The request is never retried. Records keep the order the console
        returned them in.

        Args:
            query: Platform, file type, sort and limit filters

        Returns:
            Package records in server order

        Raises:
            CatalogAuthenticationError: If the console rejects the API key
            CatalogError: If the request fails or the response is malformed
        """
        params = query.to_params()
        logger.info(
            "Querying %s%s for %s %s packages",
            self.config.base_url, PACKAGES_ENDPOINT,
            query.platform_type.value, query.file_extension.value,
        )

        try:
            response = self.http.get(PACKAGES_ENDPOINT, params=params)
        except httpx.HTTPError as e:
            info = map_http_error(e, "catalog query")
            raise CatalogError(info["error"], hint=info["hint"]) from e

        payload: Any = None
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            payload = None

        if is_authentication_failure(response.status_code, payload):
            detail = ""
            if isinstance(payload, dict) and payload.get("errors"):
                detail = f": {payload['errors']}"
            raise CatalogAuthenticationError(
                "Could not authenticate using the management console URL and "
                f"API key{detail}"
            )

        if response.is_error:
            info = map_http_error(
                httpx.HTTPStatusError(
                    f"HTTP {response.status_code}",
                    request=response.request,
                    response=response,
                ),
                "catalog query",
            )
            raise CatalogError(info["error"], hint=info["hint"])

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise CatalogError(
                "Catalog response is not a JSON object with a 'data' list",
                hint="Check that the console URL points at a management console.",
            )

        records = []
        for entry in payload["data"]:
            try:
                records.append(PackageRecord.from_api(entry))
            except ValueError as e:
                logger.warning("Skipping catalog entry: %s", e)

        logger.info("Catalog returned %d packages", len(records))
        return records

    @contextmanager
    def stream(self, url: str, timeout: Optional[float] = None) -> Iterator[httpx.Response]:
        """Open a streamed, authenticated GET for a download link.

        Args:
            url: Absolute download URL
            timeout: Timeout in seconds (defaults to the download timeout)

        Yields:
            The response with an unread body. HTTP error statuses raise
            httpx.HTTPStatusError.
        """
        with self.http.stream(
            "GET",
            url,
            timeout=httpx.Timeout(timeout or self.config.download_timeout),
        ) as response:
            response.raise_for_status()
            yield response

    def __enter__(self) -> "ManagementConsoleClient":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
