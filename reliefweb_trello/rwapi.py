"""Client for the ReliefWeb API."""

import time
from typing import Any

import requests
import structlog

from reliefweb_trello.errors import UpstreamUnavailable

logger = structlog.get_logger()

DEFAULT_URL = "https://api.reliefweb.int/v1"
DEFAULT_TIMEOUT = 60


class RWApiClient:
    """ReliefWeb API client.

    Queries are POST requests with a JSON payload describing the fields, filter,
    sort and facets to retrieve.
    """

    def __init__(
        self,
        appname: str,
        url: str = DEFAULT_URL,
        preset: str = "latest",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not appname:
            raise ValueError("ReliefWeb appname required")
        self.appname = appname
        self.url = url.rstrip("/")
        self.preset = preset
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Query a ReliefWeb resource.

        Raises:
            UpstreamUnavailable: on transport errors, non 2xx responses or
                responses that are not a JSON object.
        """
        params = {
            "appname": self.appname,
            "preset": self.preset,
            "slim": 1,
            # Bypass caches between runs.
            "timestamp": int(time.time() * 1000),
        }

        logger.debug("ReliefWeb request", endpoint=endpoint)
        try:
            response = self.session.post(self.url + endpoint, params=params, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"ReliefWeb API error for request on {endpoint}: {e}") from e

        if not response.ok:
            logger.debug("ReliefWeb error response", endpoint=endpoint, body=response.text[:500])
            raise UpstreamUnavailable(
                f"ReliefWeb API error for request on {endpoint}: {response.status_code} {response.reason}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid JSON in ReliefWeb response for {endpoint}") from e

        if not isinstance(data, dict):
            raise UpstreamUnavailable(f"Unexpected ReliefWeb response for {endpoint}")
        return data
