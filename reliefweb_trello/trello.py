"""Thin client for the Trello REST API using requests."""

from typing import Any

import requests
import structlog

from reliefweb_trello.errors import TrelloAPIError

logger = structlog.get_logger()

DEFAULT_URL = "https://api.trello.com/1"
DEFAULT_TIMEOUT = 30


def _form_value(value: Any) -> Any:
    """Convert booleans to the lowercase strings Trello expects in form data."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class TrelloClient:
    """Trello API client.

    Reads are GET requests with field selection query parameters, mutations are
    POST/PUT/DELETE requests with form-encoded bodies. The key and token are
    sent as query parameters on every request.
    """

    def __init__(
        self,
        key: str,
        token: str,
        url: str = DEFAULT_URL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not key or not token:
            raise ValueError("Trello key and token required")
        self.key = key
        self.token = token
        self.url = url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Perform a request and return the decoded JSON response."""
        query = dict(params or {})
        query["key"] = self.key
        query["token"] = self.token

        form = None
        if data is not None:
            form = {name: _form_value(value) for name, value in data.items()}

        logger.debug("Trello request", method=method, endpoint=endpoint)
        try:
            response = self.session.request(
                method,
                self.url + endpoint,
                params=query,
                data=form,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TrelloAPIError(f"Trello API error for {method} request on {endpoint}: {e}") from e

        if not response.ok:
            logger.debug("Trello error response", endpoint=endpoint, body=response.text[:500])
            raise TrelloAPIError(
                f"Trello API error for {method} request on {endpoint}: {response.status_code} {response.reason}",
                status_code=response.status_code,
                response_text=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TrelloAPIError(
                f"Invalid JSON in Trello response for {method} request on {endpoint}",
                status_code=response.status_code,
                response_text=response.text,
            ) from e

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, data: dict[str, Any] | None = None) -> Any:
        return self.request("POST", endpoint, data=data or {})

    def put(self, endpoint: str, data: dict[str, Any] | None = None) -> Any:
        return self.request("PUT", endpoint, data=data or {})

    def delete(self, endpoint: str) -> Any:
        return self.request("DELETE", endpoint)
