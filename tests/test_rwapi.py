"""Tests for the ReliefWeb API client."""

from unittest.mock import MagicMock, Mock

import pytest
import requests

from reliefweb_trello.errors import UpstreamUnavailable
from reliefweb_trello.rwapi import RWApiClient


@pytest.fixture
def mock_response() -> Mock:
    """Create a successful mock response."""
    response = MagicMock(spec=requests.Response)
    response.ok = True
    response.status_code = 200
    response.reason = "OK"
    response.text = ""
    response.json.return_value = {"totalCount": 1, "data": [{"id": "1", "fields": {"id": 1}}]}
    return response


@pytest.fixture
def mock_session(mock_response: Mock) -> Mock:
    """Create a mock requests session."""
    session = MagicMock(spec=requests.Session)
    session.post.return_value = mock_response
    return session


@pytest.fixture
def client(mock_session: Mock) -> RWApiClient:
    """Create a ReliefWeb client with a mocked session."""
    return RWApiClient(appname="test-app", session=mock_session)


def test_fetch(client: RWApiClient, mock_session: Mock) -> None:
    """Test that queries are posted as JSON with the app name."""
    payload = {"fields": {"include": ["id"]}, "limit": 1000}

    result = client.fetch("/countries", payload)

    assert result["totalCount"] == 1
    call_args = mock_session.post.call_args
    assert call_args[0][0] == "https://api.reliefweb.int/v1/countries"
    assert call_args[1]["json"] == payload
    params = call_args[1]["params"]
    assert params["appname"] == "test-app"
    assert params["preset"] == "latest"
    assert params["slim"] == 1
    assert isinstance(params["timestamp"], int)


def test_requires_appname() -> None:
    """Test that the app name is required."""
    with pytest.raises(ValueError):
        RWApiClient(appname="")


def test_error_response(client: RWApiClient, mock_response: Mock) -> None:
    """Test that error responses raise UpstreamUnavailable."""
    mock_response.ok = False
    mock_response.status_code = 503
    mock_response.reason = "Service Unavailable"

    with pytest.raises(UpstreamUnavailable, match="503"):
        client.fetch("/disasters", {})


def test_transport_error(client: RWApiClient, mock_session: Mock) -> None:
    """Test that transport errors raise UpstreamUnavailable."""
    mock_session.post.side_effect = requests.Timeout("timed out")

    with pytest.raises(UpstreamUnavailable, match="timed out"):
        client.fetch("/topics", {})


def test_unexpected_body(client: RWApiClient, mock_response: Mock) -> None:
    """Test that responses other than a JSON object are rejected."""
    mock_response.json.return_value = ["not", "an", "object"]

    with pytest.raises(UpstreamUnavailable, match="Unexpected"):
        client.fetch("/reports", {})
