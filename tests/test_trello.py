"""Tests for the Trello API client."""

from unittest.mock import MagicMock, Mock

import pytest
import requests

from reliefweb_trello.errors import TrelloAPIError
from reliefweb_trello.trello import TrelloClient


@pytest.fixture
def mock_response() -> Mock:
    """Create a successful mock response."""
    response = MagicMock(spec=requests.Response)
    response.ok = True
    response.status_code = 200
    response.reason = "OK"
    response.text = "{}"
    response.json.return_value = {"id": "b1"}
    return response


@pytest.fixture
def mock_session(mock_response: Mock) -> Mock:
    """Create a mock requests session."""
    session = MagicMock(spec=requests.Session)
    session.request.return_value = mock_response
    return session


@pytest.fixture
def client(mock_session: Mock) -> TrelloClient:
    """Create a Trello client with a mocked session."""
    return TrelloClient(key="test-key", token="test-token", session=mock_session)


def test_requires_credentials() -> None:
    """Test that the key and token are required."""
    with pytest.raises(ValueError, match="key and token"):
        TrelloClient(key="", token="test-token")


def test_get_sends_credentials(client: TrelloClient, mock_session: Mock) -> None:
    """Test that reads send the query parameters and credentials."""
    assert client.get("/boards/b1", {"lists": "open"}) == {"id": "b1"}

    call_args = mock_session.request.call_args
    assert call_args[0] == ("GET", "https://api.trello.com/1/boards/b1")
    assert call_args[1]["params"] == {"lists": "open", "key": "test-key", "token": "test-token"}
    assert call_args[1]["data"] is None
    assert call_args[1]["timeout"] == 30


def test_put_form_encodes_booleans(client: TrelloClient, mock_session: Mock) -> None:
    """Test that booleans are sent as lowercase strings."""
    client.put("/cards/c1", {"closed": False, "pos": 12})

    call_args = mock_session.request.call_args
    assert call_args[0][0] == "PUT"
    assert call_args[1]["data"] == {"closed": "false", "pos": 12}


def test_error_response(client: TrelloClient, mock_response: Mock) -> None:
    """Test that error responses raise a TrelloAPIError with the status."""
    mock_response.ok = False
    mock_response.status_code = 401
    mock_response.reason = "Unauthorized"
    mock_response.text = "invalid key"

    with pytest.raises(TrelloAPIError) as excinfo:
        client.delete("/cards/c1/idLabels/lb1")

    assert excinfo.value.status_code == 401
    assert excinfo.value.response_text == "invalid key"
    assert "DELETE" in str(excinfo.value)


def test_transport_error(client: TrelloClient, mock_session: Mock) -> None:
    """Test that transport errors raise a TrelloAPIError."""
    mock_session.request.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(TrelloAPIError, match="connection refused"):
        client.post("/cards", {"name": "Card"})


def test_invalid_json(client: TrelloClient, mock_response: Mock) -> None:
    """Test that invalid JSON raises a TrelloAPIError."""
    mock_response.json.side_effect = ValueError("Expecting value")

    with pytest.raises(TrelloAPIError, match="Invalid JSON"):
        client.get("/boards/b1")
