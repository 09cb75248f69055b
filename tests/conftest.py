"""Shared fixtures."""

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock, Mock

import pytest
import structlog

from reliefweb_trello.cli import configure_logging
from reliefweb_trello.rwapi import RWApiClient
from tests.fakes import FakeTrello


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Only let warnings and errors through, as with `rwt --log-level warning`."""
    configure_logging("warning")
    yield
    structlog.reset_defaults()


@pytest.fixture
def now() -> datetime:
    """Fixed time of the synchronization runs."""
    return datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def trello() -> FakeTrello:
    """Create a fake Trello service with an empty board."""
    fake = FakeTrello()
    fake.add_board("board1", name="Test board")
    return fake


@pytest.fixture
def rwapi_responses() -> dict[str, Any]:
    """ReliefWeb responses keyed by endpoint, filled in by the tests."""
    return {}


@pytest.fixture
def rwapi(rwapi_responses: dict[str, Any]) -> Mock:
    """Create a mock ReliefWeb client answering from rwapi_responses."""
    client = MagicMock(spec=RWApiClient)
    client.fetch.side_effect = lambda endpoint, payload: rwapi_responses[endpoint]
    return client
