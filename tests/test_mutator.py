"""Tests for card mutations."""

from unittest.mock import MagicMock, Mock

import pytest

from reliefweb_trello.errors import (
    CardMutationFailed,
    ChecklistItemMutationFailed,
    ChecklistMutationFailed,
    LabelMutationFailed,
    TrelloAPIError,
)
from reliefweb_trello.models import Card, Checklist, Label
from reliefweb_trello.mutator import CardMutator
from reliefweb_trello.trello import TrelloClient


@pytest.fixture
def mock_client() -> Mock:
    """Create a mock Trello client."""
    return MagicMock(spec=TrelloClient)


@pytest.fixture
def mutator(mock_client: Mock) -> CardMutator:
    """Create a mutator using the mock client."""
    return CardMutator(mock_client)


@pytest.fixture
def card() -> Card:
    """Create a card."""
    return Card(id="c1", name="Kenya: Floods", list_id="l1")


def test_create_card(mutator: CardMutator, mock_client: Mock) -> None:
    """Test creating a card with its labels in one call."""
    mock_client.post.return_value = {"id": "c9", "name": "Kenya: Floods", "idList": "l1"}

    card = mutator.create_card("l1", "Kenya: Floods", "desc", 9948000, ["lb1", "lb2"])

    assert card.id == "c9"
    mock_client.post.assert_called_once_with(
        "/cards",
        {
            "idList": "l1",
            "urlSource": "",
            "name": "Kenya: Floods",
            "desc": "desc",
            "pos": 9948000,
            "idLabels": "lb1,lb2",
        },
    )


def test_create_card_failure(mutator: CardMutator, mock_client: Mock) -> None:
    """Test that a failed creation raises CardMutationFailed."""
    mock_client.post.side_effect = TrelloAPIError("boom", status_code=500)

    with pytest.raises(CardMutationFailed, match="Kenya: Floods"):
        mutator.create_card("l1", "Kenya: Floods", "", 1, [])


def test_attach_url(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test attaching the entity URL to a card."""
    mutator.attach_url(card, "http://reliefweb.int/taxonomy/term/1")

    mock_client.post.assert_called_once_with("/cards/c1/attachments", {"url": "http://reliefweb.int/taxonomy/term/1"})
    assert card.attachments == ["http://reliefweb.int/taxonomy/term/1"]


def test_update_card_without_changes(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test that an empty diff sends nothing."""
    assert mutator.update_card(card, {}) is False
    mock_client.put.assert_not_called()


def test_update_card(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test sending the changed fields."""
    assert mutator.update_card(card, {"name": "New name", "closed": False}) is True
    mock_client.put.assert_called_once_with("/cards/c1", {"name": "New name", "closed": False})


def test_update_card_failure(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test that a failed update raises CardMutationFailed."""
    mock_client.put.side_effect = TrelloAPIError("boom")

    with pytest.raises(CardMutationFailed):
        mutator.update_card(card, {"name": "New name"})


def test_archive_card(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test archiving a card."""
    mutator.archive_card(card)

    mock_client.put.assert_called_once_with("/cards/c1", {"closed": True})
    assert card.closed is True


def test_labels(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test adding and removing a label."""
    label = Label(id="lb1", name="Flood")

    mutator.add_label(card, label)
    mutator.remove_label(card, label)

    mock_client.post.assert_called_once_with("/cards/c1/idLabels", {"value": "lb1"})
    mock_client.delete.assert_called_once_with("/cards/c1/idLabels/lb1")


def test_label_failure(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test that label failures raise LabelMutationFailed."""
    mock_client.delete.side_effect = TrelloAPIError("boom")

    with pytest.raises(LabelMutationFailed, match="Flood"):
        mutator.remove_label(card, Label(id="lb1", name="Flood"))


def test_add_checklist(mutator: CardMutator, mock_client: Mock, card: Card) -> None:
    """Test adding a checklist."""
    mock_client.post.return_value = {"id": "cl1", "name": "Rivers", "checkItems": []}

    checklist = mutator.add_checklist(card, "Rivers")

    assert checklist.id == "cl1"
    mock_client.post.assert_called_once_with("/cards/c1/checklists", {"name": "Rivers"})


def test_delete_checklist_failure(mutator: CardMutator, mock_client: Mock) -> None:
    """Test that checklist failures raise ChecklistMutationFailed."""
    mock_client.delete.side_effect = TrelloAPIError("boom")

    with pytest.raises(ChecklistMutationFailed):
        mutator.delete_checklist(Checklist(id="cl1", name="Rivers"))


def test_check_items(mutator: CardMutator, mock_client: Mock) -> None:
    """Test adding, updating and deleting checklist items."""
    checklist = Checklist(id="cl1", name="Rivers")

    mutator.add_check_item(checklist, "[Updates](https://reliefweb.int/updates)", pos=1)
    mutator.add_check_item(checklist, "Done item", checked=True)
    mutator.update_check_item("c1", checklist, "i1", "[News](https://reliefweb.int/news)", pos=2, complete=False)
    mutator.delete_check_item(checklist, "i2")

    assert mock_client.post.call_args_list[0][0] == (
        "/checklists/cl1/checkItems",
        {"name": "[Updates](https://reliefweb.int/updates)", "pos": 1},
    )
    assert mock_client.post.call_args_list[1][0] == (
        "/checklists/cl1/checkItems",
        {"name": "Done item", "checked": True},
    )
    mock_client.put.assert_called_once_with(
        "/cards/c1/checklist/cl1/checkItem/i1",
        {
            "idChecklistCurrent": "cl1",
            "idCheckItem": "i1",
            "name": "[News](https://reliefweb.int/news)",
            "pos": 2,
            "state": "incomplete",
        },
    )
    mock_client.delete.assert_called_once_with("/checklists/cl1/checkItems/i2")


def test_check_item_failure(mutator: CardMutator, mock_client: Mock) -> None:
    """Test that checklist item failures raise ChecklistItemMutationFailed."""
    mock_client.post.side_effect = TrelloAPIError("boom")

    with pytest.raises(ChecklistItemMutationFailed):
        mutator.add_check_item(Checklist(id="cl1", name="Rivers"), "item")
