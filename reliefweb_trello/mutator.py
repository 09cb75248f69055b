"""Card mutations against the Trello API."""

from typing import Any

import structlog

from reliefweb_trello.errors import (
    CardMutationFailed,
    ChecklistItemMutationFailed,
    ChecklistMutationFailed,
    LabelMutationFailed,
    TrelloAPIError,
)
from reliefweb_trello.models import Card, Checklist, Label
from reliefweb_trello.trello import TrelloClient

logger = structlog.get_logger()


class CardMutator:
    """Apply card, label and checklist changes one call at a time.

    Every method performs a single API call and raises a recoverable error on
    failure so the caller can log it and carry on with the other items.
    """

    def __init__(self, client: TrelloClient) -> None:
        self.client = client

    def create_card(self, list_id: str, name: str, desc: str, pos: int, label_ids: list[str]) -> Card:
        try:
            data = self.client.post(
                "/cards",
                {
                    "idList": list_id,
                    "urlSource": "",
                    "name": name,
                    "desc": desc,
                    "pos": pos,
                    "idLabels": ",".join(label_ids),
                },
            )
            card = Card.from_api(data)
        except (TrelloAPIError, TypeError, ValueError) as e:
            raise CardMutationFailed(f"Unable to create card {name}: {e}") from e
        logger.info("Created card", card=name)
        return card

    def attach_url(self, card: Card, url: str) -> None:
        try:
            self.client.post(f"/cards/{card.id}/attachments", {"url": url})
        except TrelloAPIError as e:
            raise CardMutationFailed(f"Unable to set the URL {url} to card {card.name}: {e}") from e
        card.attachments.append(url)
        logger.debug("Added url to card", url=url, card=card.name)

    def update_card(self, card: Card, changes: dict[str, Any]) -> bool:
        """Send the changed card fields, if any.

        Returns:
            True if the card was updated, False if there was nothing to change.
        """
        if not changes:
            logger.info("No changes for card", card=card.name)
            return False
        try:
            self.client.put(f"/cards/{card.id}", changes)
        except TrelloAPIError as e:
            raise CardMutationFailed(f"Unable to update card {card.name}: {e}") from e
        logger.info("Updated card", card=card.name, fields=sorted(changes))
        return True

    def archive_card(self, card: Card) -> None:
        try:
            self.client.put(f"/cards/{card.id}", {"closed": True})
        except TrelloAPIError as e:
            raise CardMutationFailed(f"Unable to archive card {card.name}: {e}") from e
        card.closed = True
        logger.info("Archived card", card=card.name)

    def add_label(self, card: Card, label: Label) -> None:
        try:
            self.client.post(f"/cards/{card.id}/idLabels", {"value": label.id})
        except TrelloAPIError as e:
            raise LabelMutationFailed(f"Unable to add label {label.name} for card {card.name}: {e}") from e
        logger.debug("Added new label", label=label.name, card=card.name)

    def remove_label(self, card: Card, label: Label) -> None:
        try:
            self.client.delete(f"/cards/{card.id}/idLabels/{label.id}")
        except TrelloAPIError as e:
            raise LabelMutationFailed(f"Unable to remove old label {label.name} for card {card.name}: {e}") from e
        logger.debug("Removed old label", label=label.name, card=card.name)

    def add_checklist(self, card: Card, name: str) -> Checklist:
        try:
            data = self.client.post(f"/cards/{card.id}/checklists", {"name": name})
            checklist = Checklist.from_api(data)
        except (TrelloAPIError, TypeError, ValueError) as e:
            raise ChecklistMutationFailed(f"Unable to add checklist {name} to card {card.name}: {e}") from e
        logger.debug("Added checklist", checklist=name, card=card.name)
        return checklist

    def delete_checklist(self, checklist: Checklist) -> None:
        try:
            self.client.delete(f"/checklists/{checklist.id}")
        except TrelloAPIError as e:
            raise ChecklistMutationFailed(f"Unable to delete checklist {checklist.name}: {e}") from e
        logger.debug("Deleted checklist", checklist=checklist.name)

    def add_check_item(
        self, checklist: Checklist, name: str, pos: int | None = None, checked: bool | None = None
    ) -> None:
        data: dict[str, Any] = {"name": name}
        if pos is not None:
            data["pos"] = pos
        if checked is not None:
            data["checked"] = checked
        try:
            self.client.post(f"/checklists/{checklist.id}/checkItems", data)
        except TrelloAPIError as e:
            raise ChecklistItemMutationFailed(
                f"Unable to add checklist item {name} to checklist {checklist.name}: {e}"
            ) from e
        logger.debug("Added checklist item", item=name, checklist=checklist.name)

    def update_check_item(
        self,
        card_id: str,
        checklist: Checklist,
        item_id: str,
        name: str,
        pos: int | None = None,
        complete: bool | None = None,
    ) -> None:
        data: dict[str, Any] = {"idChecklistCurrent": checklist.id, "idCheckItem": item_id, "name": name}
        if pos is not None:
            data["pos"] = pos
        if complete is not None:
            data["state"] = "complete" if complete else "incomplete"
        try:
            self.client.put(f"/cards/{card_id}/checklist/{checklist.id}/checkItem/{item_id}", data)
        except TrelloAPIError as e:
            raise ChecklistItemMutationFailed(f"Unable to update checklist item {item_id}: {e}") from e
        logger.debug("Updated checklist item", item=name, checklist=checklist.name)

    def delete_check_item(self, checklist: Checklist, item_id: str) -> None:
        try:
            self.client.delete(f"/checklists/{checklist.id}/checkItems/{item_id}")
        except TrelloAPIError as e:
            raise ChecklistItemMutationFailed(f"Unable to delete checklist item {item_id}: {e}") from e
        logger.debug("Deleted checklist item", item_id=item_id, checklist=checklist.name)
