"""Board snapshot, list/label provisioning and card matching."""

import re
from collections.abc import Iterable

import structlog

from reliefweb_trello.config import ListConfig
from reliefweb_trello.errors import BoardUnavailable, ProvisioningFailed, TrelloAPIError
from reliefweb_trello.models import Board, BoardList, Card, Label
from reliefweb_trello.text import normalize_url
from reliefweb_trello.trello import TrelloClient

logger = structlog.get_logger()

CARD_FIELDS = "name,labels,idList,desc,closed,pos"


def read_board(client: TrelloClient, board_id: str, card_filter: str = "all", with_checklists: bool = False) -> Board:
    """Retrieve the lists, labels and cards of a board.

    Cards come with their attachment URLs. Checklists cannot be nested in the
    board request so when they are needed the cards are fetched in a second
    request.

    Raises:
        BoardUnavailable: if any of the requests fails.
    """
    params = {
        "fields": "name",
        "labels": "all",
        "label_fields": "name,color",
        "labels_limit": 1000,
        "lists": "open",
        "list_fields": "name,closed,pos",
    }
    if not with_checklists:
        params.update(
            {
                "cards": card_filter,
                "card_fields": CARD_FIELDS,
                "card_attachments": "true",
                "card_attachment_fields": "url",
            }
        )

    logger.debug("Reading board", board_id=board_id, card_filter=card_filter, with_checklists=with_checklists)
    try:
        data = client.get(f"/boards/{board_id}", params)
        if with_checklists:
            data["cards"] = client.get(
                f"/boards/{board_id}/cards/{card_filter}",
                {
                    "fields": CARD_FIELDS,
                    "attachments": "true",
                    "attachment_fields": "url",
                    "checklists": "all",
                    "checklist_fields": "name,pos",
                },
            )
    except TrelloAPIError as e:
        raise BoardUnavailable(f"Unable to retrieve the Trello board {board_id}: {e}") from e

    if not isinstance(data, dict):
        raise BoardUnavailable(f"Unexpected Trello response for board {board_id}")
    try:
        board = Board.from_api(data)
    except (KeyError, TypeError, ValueError) as e:
        raise BoardUnavailable(f"Malformed Trello board {board_id}: {e}") from e

    logger.info(
        "Board loaded",
        board=board.name,
        lists=len(board.lists),
        labels=len(board.labels),
        cards=len(board.cards),
    )
    return board


class Provisioner:
    """Create the lists and labels a run relies on.

    Existing lists and labels are matched by exact name. Creation failures are
    fatal since later steps assume every referenced list and label exists.
    """

    def __init__(self, client: TrelloClient, board: Board) -> None:
        self.client = client
        self.board = board

    def ensure_lists(self, configs: Iterable[ListConfig]) -> dict[str, BoardList]:
        """Return the board lists keyed by status, creating the missing ones."""
        existing: dict[str, BoardList] = {}
        for board_list in self.board.lists:
            existing.setdefault(board_list.name, board_list)

        lists: dict[str, BoardList] = {}
        for config in configs:
            if config.name in existing:
                lists[config.status] = existing[config.name]
                continue
            try:
                data = self.client.post(
                    "/lists",
                    {"name": config.name, "pos": config.position, "idBoard": self.board.id},
                )
                board_list = BoardList.from_api(data)
            except (TrelloAPIError, TypeError, ValueError) as e:
                raise ProvisioningFailed(f"Unable to create list: {config.name}") from e
            existing[config.name] = board_list
            lists[config.status] = board_list
            logger.info("Created list", name=config.name)
        return lists

    def ensure_labels(self, definitions: dict[str, str]) -> dict[str, Label]:
        """Return the labels keyed by name, creating the missing ones.

        Args:
            definitions: label colors keyed by label name, an empty color
                creates a colorless label
        """
        existing: dict[str, Label] = {}
        for label in self.board.labels:
            if label.name:
                existing.setdefault(label.name, label)

        labels: dict[str, Label] = {}
        for name, color in definitions.items():
            if name in existing:
                labels[name] = existing[name]
                continue
            try:
                data = self.client.post("/labels", {"name": name, "color": color or "", "idBoard": self.board.id})
                label = Label.from_api(data)
            except (TrelloAPIError, TypeError, ValueError) as e:
                raise ProvisioningFailed(f"Unable to create label: {name}") from e
            existing[name] = label
            labels[name] = label
            logger.info("Created label", name=name)
        return labels


def match_cards(cards: Iterable[Card], url_pattern: re.Pattern[str]) -> tuple[dict[str, Card], list[Card]]:
    """Map canonical entity URLs to the cards carrying them as attachment.

    The first attachment matching the pattern identifies the card. Cards
    without a matching attachment are ignored. When several cards carry the same
    URL, the first open one is kept, or the first one if they are all archived.

    Returns:
        The kept cards keyed by URL and the other duplicate cards.
    """
    matched: dict[str, Card] = {}
    duplicates: list[Card] = []
    for card in cards:
        for url in card.attachments:
            if not url_pattern.match(url):
                continue
            key = normalize_url(url)
            kept = matched.get(key)
            if kept is None:
                matched[key] = card
            elif kept.closed and not card.closed:
                logger.warning("Duplicate card for entity", url=key, card=kept.name, kept=card.name)
                matched[key] = card
                duplicates.append(kept)
            else:
                logger.warning("Duplicate card for entity", url=key, card=card.name, kept=kept.name)
                duplicates.append(card)
            break
    logger.debug("Matched cards", count=len(matched), duplicates=len(duplicates))
    return matched, duplicates
