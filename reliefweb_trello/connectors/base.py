"""Reconciliation of ReliefWeb entities with the cards of a Trello board."""

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

import structlog

from reliefweb_trello.board import Provisioner, match_cards, read_board
from reliefweb_trello.body import CardBody
from reliefweb_trello.config import ConnectorSettings
from reliefweb_trello.dates import format_day, utc_now
from reliefweb_trello.errors import CardMutationFailed, LabelMutationFailed, UpstreamUnavailable
from reliefweb_trello.models import BoardList, Card, Entity, Label
from reliefweb_trello.mutator import CardMutator
from reliefweb_trello.rwapi import RWApiClient
from reliefweb_trello.trello import TrelloClient

logger = structlog.get_logger()

# Card positions decrease with the entity ID so the newest entities are on top.
MAX_POSITION = 10_000_000

TAXONOMY_URL_PATTERN = re.compile(r"^https?://reliefweb\.int/taxonomy/term/\d+$")
NODE_URL_PATTERN = re.compile(r"^https?://reliefweb\.int/node/\d+$")

PROFILE_UPDATE_HEADER = "Last Profile Update"
PROFILE_HEADER = "Profile"

PROFILE_UPDATE_THRESHOLDS = (
    (21, "Profile Update > 3 Weeks"),
    (14, "Profile Update > 2 Weeks"),
    (7, "Profile Update > 1 Weeks"),
)

E = TypeVar("E", bound=Entity)


@dataclass
class Description:
    """Card description computed for an entity.

    ``updated`` is the timestamp written in the description, used to compute
    the age warning labels.
    """

    text: str
    updated: str | None = None


@dataclass
class RunSummary:
    """Counts of the cards touched by a run."""

    updated: int = 0
    created: int = 0
    unchanged: int = 0
    archived: int = 0


def card_position(pos: Any) -> int:
    """Round a Trello card position to the nearest integer."""
    return math.floor(float(pos or 0) + 0.5)


class Reconciler(ABC, Generic[E]):
    """Bring the cards of a board in line with a collection of ReliefWeb entities.

    A run fetches the entities and the board, provisions the lists and labels,
    then updates the cards matched to an entity by their attachment URL, creates
    the missing ones and archives the cards whose entity is gone.

    The lists and labels maps are owned by the instance and rebuilt by each run.
    """

    name: str = ""
    url_pattern: re.Pattern[str] = TAXONOMY_URL_PATTERN
    card_filter: str = "all"
    with_checklists: bool = False
    requires_lists: bool = False

    def __init__(
        self,
        settings: ConnectorSettings,
        trello: TrelloClient,
        rwapi: RWApiClient,
        now: datetime | None = None,
    ) -> None:
        if self.requires_lists and not settings.lists:
            raise ValueError(f"The {self.name} connector requires at least one list in '{self.name}.lists'")
        self.settings = settings
        self.trello = trello
        self.rwapi = rwapi
        self.now = now or utc_now()
        self.mutator = CardMutator(trello)
        self.status_positions = {item.status: item.position for item in settings.lists}
        self.lists: dict[str, BoardList] = {}
        self.labels: dict[str, Label] = {}

    @abstractmethod
    def fetch_entities(self) -> list[E]:
        """Retrieve and normalize the ReliefWeb entities, sorted for processing."""
        pass

    @abstractmethod
    def tag_labels(self, entity: E) -> list[str]:
        """Names of the colorless labels derived from the entity's tags."""
        pass

    @abstractmethod
    def describe(self, entity: E, card: Card | None) -> Description:
        """Compute the card description for an entity given its current card."""
        pass

    @abstractmethod
    def desired_labels(self, entity: E, description: Description) -> list[str]:
        """Names of the managed labels the entity's card should have."""
        pass

    def sync_checklists(self, card: Card, entity: E) -> bool:
        """Converge the card checklists. Connectors without checklists do nothing."""
        return False

    def run(self) -> RunSummary:
        """Run a full synchronization.

        Raises:
            FatalError: if the entities or the board cannot be retrieved or a
                list or label cannot be created.
        """
        logger.info("Starting synchronization", connector=self.name)
        entities = self.fetch_entities()
        logger.info("Retrieved entities", connector=self.name, count=len(entities))

        board = read_board(self.trello, self.settings.trello.board_id, self.card_filter, self.with_checklists)

        provisioner = Provisioner(self.trello, board)
        self.lists = provisioner.ensure_lists(self.settings.lists)
        self.labels = provisioner.ensure_labels(self.label_definitions(entities))

        return self.reconcile(board.cards, entities)

    def reconcile(self, cards: Iterable[Card], entities: Sequence[E]) -> RunSummary:
        """Update, create and archive cards. Expects lists and labels to be provisioned."""
        matched, duplicates = match_cards(cards, self.url_pattern)
        summary = RunSummary()

        for entity in entities:
            position = MAX_POSITION - entity.id
            card = matched.pop(entity.url, None)
            if card is not None:
                if self.update_card(position, card, entity):
                    summary.updated += 1
                else:
                    summary.unchanged += 1
            elif self.create_card(position, entity):
                summary.created += 1

        logger.info(
            "Updated/created cards",
            connector=self.name,
            updated=summary.updated,
            created=summary.created,
            unchanged=summary.unchanged,
        )

        # Cards left in the map belong to entities no longer returned by the API,
        # duplicates to entities that already have a card.
        summary.archived = self.archive_cards([*matched.values(), *duplicates])
        logger.info("Archived cards", connector=self.name, count=summary.archived)
        return summary

    def label_definitions(self, entities: Iterable[E]) -> dict[str, str]:
        """Colors of the managed labels keyed by name."""
        definitions = dict(self.settings.labels)
        for entity in entities:
            for name in self.tag_labels(entity):
                definitions.setdefault(name, "")
        return definitions

    def managed_list_ids(self) -> set[str]:
        return {board_list.id for board_list in self.lists.values()}

    def status_position(self, status: str) -> int:
        return self.status_positions.get(status, 0)

    def sort_entities(self, entities: Iterable[E]) -> list[E]:
        """Sort by status list position, then newest first."""
        return sorted(entities, key=lambda entity: (entity.status_position, -entity.id))

    def prepare(self, factory: Any, fields: dict[str, Any], kind: str) -> E:
        """Build an entity from API fields, turning validation errors into UpstreamUnavailable."""
        try:
            return factory(fields)
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Malformed ReliefWeb {kind}: {e}") from e

    def select_labels(self, names: Iterable[str | None]) -> list[str]:
        """Keep the provisioned label names, without duplicates, in order."""
        selected: dict[str, None] = {}
        for name in names:
            if name and name in self.labels:
                selected[name] = None
        return list(selected)

    def content_timestamp(self, stored: CardBody, stamp_header: str, content_header: str, content: str) -> str:
        """Date of the last content change.

        The stored date is kept while the content is unchanged, otherwise it
        becomes today so the date reflects the last actual change.
        """
        stamp = (stored.get(stamp_header) or "").strip()
        if stamp and stored.get(content_header) == content:
            return stamp
        return format_day(self.now)

    def update_card(self, position: int, card: Card, entity: E) -> bool:
        """Apply the differences between an entity and its card.

        Returns:
            True if anything was changed on the card.
        """
        changes: dict[str, Any] = {}

        # Cards moved by editors out of the status lists keep their list and position.
        managed = card.list_id in self.managed_list_ids()
        target = self.lists.get(entity.status)

        if managed and target is not None and card.list_id != target.id:
            logger.debug("Updated list of card", card=card.name, list=target.name)
            changes["idList"] = target.id

        if managed and card_position(card.pos) != position:
            logger.debug("Updated position of card", card=card.name, pos=position)
            changes["pos"] = position

        if card.closed:
            logger.debug("Unarchived card", card=card.name)
            changes["closed"] = False

        if card.name != entity.name:
            logger.debug("Updated name of card", card=card.name, name=entity.name)
            changes["name"] = entity.name

        description = self.describe(entity, card)
        if description.text != card.desc:
            logger.debug("Updated description of card", card=card.name)
            changes["desc"] = description.text

        changed = False
        if self.sync_labels(card, self.desired_labels(entity, description)):
            logger.info("Updated labels for card", card=card.name)
            changed = True

        if self.sync_checklists(card, entity):
            logger.info("Updated checklists for card", card=card.name)
            changed = True

        try:
            if self.mutator.update_card(card, changes):
                changed = True
        except CardMutationFailed as e:
            logger.error(str(e))

        return changed

    def create_card(self, position: int, entity: E) -> bool:
        """Create the card of an entity and attach the entity URL to it.

        Returns:
            True if the card was created.
        """
        target = self.lists.get(entity.status)
        if target is None:
            logger.debug("No list for entity status", entity=entity.name, status=entity.status)
            return False

        description = self.describe(entity, None)
        label_ids = [self.labels[name].id for name in self.desired_labels(entity, description)]

        try:
            card = self.mutator.create_card(target.id, entity.name, description.text, position, label_ids)
        except CardMutationFailed as e:
            logger.error(str(e))
            return False

        try:
            self.mutator.attach_url(card, entity.url)
        except CardMutationFailed as e:
            logger.error(str(e))

        if self.sync_checklists(card, entity):
            logger.info("Updated checklists for card", card=card.name)
        return True

    def sync_labels(self, card: Card, desired: Sequence[str]) -> bool:
        """Remove the managed labels not desired and add the missing ones.

        Labels unknown to the connector are left alone so editors can add their
        own labels. Each label is added or removed independently.
        """
        missing = dict.fromkeys(desired)
        changed = False

        for label in card.labels:
            if label.name in missing:
                del missing[label.name]
                continue
            if label.name not in self.labels:
                continue
            try:
                self.mutator.remove_label(card, label)
                changed = True
            except LabelMutationFailed as e:
                logger.error(str(e))

        for name in missing:
            try:
                self.mutator.add_label(card, self.labels[name])
                changed = True
            except LabelMutationFailed as e:
                logger.error(str(e))

        return changed

    def archive_cards(self, cards: Iterable[Card]) -> int:
        """Archive the cards sitting in the status lists.

        Cards moved to other lists are presumed repurposed and left alone.
        """
        managed = self.managed_list_ids()
        archived = 0
        for card in cards:
            if card.closed or card.list_id not in managed:
                continue
            try:
                self.mutator.archive_card(card)
                archived += 1
            except CardMutationFailed as e:
                logger.error(str(e))
        return archived
