"""Overview board connector.

Project cards on the overview board are labelled with a project label, for
example ``Project: Website``. Cards of the organization's other boards carrying
the same label are actions of that project. Each project card gets one
checklist per board listing those actions with their doers, list and due date.
"""

from dataclasses import dataclass, field

import structlog

from reliefweb_trello.config import OverviewSettings
from reliefweb_trello.errors import (
    BoardUnavailable,
    ChecklistItemMutationFailed,
    ChecklistMutationFailed,
    TrelloAPIError,
)
from reliefweb_trello.models import Board, Card, Checklist
from reliefweb_trello.mutator import CardMutator
from reliefweb_trello.trello import TrelloClient

logger = structlog.get_logger()

ACTION_CARD_FIELDS = "name,shortUrl,labels,idList,due"

# Length of a card short URL (https://trello.com/c/<8 characters>), the
# constant prefix of an action checklist item.
SHORT_URL_LENGTH = 29


@dataclass
class Action:
    """Card of a monitored board contributing to a project."""

    link: str
    status: str
    due: str | None = None
    doers: list[str] = field(default_factory=list)
    complete: bool = False

    @property
    def name(self) -> str:
        doers = f"**{', '.join(self.doers)}**" if self.doers else "*Not assigned*"
        parts = [self.link, doers, self.status]
        if self.due:
            parts.append(f"*{self.due[:10].replace('-', '/')}*")
        return " - ".join(parts)


@dataclass
class Project:
    """Project card of the overview board and its actions keyed by board name."""

    card: Card
    actions: dict[str, dict[str, Action]] = field(default_factory=dict)


@dataclass
class OverviewSummary:
    projects: int = 0
    updated: int = 0


class OverviewReconciler:
    """Synchronize the project checklists of the overview board."""

    name = "overview"

    def __init__(self, settings: OverviewSettings, trello: TrelloClient) -> None:
        self.settings = settings
        self.trello = trello
        self.mutator = CardMutator(trello)

    def project_name(self, label: str) -> str:
        prefix = self.settings.project_prefix
        return label[len(prefix) :] if label.startswith(prefix) else ""

    def doer_name(self, label: str) -> str:
        prefix = self.settings.doer_prefix
        return label[len(prefix) :] if label.startswith(prefix) else ""

    def run(self) -> OverviewSummary:
        """Run a full synchronization.

        Raises:
            BoardUnavailable: if the overview board or the organization boards
                cannot be retrieved.
        """
        logger.info("Starting synchronization", connector=self.name)
        overview = self.read_overview_board()
        boards, skipped = self.read_boards()

        projects = self.collect_projects(overview.cards)
        self.collect_actions(projects, boards)

        summary = OverviewSummary(projects=len(projects))
        board_names = {board.name for board in boards}
        for name, project in projects.items():
            logger.debug("Updating project", project=name)
            if self.update_project(project, board_names, skipped):
                summary.updated += 1

        logger.info("Updated projects", connector=self.name, projects=summary.projects, updated=summary.updated)
        return summary

    def board_cards(self, board_id: str, checklists: bool = False) -> list[Card]:
        params = {"fields": ACTION_CARD_FIELDS}
        if checklists:
            params["checklists"] = "all"
        data = self.trello.get(f"/boards/{board_id}/cards/open", params)
        return [Card.from_api(item) for item in data]

    def read_overview_board(self) -> Board:
        board_id = self.settings.trello.board_id
        try:
            board = Board.from_api(self.trello.get(f"/boards/{board_id}", {"fields": "id,name", "lists": "open"}))
            board.cards = self.board_cards(board_id, checklists=True)
        except (TrelloAPIError, TypeError, ValueError) as e:
            raise BoardUnavailable(f"Unable to retrieve the overview board {board_id}: {e}") from e
        logger.debug("Loaded overview board", board=board.name, cards=len(board.cards))
        return board

    def read_boards(self) -> tuple[list[Board], set[str]]:
        """Load the monitored boards of the organization.

        Returns:
            The loaded boards and the names of the boards that failed to load.
        """
        organization = self.settings.organization
        try:
            data = self.trello.get(
                f"/organizations/{organization}/boards",
                {"filter": "open", "fields": "id,name", "lists": "open"},
            )
        except TrelloAPIError as e:
            raise BoardUnavailable(f"Unable to retrieve the boards of {organization}: {e}") from e

        excluded = set(self.settings.excluded_boards) | {self.settings.trello.board_id}
        boards: list[Board] = []
        skipped: set[str] = set()
        for item in data:
            board = Board.from_api(item)
            if board.id in excluded:
                continue
            try:
                board.cards = self.board_cards(board.id)
            except (TrelloAPIError, TypeError, ValueError) as e:
                logger.error("Unable to load board", board=board.name, error=str(e))
                skipped.add(board.name)
                continue
            logger.debug("Loaded board", board=board.name, cards=len(board.cards))
            boards.append(board)
        return boards, skipped

    def collect_projects(self, cards: list[Card]) -> dict[str, Project]:
        """Map project names to their overview card, one card per project."""
        projects: dict[str, Project] = {}
        for card in cards:
            for label in card.labels:
                name = self.project_name(label.name)
                if name:
                    projects[name] = Project(card=card)
        return projects

    def card_actions(self, card: Card, status: str) -> dict[str, Action]:
        """Actions of a card keyed by project name."""
        doers = [name for name in (self.doer_name(label.name) for label in card.labels) if name]
        complete = "done" in status.lower()
        actions = {}
        for label in card.labels:
            project = self.project_name(label.name)
            if project:
                actions[project] = Action(
                    link=card.short_url,
                    status=status,
                    due=card.due,
                    doers=doers,
                    complete=complete,
                )
        return actions

    def collect_actions(self, projects: dict[str, Project], boards: list[Board]) -> None:
        for board in boards:
            list_names = {board_list.id: board_list.name for board_list in board.lists}
            for card in board.cards:
                for project_name, action in self.card_actions(card, list_names.get(card.list_id, "")).items():
                    project = projects.get(project_name)
                    if project is not None:
                        logger.debug("Processing action", action=action.name)
                        project.actions.setdefault(board.name, {})[action.name] = action

    def update_project(self, project: Project, board_names: set[str], skipped: set[str]) -> bool:
        """Converge the checklists of a project card, one per board with actions.

        Checklists of boards that failed to load are left alone, the other
        checklists without actions are deleted.
        """
        card = project.card
        pending = dict(project.actions)
        changed = False

        for checklist in list(card.checklists):
            if checklist.name in skipped:
                continue
            actions = pending.pop(checklist.name, None) if checklist.name in board_names else None
            if actions:
                if self.update_checklist(card, checklist, actions):
                    changed = True
                continue
            try:
                self.mutator.delete_checklist(checklist)
                changed = True
            except ChecklistMutationFailed as e:
                logger.error(str(e))

        for board_name, actions in pending.items():
            try:
                checklist = self.mutator.add_checklist(card, board_name)
            except ChecklistMutationFailed as e:
                logger.error(str(e))
                continue
            changed = True
            for action in actions.values():
                self.add_action(checklist, action)

        return changed

    def update_checklist(self, card: Card, checklist: Checklist, actions: dict[str, Action]) -> bool:
        """Add, update or delete the action items of a checklist."""
        items = {action.link: action for action in actions.values()}
        changed = False

        for check_item in checklist.items:
            action = items.pop(check_item.name[:SHORT_URL_LENGTH], None)
            try:
                if action is None:
                    self.mutator.delete_check_item(checklist, check_item.id)
                    changed = True
                elif action.name != check_item.name:
                    self.mutator.update_check_item(
                        card.id, checklist, check_item.id, action.name, complete=action.complete
                    )
                    changed = True
            except ChecklistItemMutationFailed as e:
                logger.error(str(e))

        for action in items.values():
            if self.add_action(checklist, action):
                changed = True

        return changed

    def add_action(self, checklist: Checklist, action: Action) -> bool:
        try:
            self.mutator.add_check_item(checklist, action.name, checked=action.complete)
        except ChecklistItemMutationFailed as e:
            logger.error(str(e))
            return False
        return True
