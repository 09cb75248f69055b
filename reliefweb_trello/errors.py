"""Exceptions raised while synchronizing ReliefWeb content with Trello boards."""


class SyncError(Exception):
    """Base class for all synchronization errors."""


class FatalError(SyncError):
    """Error that aborts the whole run."""


class RecoverableError(SyncError):
    """Error limited to a single card, label or checklist item.

    The affected item is left as is and reconciled on the next run.
    """


class UpstreamUnavailable(FatalError):
    """The ReliefWeb API returned an error, an empty or a malformed response."""


class BoardUnavailable(FatalError):
    """The Trello board data could not be retrieved."""


class ProvisioningFailed(FatalError):
    """A list or label required by the run could not be created."""


class CardMutationFailed(RecoverableError):
    """Creating, updating or archiving a card failed."""


class LabelMutationFailed(RecoverableError):
    """Adding or removing a label on a card failed."""


class ChecklistMutationFailed(RecoverableError):
    """Creating or deleting a checklist failed."""


class ChecklistItemMutationFailed(RecoverableError):
    """Adding, updating or deleting a checklist item failed."""


class TrelloAPIError(Exception):
    """Error returned by the Trello API or raised by the transport."""

    def __init__(self, message: str, status_code: int | None = None, response_text: str | None = None) -> None:
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)
