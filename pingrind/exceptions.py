"""Custom exceptions for the pingrind tournament controller."""


class GrindError(Exception):
    """Base exception for all pingrind errors."""


class ScoreboardError(GrindError):
    """Error talking to the external scoreboard service."""


class VerificationFailedError(ScoreboardError):
    """A mutating scoreboard call did not persist as expected."""


class EntryNotFoundError(ScoreboardError):
    """An expected remote lineup entry is missing."""


class TransientScoreboardError(ScoreboardError):
    """Session or network failure that may succeed on retry."""


class SlotNotFoundError(GrindError):
    """An expected Ledger slot is missing."""


class PersistenceError(GrindError):
    """Database persistence failure."""


class ConfigError(GrindError):
    """Missing or invalid configuration."""


class WorkflowRejected(GrindError):
    """A picker workflow request is not legal in the current state."""


class AssignmentRejected(WorkflowRejected):
    """Picker assignment refused."""


class NominationRejected(WorkflowRejected):
    """Nomination refused."""


class PickRejected(WorkflowRejected):
    """Table pick refused."""


class ConfirmationRequired(WorkflowRejected):
    """Table pick needs explicit override confirmation.

    Raised for tables the catalog does not know, or knows as incompatible
    with the track's platform. Re-submit with ``confirmed=True`` to accept.
    """

    def __init__(self, table_name: str, reason: str) -> None:
        super().__init__(f"{table_name}: {reason}")
        self.table_name = table_name
        self.reason = reason
