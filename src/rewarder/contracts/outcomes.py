"""Tagged outcomes of reward transactions.

The three variants are carried end-to-end, from the dispatcher through the
recorder, so no component collapses "timed out" into "failed" before the
audit trail is written.
"""

from dataclasses import dataclass
from typing import Literal

from rewarder.contracts.enums import OutcomeStatus, ParticipantKind
from rewarder.contracts.participants import ParticipantRecord

# Every TimedOut message contains this, so stored chunks stay distinguishable
# from explicit rejections (which store the chain's text verbatim).
OUTCOME_UNKNOWN = "outcome unknown"


@dataclass(frozen=True)
class Confirmed:
    """The chain acknowledged successful execution before the deadline."""

    transaction_hash: str | None = None
    status: Literal[OutcomeStatus.CONFIRMED] = OutcomeStatus.CONFIRMED

    @property
    def is_confirmed(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """The chain explicitly rejected the transaction.

    Members of the batch are certainly not rewarded.
    """

    error_message: str
    status: Literal[OutcomeStatus.FAILED] = OutcomeStatus.FAILED

    @property
    def is_confirmed(self) -> bool:
        return False


@dataclass(frozen=True)
class TimedOut:
    """No confirmation was observed in time; the on-chain outcome is unknown."""

    error_message: str
    status: Literal[OutcomeStatus.TIMED_OUT] = OutcomeStatus.TIMED_OUT

    @property
    def is_confirmed(self) -> bool:
        return False

    @classmethod
    def after_deadline(cls, timeout_seconds: float) -> "TimedOut":
        """No response within our own confirmation deadline."""
        return cls(error_message=f"timed out after {timeout_seconds:g}s waiting for confirmation, {OUTCOME_UNKNOWN}")

    @classmethod
    def from_client_error(cls, detail: str) -> "TimedOut":
        """The chain client gave up or lost the connection after submitting."""
        return cls(error_message=f"{OUTCOME_UNKNOWN}: {detail}")


# Discriminated union type
BatchOutcome = Confirmed | Failed | TimedOut


@dataclass(frozen=True)
class BatchResult:
    """One dispatched batch together with its classified outcome.

    Attributes:
        kind: Participant kind of every member
        members: Batch members in chunker order
        outcome: Classified outcome of the batch's transaction
    """

    kind: ParticipantKind
    members: tuple[ParticipantRecord, ...]
    outcome: BatchOutcome

    @property
    def possibly_unrewarded(self) -> bool:
        return not self.outcome.is_confirmed
