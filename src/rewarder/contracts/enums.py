"""Status codes and kinds used across subsystem boundaries."""

from enum import StrEnum


class ParticipantKind(StrEnum):
    """Kind of network participant eligible for a reward.

    Selects the failed-chunk and entity tables a failure is recorded in.
    """

    MIXNODE = "mixnode"
    GATEWAY = "gateway"


class OutcomeStatus(StrEnum):
    """Classified outcome of one reward transaction.

    TIMED_OUT is NOT a flavour of FAILED: the transaction may still have been
    included on chain after the client stopped waiting.
    """

    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
