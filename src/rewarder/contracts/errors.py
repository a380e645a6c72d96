"""Exception taxonomy for the rewarding subsystem."""

from __future__ import annotations


class RewarderError(Exception):
    """Base class for all rewarder errors."""


class EligibilityError(RewarderError):
    """Raised when eligible participant input is malformed.

    The whole epoch run fails; malformed entries are never silently dropped.

    Attributes:
        problems: One human-readable line per rejected record
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__(f"{len(problems)} invalid participant record(s): " + "; ".join(problems))


class ChainClientError(RewarderError):
    """Base for errors raised by chain client adapters.

    A bare ChainClientError means the transport failed somewhere after
    submission, so the transaction outcome is unknown.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ChainRejectionError(ChainClientError):
    """The chain explicitly refused the transaction.

    ``message`` is the chain's own error text and is stored verbatim.
    """


class ChainTimeoutError(ChainClientError):
    """The client stopped waiting for inclusion; the outcome is unknown."""


class ReportPersistenceError(RewarderError):
    """Storage failed while saving an epoch report. Nothing was committed."""


class AuditIntegrityError(RewarderError):
    """Report data violates the aggregate-count or ownership invariants."""


class ReportNotFoundError(RewarderError):
    """No report exists with the requested id."""

    def __init__(self, report_id: int) -> None:
        self.report_id = report_id
        super().__init__(f"Rewarding report {report_id} not found")
