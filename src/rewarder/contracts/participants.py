"""Participant records supplied by the eligibility source.

Eligibility input is external data: it is validated as a whole before any
chunking happens, and a single bad record fails the run.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from rewarder.contracts.enums import ParticipantKind
from rewarder.contracts.errors import EligibilityError

MAX_UPTIME = 100


@dataclass(frozen=True)
class ParticipantRecord:
    """One participant eligible for a reward this epoch.

    Attributes:
        identity: Participant's identity key (base58 string)
        uptime: Last-known uptime as an integer percentage, 0..=100
        total_delegations: Number of delegations on the bond, drives gas estimation
    """

    identity: str
    uptime: int
    total_delegations: int = 0


def uptime_from_ratio(numerator: int, denominator: int) -> int:
    """Convert a passed/total test ratio into an uptime percentage.

    An empty denominator means the node was never tested and yields 0.

    Raises:
        ValueError: If the ratio exceeds 100%
    """
    if denominator == 0:
        return 0
    uptime = int(numerator / denominator * 100)
    if not 0 <= uptime <= MAX_UPTIME:
        raise ValueError(f"uptime ratio {numerator}/{denominator} is outside 0..={MAX_UPTIME}")
    return uptime


def _record_problems(record: ParticipantRecord) -> list[str]:
    problems = []
    if not isinstance(record.identity, str) or not record.identity.strip():
        problems.append(f"identity must be a non-empty string, got {record.identity!r}")
    # bool is an int subclass; True is not an uptime
    if isinstance(record.uptime, bool) or not isinstance(record.uptime, int) or not 0 <= record.uptime <= MAX_UPTIME:
        problems.append(f"{record.identity!r}: uptime must be an integer in 0..={MAX_UPTIME}, got {record.uptime!r}")
    if (
        isinstance(record.total_delegations, bool)
        or not isinstance(record.total_delegations, int)
        or record.total_delegations < 0
    ):
        problems.append(f"{record.identity!r}: total_delegations must be a non-negative integer, got {record.total_delegations!r}")
    return problems


def check_eligible_set(kind: ParticipantKind, participants: Iterable[object]) -> list[ParticipantRecord]:
    """Validate an eligible set and return it sorted by identity.

    Sorting here gives the chunker a deterministic input order, so batch
    membership is reproducible for a given eligible set.

    Args:
        kind: Participant kind, used in problem descriptions
        participants: Records from the eligibility source

    Returns:
        Records sorted by identity

    Raises:
        EligibilityError: If any record is malformed or an identity repeats
    """
    problems: list[str] = []
    records: list[ParticipantRecord] = []
    seen: set[str] = set()

    for record in participants:
        if not isinstance(record, ParticipantRecord):
            problems.append(f"{kind}: expected ParticipantRecord, got {type(record).__name__}")
            continue
        record_problems = _record_problems(record)
        if record_problems:
            problems.extend(f"{kind}: {p}" for p in record_problems)
            continue
        if record.identity in seen:
            problems.append(f"{kind}: duplicate identity {record.identity!r}")
            continue
        seen.add(record.identity)
        records.append(record)

    if problems:
        raise EligibilityError(problems)

    return sorted(records, key=lambda r: r.identity)
