"""Audit trail contracts for the rewarding report tables.

Persisted records (RewardingReport, FailedRewardChunk,
PossiblyUnrewardedEntity) carry database ids and are only produced by the
repository layer. Pending records are what the recorder hands to the store
before anything has been written.
"""

from dataclasses import dataclass
from datetime import datetime

from rewarder.contracts.enums import ParticipantKind


@dataclass(frozen=True)
class RewardingReport:
    """Summary of one completed epoch run. Immutable once written."""

    report_id: int
    timestamp: datetime
    eligible_mixnode_count: int
    eligible_gateway_count: int
    possibly_unrewarded_mixnode_count: int
    possibly_unrewarded_gateway_count: int

    def eligible_count(self, kind: ParticipantKind) -> int:
        if kind is ParticipantKind.MIXNODE:
            return self.eligible_mixnode_count
        return self.eligible_gateway_count

    def possibly_unrewarded_count(self, kind: ParticipantKind) -> int:
        if kind is ParticipantKind.MIXNODE:
            return self.possibly_unrewarded_mixnode_count
        return self.possibly_unrewarded_gateway_count


@dataclass(frozen=True)
class FailedRewardChunk:
    """A batch whose transaction did not yield a confirmed success."""

    chunk_id: int
    kind: ParticipantKind
    error_message: str
    report_id: int


@dataclass(frozen=True)
class PossiblyUnrewardedEntity:
    """A participant inside a failed or ambiguous batch."""

    entity_id: int
    kind: ParticipantKind
    identity: str
    uptime: int
    chunk_id: int


@dataclass(frozen=True)
class PendingReport:
    """Report aggregates computed by the recorder, not yet persisted."""

    timestamp: datetime
    eligible_mixnode_count: int
    eligible_gateway_count: int
    possibly_unrewarded_mixnode_count: int
    possibly_unrewarded_gateway_count: int


@dataclass(frozen=True)
class PendingChunk:
    """A failed chunk awaiting insertion."""

    kind: ParticipantKind
    error_message: str


@dataclass(frozen=True)
class PendingEntity:
    """A possibly-unrewarded participant awaiting insertion.

    Attributes:
        chunk_index: Position of the owning chunk in the chunks passed to
            ReportStore.save() alongside this entity
    """

    kind: ParticipantKind
    identity: str
    uptime: int
    chunk_index: int
