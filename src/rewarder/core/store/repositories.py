"""Repository layer for report store models.

Handles the seam between SQLAlchemy rows and domain objects. This is NOT a
trust boundary: the report database is our data, so bad rows crash.
"""

from typing import Any

from sqlalchemy.engine import Row as SARow

from rewarder.contracts import (
    FailedRewardChunk,
    ParticipantKind,
    PossiblyUnrewardedEntity,
    RewardingReport,
)
from rewarder.core.store._helpers import from_unix_seconds


class ReportRepository:
    """Repository for RewardingReport records."""

    def load(self, row: SARow[Any]) -> RewardingReport:
        return RewardingReport(
            report_id=row.id,
            timestamp=from_unix_seconds(row.timestamp),
            eligible_mixnode_count=row.eligible_mixnodes,
            eligible_gateway_count=row.eligible_gateways,
            possibly_unrewarded_mixnode_count=row.possibly_unrewarded_mixnodes,
            possibly_unrewarded_gateway_count=row.possibly_unrewarded_gateways,
        )


class FailedChunkRepository:
    """Repository for FailedRewardChunk records of one participant kind."""

    def __init__(self, kind: ParticipantKind) -> None:
        self._kind = kind

    def load(self, row: SARow[Any]) -> FailedRewardChunk:
        return FailedRewardChunk(
            chunk_id=row.id,
            kind=self._kind,
            error_message=row.error_message,
            report_id=row.reward_summary_id,
        )


class EntityRepository:
    """Repository for PossiblyUnrewardedEntity records of one participant kind.

    The chunk FK column is named per kind; the repository hides that.
    """

    def __init__(self, kind: ParticipantKind, chunk_fk_column: str) -> None:
        self._kind = kind
        self._chunk_fk_column = chunk_fk_column

    def load(self, row: SARow[Any]) -> PossiblyUnrewardedEntity:
        return PossiblyUnrewardedEntity(
            entity_id=row.id,
            kind=self._kind,
            identity=row.identity,
            uptime=row.uptime,
            chunk_id=getattr(row, self._chunk_fk_column),
        )
