# src/rewarder/core/store/recorder.py
"""ReconciliationRecorder: folds one epoch's batch outcomes into a report.

The recorder is the only producer of report, chunk, and entity records.
It derives the aggregate counts from the same outcomes it turns into rows,
so the counts and the rows cannot disagree.
"""

from collections.abc import Sequence
from datetime import datetime

import structlog

from rewarder.contracts import (
    BatchResult,
    Confirmed,
    ParticipantKind,
    PendingChunk,
    PendingEntity,
    PendingReport,
    RewardingReport,
)
from rewarder.core.store._helpers import now
from rewarder.core.store.store import ReportStore

logger = structlog.get_logger(__name__)


class ReconciliationRecorder:
    """Builds and atomically persists one RewardingReport per epoch run."""

    def __init__(self, store: ReportStore) -> None:
        self._store = store

    def record(
        self,
        eligible_mixnode_count: int,
        eligible_gateway_count: int,
        mixnode_outcomes: Sequence[BatchResult],
        gateway_outcomes: Sequence[BatchResult],
        *,
        timestamp: datetime | None = None,
    ) -> RewardingReport:
        """Record the outcome of an epoch run.

        One failed chunk is created per non-confirmed batch, carrying the
        outcome's error message, and one entity per member of that batch.
        Confirmed batches leave no rows.

        Args:
            eligible_mixnode_count: Distinct mixnodes passed into chunking
            eligible_gateway_count: Distinct gateways passed into chunking
            mixnode_outcomes: Results of every mixnode batch
            gateway_outcomes: Results of every gateway batch
            timestamp: Report creation time (defaults to now, UTC)

        Returns:
            The persisted report

        Raises:
            ValueError: If a result is filed under the wrong kind
            AuditIntegrityError, ReportPersistenceError: From the store; nothing is written
        """
        chunks: list[PendingChunk] = []
        entities: list[PendingEntity] = []
        unrewarded = {ParticipantKind.MIXNODE: 0, ParticipantKind.GATEWAY: 0}

        for kind, results in (
            (ParticipantKind.MIXNODE, mixnode_outcomes),
            (ParticipantKind.GATEWAY, gateway_outcomes),
        ):
            for result in results:
                if result.kind is not kind:
                    raise ValueError(f"{result.kind} batch result passed as a {kind} outcome")
                outcome = result.outcome
                if isinstance(outcome, Confirmed):
                    continue

                chunk_index = len(chunks)
                chunks.append(PendingChunk(kind=kind, error_message=outcome.error_message))
                entities.extend(
                    PendingEntity(
                        kind=kind,
                        identity=member.identity,
                        uptime=member.uptime,
                        chunk_index=chunk_index,
                    )
                    for member in result.members
                )
                unrewarded[kind] += len(result.members)

        pending = PendingReport(
            timestamp=timestamp or now(),
            eligible_mixnode_count=eligible_mixnode_count,
            eligible_gateway_count=eligible_gateway_count,
            possibly_unrewarded_mixnode_count=unrewarded[ParticipantKind.MIXNODE],
            possibly_unrewarded_gateway_count=unrewarded[ParticipantKind.GATEWAY],
        )

        report = self._store.save(pending, chunks, entities)

        logger.info(
            "Rewarding report recorded",
            report_id=report.report_id,
            eligible_mixnodes=report.eligible_mixnode_count,
            eligible_gateways=report.eligible_gateway_count,
            possibly_unrewarded_mixnodes=report.possibly_unrewarded_mixnode_count,
            possibly_unrewarded_gateways=report.possibly_unrewarded_gateway_count,
            failed_chunks=len(chunks),
        )
        return report
