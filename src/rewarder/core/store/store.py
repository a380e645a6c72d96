# src/rewarder/core/store/store.py
"""ReportStore: durable storage and retrieval of epoch rewarding reports.

A report and all of its failed chunks and possibly-unrewarded entities are
written in ONE transaction. Either the whole audit trail for an epoch becomes
visible, or none of it does.
"""

from collections import Counter
from collections.abc import Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from rewarder.contracts import (
    AuditIntegrityError,
    FailedRewardChunk,
    ParticipantKind,
    PendingChunk,
    PendingEntity,
    PendingReport,
    PossiblyUnrewardedEntity,
    ReportNotFoundError,
    ReportPersistenceError,
    RewardingReport,
)
from rewarder.core.store._database_ops import DatabaseOps
from rewarder.core.store._helpers import from_unix_seconds, to_unix_seconds
from rewarder.core.store.database import ReportDB
from rewarder.core.store.repositories import (
    EntityRepository,
    FailedChunkRepository,
    ReportRepository,
)
from rewarder.core.store.schema import KIND_TABLES, rewarding_report_table

logger = structlog.get_logger(__name__)


def _check_consistency(
    report: PendingReport,
    chunks: Sequence[PendingChunk],
    entities: Sequence[PendingEntity],
) -> None:
    """Verify ownership and aggregate-count invariants before writing.

    Raises:
        AuditIntegrityError: On any violation
    """
    per_chunk: Counter[int] = Counter()
    per_kind: Counter[ParticipantKind] = Counter()

    for entity in entities:
        if not 0 <= entity.chunk_index < len(chunks):
            raise AuditIntegrityError(
                f"Entity {entity.identity!r} references chunk index {entity.chunk_index}, but only {len(chunks)} chunk(s) exist"
            )
        owner = chunks[entity.chunk_index]
        if owner.kind is not entity.kind:
            raise AuditIntegrityError(f"{entity.kind} entity {entity.identity!r} references a {owner.kind} chunk")
        per_chunk[entity.chunk_index] += 1
        per_kind[entity.kind] += 1

    empty = [i for i in range(len(chunks)) if per_chunk[i] == 0]
    if empty:
        raise AuditIntegrityError(f"Failed chunk(s) at index {empty} have no possibly-unrewarded entities")

    expected = {
        ParticipantKind.MIXNODE: report.possibly_unrewarded_mixnode_count,
        ParticipantKind.GATEWAY: report.possibly_unrewarded_gateway_count,
    }
    for kind, count in expected.items():
        if per_kind[kind] != count:
            raise AuditIntegrityError(f"Report claims {count} possibly unrewarded {kind}(s) but {per_kind[kind]} entity row(s) were supplied")


class ReportStore:
    """Persistence and read access for rewarding reports.

    Writes go through save() only, which the ReconciliationRecorder calls once
    per epoch. Reads serve reconciliation tooling and operators.

    Example:
        store = ReportStore(ReportDB.in_memory())
        report = store.save(pending, chunks, entities)
        store.list_possibly_unrewarded(report.report_id, ParticipantKind.MIXNODE)
    """

    def __init__(self, db: ReportDB) -> None:
        self._db = db
        self._ops = DatabaseOps(db)
        self._report_repo = ReportRepository()
        self._chunk_repos = {kind: FailedChunkRepository(kind) for kind in ParticipantKind}
        self._entity_repos = {kind: EntityRepository(kind, fk_column) for kind, (_, _, fk_column) in KIND_TABLES.items()}

    # === Writes ===

    def save(
        self,
        report: PendingReport,
        chunks: Sequence[PendingChunk],
        entities: Sequence[PendingEntity],
    ) -> RewardingReport:
        """Atomically persist a report with its failed chunks and entities.

        Args:
            report: Aggregates for the epoch
            chunks: Failed chunks, any kind, in insertion order
            entities: Possibly-unrewarded entities; each names its owning chunk
                by index into ``chunks``

        Returns:
            The persisted report with its assigned id

        Raises:
            AuditIntegrityError: If the data violates the report invariants
                (nothing is written)
            ReportPersistenceError: If the database write fails (rolled back)
        """
        _check_consistency(report, chunks, entities)
        timestamp = to_unix_seconds(report.timestamp)

        try:
            with self._db.connection() as conn:
                result = conn.execute(
                    rewarding_report_table.insert().values(
                        timestamp=timestamp,
                        eligible_mixnodes=report.eligible_mixnode_count,
                        eligible_gateways=report.eligible_gateway_count,
                        possibly_unrewarded_mixnodes=report.possibly_unrewarded_mixnode_count,
                        possibly_unrewarded_gateways=report.possibly_unrewarded_gateway_count,
                    )
                )
                report_id = result.inserted_primary_key[0]

                chunk_ids: list[int] = []
                for chunk in chunks:
                    chunk_table, _, _ = KIND_TABLES[chunk.kind]
                    result = conn.execute(
                        chunk_table.insert().values(
                            error_message=chunk.error_message,
                            reward_summary_id=report_id,
                        )
                    )
                    chunk_ids.append(result.inserted_primary_key[0])

                for kind, (_, entity_table, fk_column) in KIND_TABLES.items():
                    rows = [
                        {
                            "identity": entity.identity,
                            "uptime": entity.uptime,
                            fk_column: chunk_ids[entity.chunk_index],
                        }
                        for entity in entities
                        if entity.kind is kind
                    ]
                    if rows:
                        conn.execute(entity_table.insert(), rows)
        except SQLAlchemyError as e:
            logger.error(
                "Rewarding report write failed, transaction rolled back",
                error=str(e),
                error_type=type(e).__name__,
                failed_chunks=len(chunks),
                entities=len(entities),
            )
            raise ReportPersistenceError(f"Failed to persist rewarding report: {e}") from e

        return RewardingReport(
            report_id=report_id,
            timestamp=from_unix_seconds(timestamp),
            eligible_mixnode_count=report.eligible_mixnode_count,
            eligible_gateway_count=report.eligible_gateway_count,
            possibly_unrewarded_mixnode_count=report.possibly_unrewarded_mixnode_count,
            possibly_unrewarded_gateway_count=report.possibly_unrewarded_gateway_count,
        )

    # === Reads ===

    def get_report(self, report_id: int) -> RewardingReport:
        """Get a report by id.

        Raises:
            ReportNotFoundError: If no such report exists
        """
        row = self._ops.execute_fetchone(select(rewarding_report_table).where(rewarding_report_table.c.id == report_id))
        if row is None:
            raise ReportNotFoundError(report_id)
        return self._report_repo.load(row)

    def list_reports(self, limit: int | None = None) -> list[RewardingReport]:
        """List reports, newest first."""
        query = select(rewarding_report_table).order_by(rewarding_report_table.c.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [self._report_repo.load(row) for row in self._ops.execute_fetchall(query)]

    def latest_report(self) -> RewardingReport | None:
        """Get the most recent report, or None if none have been written."""
        reports = self.list_reports(limit=1)
        return reports[0] if reports else None

    def get_failed_chunks(self, report_id: int, kind: ParticipantKind) -> list[FailedRewardChunk]:
        """Get the failed chunks of one kind belonging to a report, in insertion order."""
        chunk_table, _, _ = KIND_TABLES[kind]
        rows = self._ops.execute_fetchall(
            select(chunk_table).where(chunk_table.c.reward_summary_id == report_id).order_by(chunk_table.c.id)
        )
        return [self._chunk_repos[kind].load(row) for row in rows]

    def get_possibly_unrewarded(self, report_id: int, kind: ParticipantKind) -> list[PossiblyUnrewardedEntity]:
        """Get possibly-unrewarded entities of one kind across a report's chunks.

        Ordered by insertion, so members of each chunk keep chunker order.

        Raises:
            ReportNotFoundError: If no such report exists
        """
        self.get_report(report_id)
        chunk_table, entity_table, fk_column = KIND_TABLES[kind]
        query = (
            select(entity_table)
            .join(chunk_table, entity_table.c[fk_column] == chunk_table.c.id)
            .where(chunk_table.c.reward_summary_id == report_id)
            .order_by(entity_table.c.id)
        )
        return [self._entity_repos[kind].load(row) for row in self._ops.execute_fetchall(query)]

    def list_possibly_unrewarded(self, report_id: int, kind: ParticipantKind) -> list[tuple[str, int]]:
        """List (identity, uptime) pairs needing reconciliation for a report.

        Raises:
            ReportNotFoundError: If no such report exists
        """
        return [(entity.identity, entity.uptime) for entity in self.get_possibly_unrewarded(report_id, kind)]

    def count_possibly_unrewarded(self, report_id: int, kind: ParticipantKind) -> int:
        """Count entity rows of one kind under a report's failed chunks."""
        chunk_table, entity_table, fk_column = KIND_TABLES[kind]
        query = (
            select(func.count())
            .select_from(entity_table.join(chunk_table, entity_table.c[fk_column] == chunk_table.c.id))
            .where(chunk_table.c.reward_summary_id == report_id)
        )
        count: int = self._ops.execute_scalar(query)
        return count

    def verify_report(self, report_id: int) -> RewardingReport:
        """Re-check a stored report's aggregate counts against its entity rows.

        Raises:
            ReportNotFoundError: If no such report exists
            AuditIntegrityError: If an aggregate disagrees with the rows
        """
        report = self.get_report(report_id)
        for kind in ParticipantKind:
            actual = self.count_possibly_unrewarded(report_id, kind)
            claimed = report.possibly_unrewarded_count(kind)
            if actual != claimed:
                raise AuditIntegrityError(
                    f"Report {report_id} records {claimed} possibly unrewarded {kind}(s) but has {actual} entity row(s)"
                )
        return report
