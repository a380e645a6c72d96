# src/rewarder/engine/scheduler.py
"""EpochScheduler: drives one reconciliation cycle per epoch boundary.

Flow:
    validate eligible sets -> chunk -> dispatch every batch (bounded
    concurrency) -> barrier -> record one report

Invariants:
- No report is written while any batch outcome is pending; the aggregate
  counts must describe the whole epoch.
- A cancelled run writes nothing and must be treated as not completed.
- Storage failure fails the epoch; no partial report is visible.

Calling run_epoch() twice for the same epoch produces two reports. Invoking
it once per epoch is the caller's responsibility.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog

from rewarder.contracts import (
    BatchResult,
    ChainClient,
    EligibilityError,
    ParticipantKind,
    ParticipantRecord,
    ReportPersistenceError,
    RewardingReport,
    check_eligible_set,
)
from rewarder.core.config import RewarderSettings
from rewarder.core.logging import epoch_context
from rewarder.core.store import ReconciliationRecorder, ReportStore
from rewarder.engine.chunker import chunk
from rewarder.engine.dispatcher import RewardDispatcher

logger = structlog.get_logger(__name__)


class EpochScheduler:
    """Top-level driver for an epoch's rewarding run."""

    def __init__(
        self,
        dispatcher: RewardDispatcher,
        recorder: ReconciliationRecorder,
        *,
        mixnode_batch_size: int,
        gateway_batch_size: int,
    ) -> None:
        self._dispatcher = dispatcher
        self._recorder = recorder
        self._batch_sizes = {
            ParticipantKind.MIXNODE: mixnode_batch_size,
            ParticipantKind.GATEWAY: gateway_batch_size,
        }

    @classmethod
    def from_settings(cls, client: ChainClient, store: ReportStore, settings: RewarderSettings) -> EpochScheduler:
        return cls(
            RewardDispatcher.from_settings(client, settings),
            ReconciliationRecorder(store),
            mixnode_batch_size=settings.rewarding.batch_size(ParticipantKind.MIXNODE),
            gateway_batch_size=settings.rewarding.batch_size(ParticipantKind.GATEWAY),
        )

    async def run_epoch(
        self,
        eligible_mixnodes: Iterable[ParticipantRecord],
        eligible_gateways: Iterable[ParticipantRecord],
    ) -> RewardingReport:
        """Reward every eligible participant once and record the epoch report.

        Args:
            eligible_mixnodes: Mixnodes to reward, unique by identity
            eligible_gateways: Gateways to reward, unique by identity

        Returns:
            The persisted report

        Raises:
            EligibilityError: If any input record is malformed (nothing is dispatched)
            ReportPersistenceError: If the report could not be stored
            asyncio.CancelledError: If the run was cancelled before the barrier
        """
        with epoch_context():
            return await self._run(eligible_mixnodes, eligible_gateways)

    async def _run(
        self,
        eligible_mixnodes: Iterable[ParticipantRecord],
        eligible_gateways: Iterable[ParticipantRecord],
    ) -> RewardingReport:
        participants = self._validate(
            {
                ParticipantKind.MIXNODE: eligible_mixnodes,
                ParticipantKind.GATEWAY: eligible_gateways,
            }
        )

        batches: list[tuple[ParticipantKind, tuple[ParticipantRecord, ...]]] = []
        for kind, records in participants.items():
            batches.extend((kind, batch) for batch in chunk(records, self._batch_sizes[kind]))

        log = logger.bind(
            eligible_mixnodes=len(participants[ParticipantKind.MIXNODE]),
            eligible_gateways=len(participants[ParticipantKind.GATEWAY]),
            batches=len(batches),
        )
        log.info("Epoch rewarding started", max_in_flight=self._dispatcher.max_in_flight)

        try:
            results = await self._dispatcher.dispatch_all(batches)
        except asyncio.CancelledError:
            log.warning("Epoch rewarding cancelled before all batches resolved, no report written")
            raise

        by_kind: dict[ParticipantKind, list[BatchResult]] = {kind: [] for kind in ParticipantKind}
        for result in results:
            by_kind[result.kind].append(result)

        try:
            report = self._recorder.record(
                len(participants[ParticipantKind.MIXNODE]),
                len(participants[ParticipantKind.GATEWAY]),
                by_kind[ParticipantKind.MIXNODE],
                by_kind[ParticipantKind.GATEWAY],
            )
        except ReportPersistenceError as e:
            log.error("Epoch rewarding failed, report could not be stored", error=str(e))
            raise

        # Confirmed batches are not persisted, so their counts only appear here
        log.info(
            "Epoch rewarding completed",
            report_id=report.report_id,
            confirmed_mixnode_batches=sum(1 for r in by_kind[ParticipantKind.MIXNODE] if not r.possibly_unrewarded),
            confirmed_gateway_batches=sum(1 for r in by_kind[ParticipantKind.GATEWAY] if not r.possibly_unrewarded),
            dispatch_stats=self._dispatcher.get_stats(),
        )
        return report

    @staticmethod
    def _validate(
        eligible: dict[ParticipantKind, Iterable[ParticipantRecord]],
    ) -> dict[ParticipantKind, list[ParticipantRecord]]:
        """Validate every eligible set, reporting problems from all kinds at once."""
        problems: list[str] = []
        validated: dict[ParticipantKind, list[ParticipantRecord]] = {}
        for kind, records in eligible.items():
            try:
                validated[kind] = check_eligible_set(kind, records)
            except EligibilityError as e:
                problems.extend(e.problems)
        if problems:
            raise EligibilityError(problems)
        return validated
