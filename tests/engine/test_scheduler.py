"""End-to-end epoch runs through EpochScheduler with a fake chain and real store."""

import asyncio
import io
import json

import pytest
from sqlalchemy import func, select

from rewarder.contracts import (
    OUTCOME_UNKNOWN,
    EligibilityError,
    ParticipantKind,
    ParticipantRecord,
    ReportPersistenceError,
    RewardingContext,
)
from rewarder.core.config import RewarderSettings
from rewarder.core.logging import configure_logging
from rewarder.core.store import (
    ReconciliationRecorder,
    ReportDB,
    ReportStore,
    failed_mixnode_reward_chunk_table,
    possibly_unrewarded_mixnode_table,
    rewarding_report_table,
)
from rewarder.engine import EpochScheduler, RewardDispatcher

from ..conftest import FakeChainClient, make_participants

MIX = ParticipantKind.MIXNODE
GW = ParticipantKind.GATEWAY


@pytest.fixture
def db() -> ReportDB:
    return ReportDB.in_memory()


@pytest.fixture
def store(db: ReportDB) -> ReportStore:
    return ReportStore(db)


def _scheduler(
    client: FakeChainClient,
    store: ReportStore,
    context: RewardingContext,
    *,
    batch_size: int = 3,
    timeout_seconds: float = 5.0,
) -> EpochScheduler:
    dispatcher = RewardDispatcher(client, context, timeout_seconds=timeout_seconds, max_in_flight=4)
    return EpochScheduler(
        dispatcher,
        ReconciliationRecorder(store),
        mixnode_batch_size=batch_size,
        gateway_batch_size=batch_size,
    )


def _count(db: ReportDB, table: object) -> int:
    with db.connection() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()  # type: ignore[arg-type]


class TestEpochScenarios:
    """Ten mixnodes in batches of three."""

    def test_all_batches_confirm(self, chain_client: FakeChainClient, store: ReportStore, db: ReportDB, context: RewardingContext) -> None:
        scheduler = _scheduler(chain_client, store, context)

        report = asyncio.run(scheduler.run_epoch(make_participants("mix", 10), []))

        assert [len(c.messages) for c in sorted(chain_client.calls, key=lambda c: c.identities[0])] == [3, 3, 3, 1]
        assert report.eligible_mixnode_count == 10
        assert report.possibly_unrewarded_mixnode_count == 0
        assert _count(db, failed_mixnode_reward_chunk_table) == 0

    def test_one_batch_times_out(self, chain_client: FakeChainClient, store: ReportStore, db: ReportDB, context: RewardingContext) -> None:
        chain_client.on("mix003", "hang")
        scheduler = _scheduler(chain_client, store, context, timeout_seconds=0.05)

        report = asyncio.run(scheduler.run_epoch(make_participants("mix", 10), []))

        assert report.possibly_unrewarded_mixnode_count == 3
        assert _count(db, failed_mixnode_reward_chunk_table) == 1
        assert _count(db, possibly_unrewarded_mixnode_table) == 3
        [failed] = store.get_failed_chunks(report.report_id, MIX)
        assert OUTCOME_UNKNOWN in failed.error_message
        entities = store.get_possibly_unrewarded(report.report_id, MIX)
        assert [e.identity for e in entities] == ["mix003", "mix004", "mix005"]
        assert {e.chunk_id for e in entities} == {failed.chunk_id}

    def test_rejection_message_stored_verbatim(
        self, chain_client: FakeChainClient, store: ReportStore, context: RewardingContext
    ) -> None:
        chain_client.on("mix006", "reject", "account sequence mismatch, expected 42, got 41")
        scheduler = _scheduler(chain_client, store, context)

        report = asyncio.run(scheduler.run_epoch(make_participants("mix", 10), []))

        [failed] = store.get_failed_chunks(report.report_id, MIX)
        assert failed.error_message == "account sequence mismatch, expected 42, got 41"
        assert [i for i, _ in store.list_possibly_unrewarded(report.report_id, MIX)] == ["mix006", "mix007", "mix008"]
        assert report.possibly_unrewarded_mixnode_count == 3

    def test_mixnodes_and_gateways(self, chain_client: FakeChainClient, store: ReportStore, context: RewardingContext) -> None:
        chain_client.on("gw000", "reject", "rejected")
        scheduler = _scheduler(chain_client, store, context, batch_size=2)

        report = asyncio.run(scheduler.run_epoch(make_participants("mix", 4), make_participants("gw", 3)))

        assert report.eligible_mixnode_count == 4
        assert report.eligible_gateway_count == 3
        assert report.possibly_unrewarded_mixnode_count == 0
        assert report.possibly_unrewarded_gateway_count == 2
        assert store.verify_report(report.report_id) == report

    def test_input_order_does_not_change_batches(self, store: ReportStore, context: RewardingContext) -> None:
        participants = make_participants("mix", 7)
        first, second = FakeChainClient(), FakeChainClient()

        asyncio.run(_scheduler(first, store, context).run_epoch(participants, []))
        asyncio.run(_scheduler(second, store, context).run_epoch(list(reversed(participants)), []))

        assert sorted(c.identities for c in first.calls) == sorted(c.identities for c in second.calls)

    def test_empty_epoch_still_reports(self, chain_client: FakeChainClient, store: ReportStore, context: RewardingContext) -> None:
        report = asyncio.run(_scheduler(chain_client, store, context).run_epoch([], []))

        assert report.eligible_mixnode_count == 0
        assert chain_client.calls == []
        assert store.latest_report() == report


class TestEpochFailures:
    def test_malformed_input_dispatches_nothing(
        self, chain_client: FakeChainClient, store: ReportStore, context: RewardingContext
    ) -> None:
        mixnodes = [*make_participants("mix", 3), ParticipantRecord("broken", 150)]
        gateways = [ParticipantRecord("gw", 10), ParticipantRecord("gw", 20)]

        with pytest.raises(EligibilityError) as exc_info:
            asyncio.run(_scheduler(chain_client, store, context).run_epoch(mixnodes, gateways))

        assert len(exc_info.value.problems) == 2
        assert chain_client.calls == []
        assert store.latest_report() is None

    def test_cancelled_run_writes_no_report(
        self, chain_client: FakeChainClient, store: ReportStore, db: ReportDB, context: RewardingContext
    ) -> None:
        chain_client.on("mix000", "hang")
        scheduler = _scheduler(chain_client, store, context, timeout_seconds=30)

        async def run_then_cancel() -> None:
            task = asyncio.create_task(scheduler.run_epoch(make_participants("mix", 4), []))
            await asyncio.sleep(0.05)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(run_then_cancel())

        assert _count(db, rewarding_report_table) == 0

    def test_storage_failure_fails_epoch(self, chain_client: FakeChainClient, db: ReportDB, context: RewardingContext) -> None:
        store = ReportStore(db)
        chain_client.on("mix000", "reject", "rejected")
        scheduler = _scheduler(chain_client, store, context)
        with db.connection() as conn:
            conn.exec_driver_sql("DROP TABLE possibly_unrewarded_mixnode")

        with pytest.raises(ReportPersistenceError):
            asyncio.run(scheduler.run_epoch(make_participants("mix", 2), []))

        assert _count(db, rewarding_report_table) == 0

    def test_unexpected_client_error_still_reports(
        self, chain_client: FakeChainClient, store: ReportStore, context: RewardingContext
    ) -> None:
        chain_client.on("mix006", "reset", "connection reset by peer")

        report = asyncio.run(_scheduler(chain_client, store, context).run_epoch(make_participants("mix", 10), []))

        assert sorted(chain_client.completed) == ["mix000", "mix003", "mix009"]
        assert report.possibly_unrewarded_mixnode_count == 3
        assert [i for i, _ in store.list_possibly_unrewarded(report.report_id, MIX)] == ["mix006", "mix007", "mix008"]
        [failed] = store.get_failed_chunks(report.report_id, MIX)
        assert failed.error_message == f"{OUTCOME_UNKNOWN}: ConnectionResetError: connection reset by peer"
        assert store.latest_report() == report


class TestFromSettings:
    def test_builds_from_settings(self, chain_client: FakeChainClient, store: ReportStore) -> None:
        settings = RewarderSettings(
            chain={"sender_address": "n1s", "contract_address": "n1c"},
            rewarding={"mixnode_batch_size": 2, "gateway_batch_size": 5},
        )

        report = asyncio.run(
            EpochScheduler.from_settings(chain_client, store, settings).run_epoch(
                make_participants("mix", 3), make_participants("gw", 5)
            )
        )

        assert sorted(len(c.messages) for c in chain_client.calls) == [1, 2, 5]
        assert report.eligible_gateway_count == 5
        assert {c.sender_address for c in chain_client.calls} == {"n1s"}


class TestEpochLogging:
    def test_run_events_share_epoch_id(self, chain_client: FakeChainClient, store: ReportStore, context: RewardingContext) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)
        chain_client.on("mix000", "reject", "rejected")

        asyncio.run(_scheduler(chain_client, store, context).run_epoch(make_participants("mix", 4), []))

        events = [json.loads(line) for line in stream.getvalue().strip().split("\n")]
        assert {e["event"] for e in events} >= {
            "Epoch rewarding started",
            "Reward batch not confirmed",
            "Rewarding report recorded",
            "Epoch rewarding completed",
        }
        assert len({e["epoch_run"] for e in events}) == 1
        completed = next(e for e in events if e["event"] == "Epoch rewarding completed")
        assert completed["confirmed_mixnode_batches"] == 1
