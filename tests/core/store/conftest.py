# tests/core/store/conftest.py
"""Fixtures for report store tests.

Each test gets a fresh in-memory database; rows never leak between tests.
"""

from collections.abc import Iterator
from datetime import UTC, datetime

import pytest

from rewarder.contracts import PendingReport
from rewarder.core.store import ReconciliationRecorder, ReportDB, ReportStore

EPOCH_TIME = datetime(2021, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def db() -> Iterator[ReportDB]:
    with ReportDB.in_memory() as database:
        yield database


@pytest.fixture
def store(db: ReportDB) -> ReportStore:
    return ReportStore(db)


@pytest.fixture
def recorder(store: ReportStore) -> ReconciliationRecorder:
    return ReconciliationRecorder(store)


def pending_report(
    *,
    eligible_mixnodes: int = 0,
    eligible_gateways: int = 0,
    unrewarded_mixnodes: int = 0,
    unrewarded_gateways: int = 0,
    timestamp: datetime = EPOCH_TIME,
) -> PendingReport:
    return PendingReport(
        timestamp=timestamp,
        eligible_mixnode_count=eligible_mixnodes,
        eligible_gateway_count=eligible_gateways,
        possibly_unrewarded_mixnode_count=unrewarded_mixnodes,
        possibly_unrewarded_gateway_count=unrewarded_gateways,
    )
