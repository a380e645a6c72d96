"""Report store: the durable audit trail of epoch rewarding runs.

Primary API:
    ReconciliationRecorder - Builds and writes one report per epoch
    ReportStore - Atomic save plus read access for reconciliation tooling
    ReportDB - Database connection management
"""

from rewarder.core.store.database import ReportDB, SchemaCompatibilityError
from rewarder.core.store.recorder import ReconciliationRecorder
from rewarder.core.store.schema import (
    KIND_TABLES,
    failed_gateway_reward_chunk_table,
    failed_mixnode_reward_chunk_table,
    metadata,
    possibly_unrewarded_gateway_table,
    possibly_unrewarded_mixnode_table,
    rewarding_report_table,
)
from rewarder.core.store.store import ReportStore

__all__ = [
    "KIND_TABLES",
    "ReconciliationRecorder",
    "ReportDB",
    "ReportStore",
    "SchemaCompatibilityError",
    "failed_gateway_reward_chunk_table",
    "failed_mixnode_reward_chunk_table",
    "metadata",
    "possibly_unrewarded_gateway_table",
    "possibly_unrewarded_mixnode_table",
    "rewarding_report_table",
]
