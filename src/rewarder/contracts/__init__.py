"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes live in rewarder.core.config and are not re-exported here.

Import patterns:
    from rewarder.contracts import ParticipantKind, ParticipantRecord, TimedOut
    from rewarder.core.config import RewarderSettings
"""

from rewarder.contracts.audit import (
    FailedRewardChunk,
    PendingChunk,
    PendingEntity,
    PendingReport,
    PossiblyUnrewardedEntity,
    RewardingReport,
)
from rewarder.contracts.chain import (
    ChainClient,
    Coin,
    ExecuteResult,
    Fee,
    MixNode,
    MixNodeBond,
    RewardingContext,
    reward_message,
)
from rewarder.contracts.enums import OutcomeStatus, ParticipantKind
from rewarder.contracts.errors import (
    AuditIntegrityError,
    ChainClientError,
    ChainRejectionError,
    ChainTimeoutError,
    EligibilityError,
    ReportNotFoundError,
    ReportPersistenceError,
    RewarderError,
)
from rewarder.contracts.outcomes import (
    OUTCOME_UNKNOWN,
    BatchOutcome,
    BatchResult,
    Confirmed,
    Failed,
    TimedOut,
)
from rewarder.contracts.participants import (
    MAX_UPTIME,
    ParticipantRecord,
    check_eligible_set,
    uptime_from_ratio,
)

__all__ = [
    "MAX_UPTIME",
    "OUTCOME_UNKNOWN",
    "AuditIntegrityError",
    "BatchOutcome",
    "BatchResult",
    "ChainClient",
    "ChainClientError",
    "ChainRejectionError",
    "ChainTimeoutError",
    "Coin",
    "Confirmed",
    "EligibilityError",
    "ExecuteResult",
    "Failed",
    "FailedRewardChunk",
    "Fee",
    "MixNode",
    "MixNodeBond",
    "OutcomeStatus",
    "ParticipantKind",
    "ParticipantRecord",
    "PendingChunk",
    "PendingEntity",
    "PendingReport",
    "PossiblyUnrewardedEntity",
    "ReportNotFoundError",
    "ReportPersistenceError",
    "RewarderError",
    "RewardingContext",
    "RewardingReport",
    "TimedOut",
    "check_eligible_set",
    "reward_message",
    "uptime_from_ratio",
]
