"""Rewarding engine: chunking, dispatch, and the epoch driver.

Primary API:
    EpochScheduler - Runs one epoch end to end
    RewardDispatcher - Submits batches and classifies their outcomes
    chunk - Deterministic fixed-capacity batching
"""

from rewarder.engine.chunker import chunk
from rewarder.engine.dispatcher import RewardDispatcher
from rewarder.engine.eligibility import eligible_from_topology
from rewarder.engine.fees import estimate_fee, estimate_gas_limit, reward_memo
from rewarder.engine.scheduler import EpochScheduler

__all__ = [
    "EpochScheduler",
    "RewardDispatcher",
    "chunk",
    "eligible_from_topology",
    "estimate_fee",
    "estimate_gas_limit",
    "reward_memo",
]
