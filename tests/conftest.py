# tests/conftest.py
"""Shared test fixtures and helpers.

FakeChainClient stands in for the external chain client library. Tests script
per-identity behaviour on it; a batch takes the behaviour of the first member
that has one, and confirms otherwise.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import asyncio
import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from rewarder.contracts import (
    ChainClientError,
    ChainRejectionError,
    ChainTimeoutError,
    Coin,
    ExecuteResult,
    Fee,
    ParticipantRecord,
    RewardingContext,
)

SENDER = "n1rewardingvalidatoraddress"
CONTRACT = "n1mixnetcontractaddress"


@dataclass(frozen=True)
class SubmittedBatch:
    """One execute_multiple call as seen by the fake client."""

    sender_address: str
    contract_address: str
    messages: list[dict[str, Any]]
    fee: Fee
    memo: str

    @property
    def identities(self) -> list[str]:
        return [next(iter(msg.values()))["identity"] for msg in self.messages]


class FakeChainClient:
    """Scripted ChainClient.

    Behaviours (set with on()):
        reject     - raise ChainRejectionError(detail)
        timeout    - raise ChainTimeoutError(detail)
        transport  - raise ChainClientError(detail)
        hang       - never respond (the dispatcher deadline must fire)
        slow       - sleep float(detail) seconds, then confirm
        crash      - raise RuntimeError(detail)
        reset      - raise ConnectionResetError(detail)
        sock_timeout - raise the builtin TimeoutError(detail)
    """

    def __init__(self, *, latency: float = 0.0) -> None:
        self.latency = latency
        self.calls: list[SubmittedBatch] = []
        self.completed: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.topology: dict[str, Any] = {"mix_node_bonds": []}
        self.queries: list[tuple[str, Any]] = []
        self._rules: dict[str, tuple[str, str]] = {}

    def on(self, identity: str, behaviour: str, detail: str = "") -> None:
        self._rules[identity] = (behaviour, detail)

    async def execute_multiple(
        self,
        sender_address: str,
        contract_address: str,
        messages: Sequence[tuple[Any, Sequence[Coin]]],
        fee: Fee,
        memo: str,
    ) -> ExecuteResult:
        submitted = SubmittedBatch(
            sender_address=sender_address,
            contract_address=contract_address,
            messages=[dict(msg) for msg, _ in messages],
            fee=fee,
            memo=memo,
        )
        self.calls.append(submitted)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            await self._apply_rule(submitted.identities)
        finally:
            self.in_flight -= 1
        self.completed.append(submitted.identities[0])
        return {"transaction_hash": f"TX{len(self.calls):04d}", "gas_used": int(fee["gas"])}

    async def _apply_rule(self, identities: list[str]) -> None:
        for identity in identities:
            if identity not in self._rules:
                continue
            behaviour, detail = self._rules[identity]
            if behaviour == "reject":
                raise ChainRejectionError(detail)
            if behaviour == "timeout":
                raise ChainTimeoutError(detail)
            if behaviour == "transport":
                raise ChainClientError(detail)
            if behaviour == "hang":
                await asyncio.sleep(3600)
            if behaviour == "slow":
                await asyncio.sleep(float(detail))
            if behaviour == "crash":
                raise RuntimeError(detail)
            if behaviour == "reset":
                raise ConnectionResetError(detail)
            if behaviour == "sock_timeout":
                raise TimeoutError(detail)
            return

    async def query_contract_smart(self, contract_address: str, query: Any) -> dict[str, Any]:
        self.queries.append((contract_address, query))
        return self.topology


def make_participants(prefix: str, count: int, *, delegations: int = 0) -> list[ParticipantRecord]:
    """Deterministic participants named <prefix>000, <prefix>001, ..."""
    return [
        ParticipantRecord(identity=f"{prefix}{i:03d}", uptime=(i * 7) % 101, total_delegations=delegations) for i in range(count)
    ]


@pytest.fixture(autouse=True)
def _restore_root_handlers() -> Iterator[None]:
    """configure_logging() points the root handler at whatever stdout was; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def chain_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def context() -> RewardingContext:
    return RewardingContext(sender_address=SENDER, contract_address=CONTRACT)


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
