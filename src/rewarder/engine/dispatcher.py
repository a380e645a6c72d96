# src/rewarder/engine/dispatcher.py
"""RewardDispatcher: one reward transaction per batch, classified outcome.

Classification:
- Confirmed: execute_multiple returned before the deadline
- Failed: the chain explicitly rejected the transaction (ChainRejectionError)
- TimedOut: our deadline elapsed, the client reported a timeout, the
  transport failed after submission, or the client raised something it
  should have translated. The transaction may still be included.

There is NO retry. Resubmitting a batch whose first transaction is still
pending inclusion would pay its members twice; unconfirmed members are left
for reconciliation against the next epoch's chain state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from threading import Lock
from typing import Any

import structlog

from rewarder.contracts import (
    BatchOutcome,
    BatchResult,
    ChainClient,
    ChainClientError,
    ChainRejectionError,
    Confirmed,
    Failed,
    ParticipantKind,
    ParticipantRecord,
    RewardingContext,
    TimedOut,
    reward_message,
)
from rewarder.core.config import GasSettings, RewarderSettings
from rewarder.engine.fees import estimate_fee, reward_memo

logger = structlog.get_logger(__name__)


class RewardDispatcher:
    """Submits reward batches with a bounded number in flight.

    Batches are independent: a rejection, timeout or unexpected client error
    in one never cancels or delays another. dispatch() only raises on
    cancellation.

    Usage:
        dispatcher = RewardDispatcher.from_settings(client, settings)
        results = await dispatcher.dispatch_all(
            [(ParticipantKind.MIXNODE, batch) for batch in mixnode_batches]
        )
    """

    def __init__(
        self,
        client: ChainClient,
        context: RewardingContext,
        *,
        gas: GasSettings | None = None,
        gas_price: float = 0.025,
        timeout_seconds: float = 60.0,
        max_in_flight: int = 4,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be at least 1, got {max_in_flight}")

        self._client = client
        self._context = context
        self._gas = gas or GasSettings()
        self._gas_price = gas_price
        self._timeout_seconds = timeout_seconds
        self._max_in_flight = max_in_flight

        # Concurrency tracking, reported by get_stats()
        self._stats_lock = Lock()
        self._active: int = 0
        self._max_concurrent: int = 0

    @classmethod
    def from_settings(cls, client: ChainClient, settings: RewarderSettings) -> RewardDispatcher:
        return cls(
            client,
            settings.chain.to_context(),
            gas=settings.gas,
            gas_price=settings.chain.gas_price,
            timeout_seconds=settings.rewarding.confirmation_timeout_seconds,
            max_in_flight=settings.rewarding.max_in_flight,
        )

    @property
    def max_in_flight(self) -> int:
        return self._max_in_flight

    def get_stats(self) -> dict[str, Any]:
        """Concurrency figures for the most recent dispatch_all()."""
        with self._stats_lock:
            return {
                "max_in_flight": self._max_in_flight,
                "max_concurrent_reached": self._max_concurrent,
                "timeout_seconds": self._timeout_seconds,
            }

    async def dispatch(self, batch: Sequence[ParticipantRecord], kind: ParticipantKind) -> BatchOutcome:
        """Submit one batch as a single multi-message transaction and classify the outcome."""
        messages = [(reward_message(kind, member), []) for member in batch]
        fee = estimate_fee(batch, kind, self._gas, gas_price=self._gas_price, denom=self._context.denom)
        memo = reward_memo(kind, len(batch))
        log = logger.bind(kind=str(kind), batch_size=len(batch), first_identity=batch[0].identity if batch else None)

        log.debug("Dispatching reward batch", gas=fee["gas"])
        deadline = asyncio.timeout(self._timeout_seconds)
        try:
            async with deadline:
                result = await self._client.execute_multiple(
                    self._context.sender_address,
                    self._context.contract_address,
                    messages,
                    fee,
                    memo,
                )
        except ChainRejectionError as e:
            outcome: BatchOutcome = Failed(error_message=e.message)
        except ChainClientError as e:
            # ChainTimeoutError and transport failures: submitted, fate unknown
            outcome = TimedOut.from_client_error(e.message)
        except TimeoutError as e:
            if deadline.expired():
                outcome = TimedOut.after_deadline(self._timeout_seconds)
            else:
                # Raised by the client itself, e.g. a socket timeout
                outcome = TimedOut.from_client_error(f"{type(e).__name__}: {e}")
        except Exception as e:
            # Untranslated adapter error after submission: record it, never abort siblings
            log.error("Chain client raised an unexpected error", error=repr(e), exc_info=True)
            outcome = TimedOut.from_client_error(f"{type(e).__name__}: {e}")
        else:
            outcome = Confirmed(transaction_hash=result.get("transaction_hash"))

        if isinstance(outcome, Confirmed):
            log.info("Reward batch confirmed", transaction_hash=outcome.transaction_hash)
        else:
            log.warning("Reward batch not confirmed", outcome=str(outcome.status), error=outcome.error_message)
        return outcome

    async def dispatch_all(
        self,
        batches: Sequence[tuple[ParticipantKind, tuple[ParticipantRecord, ...]]],
    ) -> list[BatchResult]:
        """Dispatch every batch, at most max_in_flight at a time.

        Returns only once every batch has resolved. Results are in the same
        order as ``batches`` regardless of completion order.
        """
        with self._stats_lock:
            self._active = 0
            self._max_concurrent = 0

        # Created per call: a Semaphore must belong to the running loop
        semaphore = asyncio.Semaphore(self._max_in_flight)

        async def worker(kind: ParticipantKind, batch: tuple[ParticipantRecord, ...]) -> BatchResult:
            async with semaphore:
                self._increment_active()
                try:
                    outcome = await self.dispatch(batch, kind)
                finally:
                    self._decrement_active()
            return BatchResult(kind=kind, members=batch, outcome=outcome)

        tasks = [asyncio.create_task(worker(kind, batch)) for kind, batch in batches]
        try:
            return list(await asyncio.gather(*tasks))
        except asyncio.CancelledError:
            # dispatch() never raises Exception, so only cancellation lands here
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _increment_active(self) -> None:
        with self._stats_lock:
            self._active += 1
            if self._active > self._max_concurrent:
                self._max_concurrent = self._active

    def _decrement_active(self) -> None:
        with self._stats_lock:
            self._active -= 1
