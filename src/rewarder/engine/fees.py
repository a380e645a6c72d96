"""Fee estimation for reward transactions.

Gas grows with the number of participants rewarded and with the number of
delegations whose rewards the contract must update alongside them.
"""

from collections.abc import Sequence
from decimal import ROUND_CEILING, Decimal

from rewarder.contracts import Fee, ParticipantKind, ParticipantRecord
from rewarder.core.config import GasSettings


def estimate_gas_limit(batch: Sequence[ParticipantRecord], base_gas: int, per_delegation_gas: int) -> int:
    """Gas limit for rewarding every member of a batch in one transaction."""
    total_delegations = sum(member.total_delegations for member in batch)
    return base_gas * len(batch) + per_delegation_gas * total_delegations


def estimate_fee(
    batch: Sequence[ParticipantRecord],
    kind: ParticipantKind,
    gas: GasSettings,
    *,
    gas_price: float,
    denom: str,
) -> Fee:
    """Build the fee for a batch's reward transaction.

    The amount is rounded up so the fee never falls below gas_limit * gas_price.
    """
    base_gas, per_delegation_gas = gas.for_kind(kind)
    gas_limit = estimate_gas_limit(batch, base_gas, per_delegation_gas)
    # Decimal via str() so 0.025 means exactly 0.025, not its binary approximation
    amount = (Decimal(str(gas_price)) * gas_limit).to_integral_value(rounding=ROUND_CEILING)
    return {"amount": [{"amount": str(amount), "denom": denom}], "gas": str(gas_limit)}


def reward_memo(kind: ParticipantKind, batch_size: int) -> str:
    return f"rewarding {batch_size} {kind.value}s"
