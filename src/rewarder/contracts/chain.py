"""Chain client contract consumed by the dispatcher.

Connection management and signing live in an external client library.
Adapters for that library implement ChainClient and translate its failures
into the ChainClientError hierarchy (see rewarder.contracts.errors).
Anything left untranslated is still recorded as an unknown outcome.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NotRequired, Protocol, TypedDict

from rewarder.contracts.enums import ParticipantKind
from rewarder.contracts.participants import ParticipantRecord

ContractMsg = Mapping[str, Any]


class Coin(TypedDict):
    """An amount of a single denomination. Amount is a decimal string."""

    amount: str
    denom: str


class Fee(TypedDict):
    """Transaction fee: coins paid plus the gas limit they buy."""

    amount: list[Coin]
    gas: str


class ExecuteResult(TypedDict):
    """Result of a successfully included transaction."""

    transaction_hash: str
    gas_used: NotRequired[int]


class MixNode(TypedDict):
    host: str
    layer: int
    location: str
    sphinx_key: str
    version: str
    identity_key: NotRequired[str]


class MixNodeBond(TypedDict):
    owner: str
    mix_node: MixNode
    amount: NotRequired[list[Coin]]
    total_delegation: NotRequired[Coin]


class ChainClient(Protocol):
    """Async chain client.

    Must be safe for concurrent use (or pooled): the dispatcher keeps several
    transactions in flight at once.
    """

    async def execute_multiple(
        self,
        sender_address: str,
        contract_address: str,
        messages: Sequence[tuple[ContractMsg, Sequence[Coin]]],
        fee: Fee,
        memo: str,
    ) -> ExecuteResult: ...

    async def query_contract_smart(self, contract_address: str, query: ContractMsg) -> dict[str, Any]: ...


@dataclass(frozen=True)
class RewardingContext:
    """Account and contract the reward transactions are sent from and to.

    Passed explicitly to the dispatcher instead of living in shared state.
    """

    sender_address: str
    contract_address: str
    denom: str = "unym"


def reward_message(kind: ParticipantKind, participant: ParticipantRecord) -> dict[str, Any]:
    """Build the contract execute message rewarding one participant."""
    return {
        f"reward_{kind.value}": {
            "identity": participant.identity,
            "uptime": participant.uptime,
        }
    }
