"""Build the eligible mixnode set from the contract's bonded topology.

Uptime comes from network monitoring, outside this package; this helper only
joins it with the bonds the contract currently reports.
"""

from collections.abc import Mapping

import structlog

from rewarder.contracts import ChainClient, MixNodeBond, ParticipantRecord

logger = structlog.get_logger(__name__)

TOPOLOGY_QUERY = {"get_topology": {}}


def _bond_identity(bond: MixNodeBond) -> str:
    node = bond["mix_node"]
    # Older contract versions keyed nodes by sphinx key only
    return node.get("identity_key") or node["sphinx_key"]


async def eligible_from_topology(
    client: ChainClient,
    contract_address: str,
    uptimes: Mapping[str, int],
    *,
    min_uptime: int = 1,
) -> set[ParticipantRecord]:
    """Return a ParticipantRecord for every bonded mixnode with enough uptime.

    Bonded nodes with no uptime measurement are skipped: they have not been
    tested this epoch, so there is nothing to reward them on.

    Args:
        client: Chain client used for the topology query
        contract_address: Mixnet contract address
        uptimes: Last-known uptime percentage keyed by identity
        min_uptime: Lowest uptime that still earns a reward

    Returns:
        Eligible mixnodes, deduplicated by identity
    """
    response = await client.query_contract_smart(contract_address, TOPOLOGY_QUERY)
    bonds: list[MixNodeBond] = response["mix_node_bonds"]

    eligible: dict[str, ParticipantRecord] = {}
    unmeasured = 0
    for bond in bonds:
        identity = _bond_identity(bond)
        uptime = uptimes.get(identity)
        if uptime is None:
            unmeasured += 1
            continue
        if uptime < min_uptime:
            continue
        eligible[identity] = ParticipantRecord(identity=identity, uptime=uptime)

    logger.info(
        "Eligible mixnodes resolved from topology",
        bonded=len(bonds),
        eligible=len(eligible),
        unmeasured=unmeasured,
    )
    return set(eligible.values())
