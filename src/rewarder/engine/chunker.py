"""Partition an eligible set into transaction-sized batches."""

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def chunk(participants: Sequence[T], max_batch_size: int) -> list[tuple[T, ...]]:
    """Split participants into consecutive batches of at most max_batch_size.

    Input order is preserved inside and across batches; callers sort by
    identity first (see check_eligible_set) so membership is reproducible.
    Only the last batch may be smaller. Empty input yields no batches.

    The bound keeps any one reward transaction inside the chain's
    per-transaction gas limit.

    Raises:
        ValueError: If max_batch_size is not a positive integer
    """
    if isinstance(max_batch_size, bool) or not isinstance(max_batch_size, int) or max_batch_size < 1:
        raise ValueError(f"max_batch_size must be a positive integer, got {max_batch_size!r}")
    return [tuple(participants[i : i + max_batch_size]) for i in range(0, len(participants), max_batch_size)]
