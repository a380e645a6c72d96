"""Common helper functions for the store modules."""

from datetime import UTC, datetime


def now() -> datetime:
    """Get current UTC timestamp, truncated to the stored resolution."""
    return datetime.now(UTC).replace(microsecond=0)


def to_unix_seconds(timestamp: datetime) -> int:
    """Convert an aware datetime to the integer column representation.

    Raises:
        ValueError: If timestamp is naive
    """
    if timestamp.tzinfo is None:
        raise ValueError(f"timestamp must be timezone-aware, got naive {timestamp!r}")
    return int(timestamp.timestamp())


def from_unix_seconds(value: int) -> datetime:
    """Convert a stored integer timestamp back to an aware UTC datetime."""
    return datetime.fromtimestamp(value, UTC)
