"""Core infrastructure: configuration, logging, and the report store."""

from rewarder.core.config import (
    ChainSettings,
    DatabaseSettings,
    GasSettings,
    LoggingSettings,
    RewarderSettings,
    RewardingSettings,
    load_settings,
)
from rewarder.core.logging import configure_from_settings, configure_logging, epoch_context, get_logger

__all__ = [
    "ChainSettings",
    "DatabaseSettings",
    "GasSettings",
    "LoggingSettings",
    "RewarderSettings",
    "RewardingSettings",
    "configure_from_settings",
    "configure_logging",
    "epoch_context",
    "get_logger",
    "load_settings",
]
