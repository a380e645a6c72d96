# src/rewarder/core/store/schema.py
"""SQLAlchemy table definitions for the rewarding report store.

Uses SQLAlchemy Core (not ORM) for explicit control over queries
and compatibility with multiple database backends.

Possibly-unrewarded participants are flattened into child tables rather than
stored as an array column, so the same schema works on SQLite.
"""

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)

from rewarder.contracts import ParticipantKind

# Shared metadata for all tables
metadata = MetaData()

# === Reports (one per completed epoch run) ===

rewarding_report_table = Table(
    "rewarding_report",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", Integer, nullable=False),  # Unix seconds, UTC
    Column("eligible_mixnodes", Integer, nullable=False),
    Column("eligible_gateways", Integer, nullable=False),
    # Denormalized: must equal the entity rows under this report's chunks
    Column("possibly_unrewarded_mixnodes", Integer, nullable=False),
    Column("possibly_unrewarded_gateways", Integer, nullable=False),
    sqlite_autoincrement=True,  # ids are never reused, so report ids only increase
)

# === Failed reward chunks (ideally zero per report) ===

failed_mixnode_reward_chunk_table = Table(
    "failed_mixnode_reward_chunk",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("error_message", String, nullable=False),
    Column("reward_summary_id", Integer, ForeignKey("rewarding_report.id"), nullable=False, index=True),
    sqlite_autoincrement=True,
)

failed_gateway_reward_chunk_table = Table(
    "failed_gateway_reward_chunk",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("error_message", String, nullable=False),
    Column("reward_summary_id", Integer, ForeignKey("rewarding_report.id"), nullable=False, index=True),
    sqlite_autoincrement=True,
)

# === Possibly unrewarded participants (members of failed chunks) ===

possibly_unrewarded_mixnode_table = Table(
    "possibly_unrewarded_mixnode",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("identity", String, nullable=False),
    Column("uptime", Integer, nullable=False),
    Column(
        "failed_mixnode_reward_chunk_id",
        Integer,
        ForeignKey("failed_mixnode_reward_chunk.id"),
        nullable=False,
    ),
    sqlite_autoincrement=True,
)

possibly_unrewarded_gateway_table = Table(
    "possibly_unrewarded_gateway",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("identity", String, nullable=False),
    Column("uptime", Integer, nullable=False),
    Column(
        "failed_gateway_reward_chunk_id",
        Integer,
        ForeignKey("failed_gateway_reward_chunk.id"),
        nullable=False,
    ),
    sqlite_autoincrement=True,
)

Index("ix_possibly_unrewarded_mixnode_chunk", possibly_unrewarded_mixnode_table.c.failed_mixnode_reward_chunk_id)
Index("ix_possibly_unrewarded_gateway_chunk", possibly_unrewarded_gateway_table.c.failed_gateway_reward_chunk_id)

# Per-kind table lookup: (chunk table, entity table, entity -> chunk FK column name)
KIND_TABLES: dict[ParticipantKind, tuple[Table, Table, str]] = {
    ParticipantKind.MIXNODE: (
        failed_mixnode_reward_chunk_table,
        possibly_unrewarded_mixnode_table,
        "failed_mixnode_reward_chunk_id",
    ),
    ParticipantKind.GATEWAY: (
        failed_gateway_reward_chunk_table,
        possibly_unrewarded_gateway_table,
        "failed_gateway_reward_chunk_id",
    ),
}
