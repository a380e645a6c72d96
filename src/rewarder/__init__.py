"""
Rewarder: epoch rewarding and reconciliation for mixnet participants.

Submits reward transactions for eligible mixnodes and gateways in bounded
batches, and keeps a durable per-epoch audit trail of every participant whose
reward could not be confirmed.
"""

__version__ = "0.1.0"
