"""Synchronization of the local store with a transaction log.

Architecture:
    Synchronizer → (pull) TransactionLog → TxApplier → LocalStore
    Synchronizer → (push) LocalStore → TransactionLog

Components:
- **Synchronizer**: runs one pull/apply/collect/push pass
- **TxApplier**: validates and applies one remote transaction
- **TempIdMap**: per-transaction temporary identifier table
- **retry_with_backoff**: caller-side retry of whole passes
"""

from factsync.client.sync.apply import TxApplier
from factsync.client.sync.engine import Synchronizer
from factsync.client.sync.remap import IdAllocator, TempIdMap
from factsync.client.sync.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    RETRYABLE_EXCEPTIONS,
    RetryPolicy,
    retry_with_backoff,
)
from factsync.client.sync.types import LocalLogStore, SyncPhase, SyncResult

__all__ = [
    # Engine
    "Synchronizer",
    "TxApplier",
    # Remapping
    "IdAllocator",
    "TempIdMap",
    # Retry
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_BACKOFF",
    "DEFAULT_MAX_RETRIES",
    "RETRYABLE_EXCEPTIONS",
    "RetryPolicy",
    "retry_with_backoff",
    # Types
    "LocalLogStore",
    "SyncPhase",
    "SyncResult",
]
