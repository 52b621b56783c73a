"""Core module - Wire model, log interface, errors and configuration."""

from factsync.core.config import RemoteConfig
from factsync.core.errors import (
    BadRemoteResponseError,
    BadRemoteStateError,
    DuplicateMetadataError,
    FactSyncError,
    NetworkError,
    NotYetImplementedError,
    SerializationError,
    StoreError,
    TxIncorrectlyMappedError,
    TxProcessorUnfinishedError,
    UnexpectedStateError,
)
from factsync.core.log import InMemoryTransactionLog, TransactionLog, check_causal_chain
from factsync.core.types import (
    EMPTY_UUID,
    TX_INSTANT,
    TransactionHeader,
    TransactionPage,
    Tx,
    TxPart,
    canonical_json,
    chunk_uuid,
)

__all__ = [
    # Config
    "RemoteConfig",
    # Errors
    "BadRemoteResponseError",
    "BadRemoteStateError",
    "DuplicateMetadataError",
    "FactSyncError",
    "NetworkError",
    "NotYetImplementedError",
    "SerializationError",
    "StoreError",
    "TxIncorrectlyMappedError",
    "TxProcessorUnfinishedError",
    "UnexpectedStateError",
    # Log
    "InMemoryTransactionLog",
    "TransactionLog",
    "check_causal_chain",
    # Types
    "EMPTY_UUID",
    "TX_INSTANT",
    "TransactionHeader",
    "TransactionPage",
    "Tx",
    "TxPart",
    "canonical_json",
    "chunk_uuid",
]
