"""Transaction log interface and an in-memory implementation.

Any backend, local or remote, implements TransactionLog structurally;
the synchronizer depends only on this protocol.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable
from uuid import UUID

from factsync.core.errors import BadRemoteStateError, DuplicateMetadataError
from factsync.core.types import EMPTY_UUID, TransactionHeader, Tx, TxPart, canonical_json

logger = logging.getLogger(__name__)


@runtime_checkable
class TransactionLog(Protocol):
    """Capability set of a transaction log backend.

    Every call blocks until it has fully succeeded or failed.
    """

    def head(self) -> UUID:
        """Return the current head pointer."""
        ...

    def set_head(self, uuid: UUID) -> None:
        """Unconditionally overwrite the head pointer (no compare-and-swap)."""
        ...

    def transactions_after(self, tx: UUID) -> list[Tx]:
        """Return every transaction after ``tx``, oldest first, with parts."""
        ...

    def put_transaction(
        self, tx_uuid: UUID, parent_uuid: UUID, chunk_uuids: Sequence[UUID]
    ) -> None:
        """Record a transaction header. All chunks must already be stored."""
        ...

    def put_chunk(self, chunk_uuid: UUID, payload: TxPart) -> None:
        """Store chunk content under its content address."""
        ...


def check_causal_chain(watermark: UUID, txs: Sequence[Tx]) -> None:
    """Verify transactions form a chain starting right after ``watermark``.

    Args:
        watermark: UUID the sequence was requested after.
        txs: Transactions in the order they were returned.

    Raises:
        BadRemoteStateError: If a parent pointer or sequence number is out of order.
    """
    expected_parent = watermark
    last_seq: int | None = None
    for tx in txs:
        if tx.parent != expected_parent:
            raise BadRemoteStateError(
                f"transaction {tx.uuid} has parent {tx.parent}, expected {expected_parent}"
            )
        if tx.seq is not None:
            if last_seq is not None and tx.seq <= last_seq:
                raise BadRemoteStateError(
                    f"transaction {tx.uuid} has seq {tx.seq} after seq {last_seq}"
                )
            last_seq = tx.seq
        expected_parent = tx.uuid


class InMemoryTransactionLog:
    """Dictionary-backed transaction log.

    Enforces the same rules as the remote service: parents must exist,
    chunks must be stored before the header that names them, chunks are
    write-once and identical headers may be re-submitted.
    """

    def __init__(self) -> None:
        self._head = EMPTY_UUID
        self._headers: dict[UUID, TransactionHeader] = {}
        self._order: list[UUID] = []
        self._chunks: dict[UUID, str] = {}
        self._next_seq = 1

    def head(self) -> UUID:
        return self._head

    def set_head(self, uuid: UUID) -> None:
        logger.debug(f"Setting head to {uuid}")
        self._head = uuid

    def transactions_after(self, tx: UUID) -> list[Tx]:
        if tx == EMPTY_UUID:
            start = 0
        elif tx in self._headers:
            start = self._order.index(tx) + 1
        else:
            raise BadRemoteStateError(f"unknown transaction {tx}")

        result: list[Tx] = []
        for tx_uuid in self._order[start:]:
            header = self._headers[tx_uuid]
            parts = [self.get_chunk(chunk) for chunk in header.chunks]
            result.append(
                Tx(
                    uuid=tx_uuid,
                    parent=header.parent,
                    chunks=list(header.chunks),
                    parts=parts,
                    seq=header.seq,
                )
            )
        return result

    def put_transaction(
        self, tx_uuid: UUID, parent_uuid: UUID, chunk_uuids: Sequence[UUID]
    ) -> None:
        chunks = list(chunk_uuids)
        existing = self._headers.get(tx_uuid)
        if existing is not None:
            if existing.parent == parent_uuid and existing.chunks == chunks:
                return
            raise BadRemoteStateError(f"transaction {tx_uuid} already recorded differently")
        if parent_uuid != EMPTY_UUID and parent_uuid not in self._headers:
            raise BadRemoteStateError(f"unknown parent {parent_uuid} for {tx_uuid}")
        tip = self._order[-1] if self._order else EMPTY_UUID
        if parent_uuid != tip:
            raise BadRemoteStateError(f"parent {parent_uuid} is not the latest transaction {tip}")
        missing = [c for c in chunks if c not in self._chunks]
        if missing:
            raise BadRemoteStateError(f"transaction {tx_uuid} references missing chunk {missing[0]}")

        self._headers[tx_uuid] = TransactionHeader(
            id=tx_uuid, parent=parent_uuid, chunks=chunks, seq=self._next_seq
        )
        self._order.append(tx_uuid)
        self._next_seq += 1

    def put_chunk(self, chunk_uuid: UUID, payload: TxPart) -> None:
        content = canonical_json(payload.to_dict())
        existing = self._chunks.get(chunk_uuid)
        if existing is not None and existing != content:
            raise DuplicateMetadataError(f"chunk {chunk_uuid}")
        self._chunks[chunk_uuid] = content

    # === Inspection ===

    def get_chunk(self, chunk_uuid: UUID) -> TxPart:
        """Return a stored chunk."""
        content = self._chunks.get(chunk_uuid)
        if content is None:
            raise BadRemoteStateError(f"missing chunk {chunk_uuid}")
        return TxPart.from_dict(json.loads(content))

    def get_transaction_header(self, tx_uuid: UUID) -> TransactionHeader:
        """Return a stored transaction header."""
        header = self._headers.get(tx_uuid)
        if header is None:
            raise BadRemoteStateError(f"unknown transaction {tx_uuid}")
        return header

    @property
    def chunk_count(self) -> int:
        """Number of distinct chunks stored."""
        return len(self._chunks)
