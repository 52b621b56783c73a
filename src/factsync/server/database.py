"""Server database using SQLAlchemy with SQLite.

This module provides:
- Head storage per namespace
- Transaction headers with server-assigned sequence numbers
- Write-once chunk storage

The log of a namespace is a single chain: a new header must name the
latest accepted transaction (or the empty UUID) as its parent.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from factsync.core.types import EMPTY_UUID, canonical_json
from factsync.server.models import Base, ChunkRecord, Head, TransactionRecord

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class ConflictError(Exception):
    """Raised when a write contradicts data already stored."""


class InvalidTransactionError(Exception):
    """Raised when a header references unknown data."""


@dataclass
class StoredTransaction:
    """Transaction header as stored."""

    id: UUID
    parent: UUID
    chunks: list[UUID]
    seq: int

    @classmethod
    def from_record(cls, record: TransactionRecord) -> StoredTransaction:
        """Create from ORM record."""
        return cls(
            id=UUID(record.uuid),
            parent=UUID(record.parent),
            chunks=[UUID(c) for c in json.loads(record.chunks)],
            seq=record.seq,
        )


class Database:
    """SQLAlchemy database for transaction logs.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        Base.metadata.create_all(self._engine)

    @property
    def location(self) -> str:
        """Human-readable database location."""
        return str(self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Head ===

    def get_head(self, namespace: UUID) -> UUID:
        """Get the head of a namespace (empty UUID if never set)."""
        with self._session() as session:
            record = session.get(Head, str(namespace))
            return UUID(record.head) if record else EMPTY_UUID

    def set_head(self, namespace: UUID, head: UUID) -> None:
        """Overwrite the head of a namespace."""
        with self._session() as session:
            record = session.get(Head, str(namespace))
            if record is None:
                session.add(Head(namespace=str(namespace), head=str(head)))
            else:
                record.head = str(head)
            session.commit()
        logger.info(f"[{namespace}] head -> {head}")

    # === Transactions ===

    def _get_record(
        self, session: Session, namespace: UUID, tx_uuid: UUID
    ) -> TransactionRecord | None:
        stmt = select(TransactionRecord).where(
            TransactionRecord.namespace == str(namespace),
            TransactionRecord.uuid == str(tx_uuid),
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_transaction(self, namespace: UUID, tx_uuid: UUID) -> StoredTransaction | None:
        """Get a transaction header.

        Returns:
            StoredTransaction if found, None otherwise.
        """
        with self._session() as session:
            record = self._get_record(session, namespace, tx_uuid)
            return StoredTransaction.from_record(record) if record else None

    def list_transactions(
        self, namespace: UUID, from_uuid: UUID, limit: int
    ) -> list[UUID] | None:
        """List transaction UUIDs accepted after ``from_uuid``.

        Returns:
            UUIDs in ascending sequence order, or None if ``from_uuid``
            is not a transaction of this namespace.
        """
        with self._session() as session:
            after_seq = 0
            if from_uuid != EMPTY_UUID:
                record = self._get_record(session, namespace, from_uuid)
                if record is None:
                    return None
                after_seq = record.seq
            stmt = (
                select(TransactionRecord.uuid)
                .where(
                    TransactionRecord.namespace == str(namespace),
                    TransactionRecord.seq > after_seq,
                )
                .order_by(TransactionRecord.seq)
                .limit(limit)
            )
            return [UUID(value) for value in session.execute(stmt).scalars().all()]

    def put_transaction(
        self,
        namespace: UUID,
        tx_uuid: UUID,
        parent: UUID,
        chunks: list[UUID],
    ) -> StoredTransaction:
        """Record a transaction header.

        Re-submitting an identical header returns the stored one.

        Raises:
            ConflictError: If the UUID is recorded differently, or the
                parent is not the latest transaction.
            InvalidTransactionError: If the parent or a chunk is unknown.
        """
        ns = str(namespace)
        with self._session() as session:
            existing = self._get_record(session, namespace, tx_uuid)
            if existing is not None:
                stored = StoredTransaction.from_record(existing)
                if stored.parent == parent and stored.chunks == chunks:
                    return stored
                raise ConflictError(f"Transaction {tx_uuid} already recorded with different content")

            if parent != EMPTY_UUID and self._get_record(session, namespace, parent) is None:
                raise InvalidTransactionError(f"Unknown parent transaction: {parent}")

            latest = session.execute(
                select(TransactionRecord.uuid)
                .where(TransactionRecord.namespace == ns)
                .order_by(TransactionRecord.seq.desc())
                .limit(1)
            ).scalar_one_or_none()
            tip = UUID(latest) if latest else EMPTY_UUID
            if parent != tip:
                raise ConflictError(f"Parent {parent} is not the latest transaction {tip}")

            wanted = {str(c) for c in chunks}
            if wanted:
                found = session.execute(
                    select(func.count())
                    .select_from(ChunkRecord)
                    .where(ChunkRecord.namespace == ns, ChunkRecord.uuid.in_(wanted))
                ).scalar_one()
                if found != len(wanted):
                    raise InvalidTransactionError(f"Transaction {tx_uuid} references missing chunks")

            record = TransactionRecord(
                namespace=ns,
                uuid=str(tx_uuid),
                parent=str(parent),
                chunks=json.dumps([str(c) for c in chunks]),
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            logger.info(f"[{namespace}] accepted transaction {tx_uuid} seq={record.seq}")
            return StoredTransaction.from_record(record)

    # === Chunks ===

    def get_chunk(self, namespace: UUID, chunk_uuid: UUID) -> Any | None:
        """Get a chunk payload, or None if unknown."""
        with self._session() as session:
            record = session.get(ChunkRecord, (str(namespace), str(chunk_uuid)))
            return json.loads(record.payload) if record else None

    def put_chunk(self, namespace: UUID, chunk_uuid: UUID, payload: Any) -> None:
        """Store a chunk payload.

        Raises:
            ConflictError: If the UUID already holds a different payload.
        """
        content = canonical_json(payload)
        with self._session() as session:
            record = session.get(ChunkRecord, (str(namespace), str(chunk_uuid)))
            if record is not None:
                if record.payload != content:
                    raise ConflictError(f"Chunk {chunk_uuid} already stored with different content")
                return
            session.add(ChunkRecord(namespace=str(namespace), uuid=str(chunk_uuid), payload=content))
            session.commit()
