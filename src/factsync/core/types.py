"""Wire model for the transaction log protocol.

This module defines:
- TxPart: a single fact, stored remotely as one chunk
- Tx: a transaction header hydrated with its parts
- TransactionHeader / TransactionPage: server response documents
- Content addressing helpers (canonical_json, chunk_uuid)

Temporary identifiers:
    A string entity (``e``) is a temporary identifier scoped to the
    transaction that carries it. Values may reference one with
    ``{"tempid": "<name>"}``. Integers are stable identifiers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid5

from factsync.core.errors import SerializationError

# Head of an empty log, and parent of the first transaction
EMPTY_UUID = UUID(int=0)

# Attribute of the wall-clock metadata datom carried by every transaction
TX_INSTANT = ":db/txInstant"

# Namespace for content-addressed chunk UUIDs
CHUNK_NAMESPACE = UUID("5b8a8b0e-3f7c-4b1e-9f0d-2c6e1a4d7f93")

EntityId = int | str


def canonical_json(obj: Any) -> str:
    """Serialize to canonical JSON (sorted keys, no whitespace)."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def is_tempid(value: Any) -> bool:
    """Check whether an entity position holds a temporary identifier."""
    return isinstance(value, str)


def tempid_ref(value: Any) -> str | None:
    """Return the tempid named by a ``{"tempid": ...}`` value, if any."""
    if isinstance(value, dict) and len(value) == 1:
        name = value.get("tempid")
        if isinstance(name, str):
            return name
    return None


def parse_uuid(value: Any, what: str) -> UUID:
    """Parse a canonical textual UUID from a wire document."""
    if not isinstance(value, str):
        raise SerializationError(f"{what}: expected UUID string, got {value!r}")
    try:
        return UUID(value)
    except ValueError as e:
        raise SerializationError(f"{what}: invalid UUID {value!r}") from e


@dataclass(frozen=True)
class TxPart:
    """A single fact: entity, attribute, value, transaction, operation.

    Attributes:
        e: Entity (stable int or tempid string).
        a: Attribute keyword, e.g. ":person/name".
        v: Any JSON value, or a tempid reference.
        tx: Transaction entity the fact belongs to.
        added: True for an assertion, False for a retraction.
    """

    e: EntityId
    a: str
    v: Any
    tx: EntityId
    added: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON chunk payload."""
        return {"e": self.e, "a": self.a, "v": self.v, "tx": self.tx, "added": self.added}

    @classmethod
    def from_dict(cls, data: Any) -> TxPart:
        """Create from a chunk payload.

        Raises:
            SerializationError: If the document is not a valid part.
        """
        if not isinstance(data, dict):
            raise SerializationError(f"chunk payload must be an object, got {type(data).__name__}")
        missing = [key for key in ("e", "a", "v", "tx", "added") if key not in data]
        if missing:
            raise SerializationError(f"chunk payload missing fields: {', '.join(missing)}")
        for key in ("e", "tx"):
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int | str):
                raise SerializationError(f"chunk field {key!r} must be int or str")
        if not isinstance(data["a"], str):
            raise SerializationError("chunk field 'a' must be a string")
        if not isinstance(data["added"], bool):
            raise SerializationError("chunk field 'added' must be a boolean")
        return cls(e=data["e"], a=data["a"], v=data["v"], tx=data["tx"], added=data["added"])

    @property
    def is_tx_instant(self) -> bool:
        """True for the transaction's wall-clock metadata datom."""
        return self.a == TX_INSTANT and self.e == self.tx


def chunk_uuid(part: TxPart) -> UUID:
    """Content address of a part.

    Identical parts always map to the same UUID, so shared facts are
    uploaded once and the UUID never names two payloads.
    """
    return uuid5(CHUNK_NAMESPACE, canonical_json(part.to_dict()))


@dataclass
class Tx:
    """A transaction header hydrated with its ordered parts."""

    uuid: UUID
    parent: UUID
    chunks: list[UUID] = field(default_factory=list)
    parts: list[TxPart] = field(default_factory=list)
    seq: int | None = None


@dataclass
class TransactionHeader:
    """Transaction header as served by ``GET /transactions/{uuid}``."""

    id: UUID
    parent: UUID
    chunks: list[UUID]
    seq: int

    @classmethod
    def from_dict(cls, data: Any) -> TransactionHeader:
        """Create from API response dictionary."""
        if not isinstance(data, dict):
            raise SerializationError("transaction header must be an object")
        try:
            chunks = data["chunks"]
            seq = data["seq"]
            raw_id = data["id"]
            raw_parent = data["parent"]
        except KeyError as e:
            raise SerializationError(f"transaction header missing field {e}") from e
        if not isinstance(chunks, list):
            raise SerializationError("transaction header 'chunks' must be a list")
        if isinstance(seq, bool) or not isinstance(seq, int):
            raise SerializationError("transaction header 'seq' must be an integer")
        return cls(
            id=parse_uuid(raw_id, "id"),
            parent=parse_uuid(raw_parent, "parent"),
            chunks=[parse_uuid(c, "chunks") for c in chunks],
            seq=seq,
        )


@dataclass
class TransactionPage:
    """Result of ``GET /transactions?from=``."""

    limit: int
    from_: UUID
    transactions: list[UUID]

    @classmethod
    def from_dict(cls, data: Any) -> TransactionPage:
        """Create from API response dictionary."""
        if not isinstance(data, dict):
            raise SerializationError("transaction list must be an object")
        try:
            limit = data["limit"]
            raw_from = data["from"]
            transactions = data["transactions"]
        except KeyError as e:
            raise SerializationError(f"transaction list missing field {e}") from e
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise SerializationError("transaction list 'limit' must be an integer")
        if not isinstance(transactions, list):
            raise SerializationError("transaction list 'transactions' must be a list")
        return cls(
            limit=limit,
            from_=parse_uuid(raw_from, "from"),
            transactions=[parse_uuid(t, "transactions") for t in transactions],
        )
