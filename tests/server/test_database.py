"""Tests for the log service database."""

from __future__ import annotations

import uuid

import pytest

from factsync.core.types import EMPTY_UUID
from factsync.server.database import ConflictError, Database, InvalidTransactionError
from tests.helpers import NAMESPACE

OTHER_NAMESPACE = uuid.UUID("9a3b4c5d-0000-4000-8000-000000000001")


def _chunk(db: Database, payload: dict) -> uuid.UUID:
    address = uuid.uuid4()
    db.put_chunk(NAMESPACE, address, payload)
    return address


class TestHead:
    """Tests for head storage."""

    def test_default_empty(self, db: Database) -> None:
        """A namespace without a head reports the empty UUID."""
        assert db.get_head(NAMESPACE) == EMPTY_UUID

    def test_set_head(self, db: Database) -> None:
        """Heads are overwritten and kept per namespace."""
        first, second = uuid.uuid4(), uuid.uuid4()
        db.set_head(NAMESPACE, first)
        db.set_head(NAMESPACE, second)

        assert db.get_head(NAMESPACE) == second
        assert db.get_head(OTHER_NAMESPACE) == EMPTY_UUID


class TestTransactions:
    """Tests for transaction headers."""

    def test_put_and_get(self, db: Database) -> None:
        """Stored headers keep their chunk order."""
        chunks = [_chunk(db, {"n": 2}), _chunk(db, {"n": 1})]
        tx_uuid = uuid.uuid4()

        stored = db.put_transaction(NAMESPACE, tx_uuid, EMPTY_UUID, chunks)

        assert stored.id == tx_uuid
        assert stored.seq >= 1
        fetched = db.get_transaction(NAMESPACE, tx_uuid)
        assert fetched is not None
        assert fetched.chunks == chunks
        assert fetched.parent == EMPTY_UUID
        assert db.get_transaction(OTHER_NAMESPACE, tx_uuid) is None

    def test_list_after(self, db: Database) -> None:
        """Listing returns later transactions in order."""
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        db.put_transaction(NAMESPACE, a, EMPTY_UUID, [])
        db.put_transaction(NAMESPACE, b, a, [])
        db.put_transaction(NAMESPACE, c, b, [])

        assert db.list_transactions(NAMESPACE, EMPTY_UUID, 100) == [a, b, c]
        assert db.list_transactions(NAMESPACE, a, 100) == [b, c]
        assert db.list_transactions(NAMESPACE, EMPTY_UUID, 2) == [a, b]
        assert db.list_transactions(NAMESPACE, c, 100) == []
        assert db.list_transactions(NAMESPACE, uuid.uuid4(), 100) is None

    def test_identical_resubmit(self, db: Database) -> None:
        """An identical header is accepted again without a new entry."""
        tx_uuid = uuid.uuid4()
        first = db.put_transaction(NAMESPACE, tx_uuid, EMPTY_UUID, [])
        second = db.put_transaction(NAMESPACE, tx_uuid, EMPTY_UUID, [])

        assert first.seq == second.seq
        assert db.list_transactions(NAMESPACE, EMPTY_UUID, 100) == [tx_uuid]

    def test_different_resubmit(self, db: Database) -> None:
        """A UUID cannot be recorded twice with different content."""
        tx_uuid = uuid.uuid4()
        db.put_transaction(NAMESPACE, tx_uuid, EMPTY_UUID, [])

        with pytest.raises(ConflictError):
            db.put_transaction(NAMESPACE, tx_uuid, EMPTY_UUID, [_chunk(db, {"n": 1})])

    def test_unknown_parent(self, db: Database) -> None:
        """Parents must already be recorded."""
        with pytest.raises(InvalidTransactionError):
            db.put_transaction(NAMESPACE, uuid.uuid4(), uuid.uuid4(), [])

    def test_fork_rejected(self, db: Database) -> None:
        """Only the latest transaction may be extended."""
        a, b = uuid.uuid4(), uuid.uuid4()
        db.put_transaction(NAMESPACE, a, EMPTY_UUID, [])
        db.put_transaction(NAMESPACE, b, a, [])

        with pytest.raises(ConflictError, match="latest"):
            db.put_transaction(NAMESPACE, uuid.uuid4(), a, [])

    def test_missing_chunk(self, db: Database) -> None:
        """Chunks must be uploaded before the header."""
        with pytest.raises(InvalidTransactionError):
            db.put_transaction(NAMESPACE, uuid.uuid4(), EMPTY_UUID, [uuid.uuid4()])

    def test_repeated_chunk_reference(self, db: Database) -> None:
        """A header may name the same chunk twice."""
        chunk = _chunk(db, {"n": 1})
        stored = db.put_transaction(NAMESPACE, uuid.uuid4(), EMPTY_UUID, [chunk, chunk])

        assert stored.chunks == [chunk, chunk]


class TestChunks:
    """Tests for chunk storage."""

    def test_put_and_get(self, db: Database) -> None:
        """Payloads round-trip as JSON."""
        payload = {"e": 1, "a": ":n", "v": [1, {"x": None}], "tx": 2, "added": True}
        address = _chunk(db, payload)

        assert db.get_chunk(NAMESPACE, address) == payload
        assert db.get_chunk(OTHER_NAMESPACE, address) is None

    def test_write_once(self, db: Database) -> None:
        """Identical content is accepted again; other content is not."""
        address = _chunk(db, {"b": 1, "a": 2})
        db.put_chunk(NAMESPACE, address, {"a": 2, "b": 1})

        with pytest.raises(ConflictError):
            db.put_chunk(NAMESPACE, address, {"a": 3})
