"""Tests for the wire model."""

from __future__ import annotations

from uuid import UUID

import pytest

from factsync.core.errors import SerializationError
from factsync.core.types import (
    EMPTY_UUID,
    TX_INSTANT,
    TransactionHeader,
    TransactionPage,
    TxPart,
    canonical_json,
    chunk_uuid,
    tempid_ref,
)

TX_A = "5f0d3c2e-0e51-4c1f-a6d4-0a1e8e0b7d11"
CHUNK_1 = "9b1e4b9c-5a5b-4d8e-8a53-6f1f0d2c3b41"


class TestTxPart:
    """Tests for TxPart."""

    def test_from_dict(self) -> None:
        """Should create a part from a chunk payload."""
        part = TxPart.from_dict({"e": 65536, "a": ":person/name", "v": "Alice", "tx": 7, "added": True})

        assert part.e == 65536
        assert part.a == ":person/name"
        assert part.v == "Alice"
        assert part.tx == 7
        assert part.added is True

    def test_from_dict_missing_fields(self) -> None:
        """Missing fields are a serialization error."""
        with pytest.raises(SerializationError, match="added"):
            TxPart.from_dict({"e": 1, "a": ":a", "v": 1, "tx": 2})

    def test_from_dict_rejects_non_object(self) -> None:
        """A chunk payload must be a JSON object."""
        with pytest.raises(SerializationError):
            TxPart.from_dict(["e", "a"])

    def test_from_dict_rejects_bool_entity(self) -> None:
        """Booleans are not entity ids even though bool subclasses int."""
        with pytest.raises(SerializationError):
            TxPart.from_dict({"e": True, "a": ":a", "v": 1, "tx": 2, "added": True})

    def test_to_dict(self) -> None:
        """Should produce the chunk payload."""
        part = TxPart(e="alice", a=":person/friend", v={"tempid": "bob"}, tx="tx", added=False)
        assert part.to_dict() == {
            "e": "alice",
            "a": ":person/friend",
            "v": {"tempid": "bob"},
            "tx": "tx",
            "added": False,
        }

    def test_is_tx_instant(self) -> None:
        """Only the instant datom about the transaction itself counts."""
        assert TxPart(e="tx", a=TX_INSTANT, v="2025", tx="tx").is_tx_instant
        assert not TxPart(e="other", a=TX_INSTANT, v="2025", tx="tx").is_tx_instant
        assert not TxPart(e="tx", a=":doc", v="2025", tx="tx").is_tx_instant


class TestContentAddressing:
    """Tests for chunk_uuid and canonical_json."""

    def test_identical_parts_share_uuid(self) -> None:
        """The same fact always has the same address."""
        a = TxPart(e=1, a=":x", v={"b": 1, "a": 2}, tx=9)
        b = TxPart(e=1, a=":x", v={"a": 2, "b": 1}, tx=9)
        assert chunk_uuid(a) == chunk_uuid(b)

    def test_different_parts_differ(self) -> None:
        """Changing any field changes the address."""
        base = TxPart(e=1, a=":x", v=1, tx=9)
        assert chunk_uuid(base) != chunk_uuid(TxPart(e=1, a=":x", v=2, tx=9))
        assert chunk_uuid(base) != chunk_uuid(TxPart(e=1, a=":x", v=1, tx=9, added=False))

    def test_canonical_json_sorted_compact(self) -> None:
        """Keys are sorted and whitespace removed."""
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_tempid_ref(self) -> None:
        """Only single-key tempid objects are references."""
        assert tempid_ref({"tempid": "bob"}) == "bob"
        assert tempid_ref({"tempid": "bob", "x": 1}) is None
        assert tempid_ref("bob") is None


class TestTransactionHeader:
    """Tests for TransactionHeader."""

    def test_from_dict(self) -> None:
        """Should parse a header response."""
        header = TransactionHeader.from_dict(
            {"parent": str(EMPTY_UUID), "chunks": [CHUNK_1], "id": TX_A, "seq": 3}
        )
        assert header.id == UUID(TX_A)
        assert header.parent == EMPTY_UUID
        assert header.chunks == [UUID(CHUNK_1)]
        assert header.seq == 3

    def test_invalid_uuid(self) -> None:
        """Non-UUID strings are rejected."""
        with pytest.raises(SerializationError, match="parent"):
            TransactionHeader.from_dict({"parent": "nope", "chunks": [], "id": TX_A, "seq": 1})

    def test_missing_seq(self) -> None:
        """Missing fields are rejected."""
        with pytest.raises(SerializationError):
            TransactionHeader.from_dict({"parent": str(EMPTY_UUID), "chunks": [], "id": TX_A})


class TestTransactionPage:
    """Tests for TransactionPage."""

    def test_from_dict(self) -> None:
        """Should parse a transaction list response."""
        page = TransactionPage.from_dict(
            {"limit": 100, "from": str(EMPTY_UUID), "transactions": [TX_A]}
        )
        assert page.limit == 100
        assert page.from_ == EMPTY_UUID
        assert page.transactions == [UUID(TX_A)]

    def test_transactions_must_be_list(self) -> None:
        """A malformed list is a serialization error."""
        with pytest.raises(SerializationError):
            TransactionPage.from_dict({"limit": 1, "from": str(EMPTY_UUID), "transactions": TX_A})
