"""Tests for applying remote transactions."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from uuid import UUID

import pytest

from factsync.client.state import LocalStore, TxReport
from factsync.client.sync.apply import TxApplier
from factsync.core.errors import (
    BadRemoteStateError,
    DuplicateMetadataError,
    TxProcessorUnfinishedError,
)
from factsync.core.types import EMPTY_UUID, TX_INSTANT, Tx, TxPart
from tests.helpers import make_parts


class RecordingSink:
    """Store double that remembers what it was asked to apply."""

    def __init__(self, report: TxReport | None) -> None:
        self.report = report
        self.applied: list[tuple[UUID, list[TxPart]]] = []

    def apply(self, tx_uuid: UUID, parts: Sequence[TxPart]) -> TxReport | None:
        self.applied.append((tx_uuid, list(parts)))
        return self.report

    def allocate_stable_id(self) -> int:
        return 1000 + len(self.applied)


def _tx(parts: list[TxPart]) -> Tx:
    return Tx(uuid=uuid.uuid4(), parent=EMPTY_UUID, parts=parts)


class TestTxApplier:
    """Tests for TxApplier."""

    def test_apply_remaps_tempids(self, store: LocalStore) -> None:
        """Tempids in one transaction resolve consistently."""
        tx = _tx(
            make_parts(
                [
                    ("alice", ":person/name", "Alice"),
                    ("bob", ":person/name", "Bob"),
                    ("alice", ":person/friend", {"tempid": "bob"}),
                ]
            )
        )

        report = TxApplier(store, store).apply(tx)

        parts = store.transaction_parts(report.tx_id)
        names = {p.v: p.e for p in parts if p.a == ":person/name"}
        friend = next(p for p in parts if p.a == ":person/friend")
        assert friend.e == names["Alice"]
        assert friend.v == names["Bob"]
        assert store.tx_uuid(report.tx_id) == tx.uuid

    def test_remote_tx_entity_replaced(self, store: LocalStore) -> None:
        """The remote transaction entity is not reused locally."""
        tx = _tx(make_parts([(42, ":n", 1)], tx=77))

        report = TxApplier(store, store).apply(tx)

        assert report.tx_id != 77
        instant = next(p for p in store.transaction_parts(report.tx_id) if p.a == TX_INSTANT)
        assert instant.e == report.tx_id
        assert store.entity(42) == {":n": 1}

    def test_tempids_scoped_per_transaction(self, store: LocalStore) -> None:
        """The same tempid in two transactions names two entities."""
        applier = TxApplier(store, store)
        first = applier.apply(_tx(make_parts([("x", ":n", 1)])))
        second = applier.apply(_tx(make_parts([("x", ":n", 2)])))

        e1 = next(p.e for p in store.transaction_parts(first.tx_id) if p.a == ":n")
        e2 = next(p.e for p in store.transaction_parts(second.tx_id) if p.a == ":n")
        assert e1 != e2

    def test_no_parts(self) -> None:
        """An empty transaction is malformed."""
        sink = RecordingSink(TxReport(tx_id=1))
        with pytest.raises(BadRemoteStateError):
            TxApplier(sink, sink).apply(_tx([]))
        assert sink.applied == []

    def test_missing_instant(self) -> None:
        """Every transaction needs its instant."""
        sink = RecordingSink(TxReport(tx_id=1))
        with pytest.raises(BadRemoteStateError, match="txInstant"):
            TxApplier(sink, sink).apply(_tx(make_parts([("x", ":n", 1)], instant=None)))
        assert sink.applied == []

    def test_duplicate_instant(self) -> None:
        """Two instants are ambiguous."""
        parts = make_parts([("x", ":n", 1)])
        parts.append(TxPart(e="tx", a=TX_INSTANT, v="2030-01-01", tx="tx"))
        sink = RecordingSink(TxReport(tx_id=1))

        with pytest.raises(DuplicateMetadataError) as exc_info:
            TxApplier(sink, sink).apply(_tx(parts))
        assert exc_info.value.key == TX_INSTANT
        assert sink.applied == []

    def test_mixed_tx_entities(self) -> None:
        """All parts must belong to one transaction."""
        parts = make_parts([("x", ":n", 1)])
        parts.append(TxPart(e="y", a=":n", v=2, tx="other"))
        sink = RecordingSink(TxReport(tx_id=1))

        with pytest.raises(BadRemoteStateError):
            TxApplier(sink, sink).apply(_tx(parts))

    def test_unfinished_report(self) -> None:
        """The store must confirm completion."""
        sink = RecordingSink(TxReport(tx_id=1, finished=False))
        with pytest.raises(TxProcessorUnfinishedError):
            TxApplier(sink, sink).apply(_tx(make_parts([("x", ":n", 1)])))

    def test_no_report(self) -> None:
        """A missing report counts as unfinished."""
        sink = RecordingSink(None)
        with pytest.raises(TxProcessorUnfinishedError):
            TxApplier(sink, sink).apply(_tx(make_parts([("x", ":n", 1)])))
