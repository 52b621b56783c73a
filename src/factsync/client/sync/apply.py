"""Application of remote transactions to the local store."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from factsync.client.sync.remap import IdAllocator, TempIdMap
from factsync.core.errors import (
    BadRemoteStateError,
    DuplicateMetadataError,
    TxProcessorUnfinishedError,
)
from factsync.core.types import TX_INSTANT, Tx, TxPart

if TYPE_CHECKING:
    from factsync.client.state import TxReport

logger = logging.getLogger(__name__)


class TxSink(Protocol):
    """Local store side of the apply step."""

    def apply(self, tx_uuid: UUID, parts: Sequence[TxPart]) -> TxReport | None:
        """Atomically apply resolved facts as one local transaction."""
        ...


class TxApplier:
    """Resolves and applies remote transactions one at a time."""

    def __init__(self, store: TxSink, allocator: IdAllocator) -> None:
        self._store = store
        self._allocator = allocator

    def apply(self, tx: Tx) -> TxReport:
        """Apply one remote transaction.

        Args:
            tx: Fully hydrated remote transaction.

        Returns:
            The store's report for the new local transaction.

        Raises:
            BadRemoteStateError: If the parts are not a well-formed transaction.
            DuplicateMetadataError: If the instant datom appears more than once.
            TxIncorrectlyMappedError: If a tempid resolves inconsistently.
            TxProcessorUnfinishedError: If the store does not report completion.
            StoreError: If the store refuses the resolved facts.
        """
        if not tx.parts:
            raise BadRemoteStateError(f"transaction {tx.uuid} has no parts")

        tx_entities = {part.tx for part in tx.parts}
        if len(tx_entities) != 1:
            raise BadRemoteStateError(f"transaction {tx.uuid} mixes tx entities {tx_entities}")
        remote_tx = tx_entities.pop()

        instants = [part for part in tx.parts if part.is_tx_instant]
        if len(instants) > 1:
            raise DuplicateMetadataError(TX_INSTANT)
        if not instants:
            raise BadRemoteStateError(f"transaction {tx.uuid} has no {TX_INSTANT}")

        tempids = TempIdMap(self._allocator)
        tempids.bind(remote_tx, self._allocator.allocate_stable_id())
        resolved = [tempids.resolve_part(part) for part in tx.parts]
        logger.debug(f"Resolved {len(tempids)} identifiers for {tx.uuid}")

        report = self._store.apply(tx.uuid, resolved)
        if report is None or not report.finished:
            raise TxProcessorUnfinishedError()
        return report
