"""Sync engine reconciling the local store with a transaction log.

This module provides:
- Synchronizer: runs pull, apply, collect and push as one pass

The four phases run strictly in order. The first error aborts the pass;
a failure while applying never reaches the push phase. Afterwards the
local head names the last transaction fully applied or pushed and the
remote head the last transaction fully pushed.

Interrupted pushes:
    A pass may die after a transaction header was recorded remotely but
    before it was marked pushed locally. The next pull then returns that
    transaction. It is not applied again; the push phase re-uploads its
    chunks and re-submits the identical header, both accepted by the log.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from uuid import UUID

from factsync.client.state import LocalTransaction
from factsync.client.sync.apply import TxApplier
from factsync.client.sync.types import LocalLogStore, SyncPhase, SyncResult
from factsync.core.errors import FactSyncError, UnexpectedStateError
from factsync.core.log import TransactionLog, check_causal_chain
from factsync.core.types import Tx, chunk_uuid

logger = logging.getLogger(__name__)


@dataclass
class _Pass:
    """Bookkeeping for one sync pass, discarded afterwards."""

    start_head: UUID
    result: SyncResult = field(default_factory=SyncResult)
    # Own transactions seen again on pull, with the parent the log recorded
    confirmed: dict[UUID, UUID] = field(default_factory=dict)


class Synchronizer:
    """Coordinates synchronization between the local store and a log."""

    def __init__(self, store: LocalLogStore, remote: TransactionLog) -> None:
        """Initialize the synchronizer.

        Args:
            store: Local store (apply, heads, unpushed transactions, ids).
            remote: Transaction log to synchronize with.
        """
        self._store = store
        self._remote = remote
        self._applier = TxApplier(store, store)
        self._phase: SyncPhase | None = None

    @property
    def phase(self) -> SyncPhase | None:
        """Phase currently running (or where the last pass stopped)."""
        return self._phase

    def sync(self) -> SyncResult:
        """Run one full sync pass.

        Returns:
            SyncResult with pulled and pushed UUIDs and final heads.

        Raises:
            FactSyncError: First error encountered; nothing is retried.
        """
        self._phase = None
        try:
            self._phase = SyncPhase.PULL
            state = _Pass(start_head=self._store.current_local_head())
            incoming = self._pull(state.start_head)

            self._phase = SyncPhase.APPLY
            local_head = self._apply(state, incoming)

            self._phase = SyncPhase.COLLECT
            outgoing = self._store.local_transactions_since(local_head)
            logger.info(f"{len(outgoing)} local transaction(s) to push")

            self._phase = SyncPhase.PUSH
            remote_head = self._push(state, local_head, incoming, outgoing)
        except FactSyncError as e:
            where = self._phase.value if self._phase else "setup"
            logger.error(f"Sync pass failed during {where}: {e}")
            raise

        self._store.set_remote_head(remote_head)
        result = state.result
        result.local_head = self._store.current_local_head()
        result.remote_head = remote_head
        logger.info(
            f"Sync pass complete: pulled {len(result.pulled)}, pushed {len(result.pushed)}, "
            f"head {result.local_head}"
        )
        return result

    # === Pull / apply ===

    def _pull(self, local_head: UUID) -> list[Tx]:
        logger.info(f"Pulling transactions after {local_head}")
        incoming = self._remote.transactions_after(local_head)
        check_causal_chain(local_head, incoming)
        return incoming

    def _apply(self, state: _Pass, incoming: list[Tx]) -> UUID:
        local_head = state.start_head
        if not incoming:
            return local_head

        pending = {
            ltx.uuid
            for ltx in self._store.local_transactions_since(state.start_head)
            if ltx.uuid is not None
        }
        for tx in incoming:
            if tx.uuid in pending:
                logger.info(f"Transaction {tx.uuid} is ours from an interrupted push")
                state.confirmed[tx.uuid] = tx.parent
            else:
                report = self._applier.apply(tx)
                logger.debug(f"Applied {tx.uuid} as local tx {report.tx_id}")
                state.result.pulled.append(tx.uuid)
            self._store.advance_local_head(tx.uuid)
            local_head = tx.uuid
        return local_head

    # === Push ===

    def _push(
        self,
        state: _Pass,
        local_head: UUID,
        incoming: list[Tx],
        outgoing: list[LocalTransaction],
    ) -> UUID:
        remote_head = self._remote.head()
        if remote_head != local_head:
            # A head lagging behind the chain we just pulled is fine and
            # gets advanced below; anything else means another writer.
            known = {state.start_head, *(tx.uuid for tx in incoming)}
            if remote_head not in known:
                raise UnexpectedStateError(
                    f"remote head {remote_head} is not on the pulled chain "
                    f"ending at {local_head}; pull again"
                )

        parent = local_head
        for local_tx in outgoing:
            recorded_parent = state.confirmed.get(local_tx.uuid) if local_tx.uuid else None
            if recorded_parent is not None:
                self._upload(local_tx, local_tx.uuid, recorded_parent, state.result)
                self._store.mark_pushed(local_tx.seq)
                continue
            parent = self._push_one(local_tx, parent, state.result)
            remote_head = parent

        if parent != remote_head:
            self._remote.set_head(parent)
            logger.debug(f"Remote head advanced to {parent}")
        return parent

    def _upload(
        self, local_tx: LocalTransaction, tx_uuid: UUID, parent: UUID, result: SyncResult
    ) -> None:
        """Upload chunks, then the header that names them."""
        parts = self._store.transaction_parts(local_tx.tx_id)
        chunks = [chunk_uuid(part) for part in parts]

        uploaded: set[UUID] = set()
        for chunk, part in zip(chunks, parts, strict=True):
            if chunk in uploaded:
                continue
            self._remote.put_chunk(chunk, part)
            uploaded.add(chunk)
        result.chunks_uploaded += len(uploaded)

        self._remote.put_transaction(tx_uuid, parent, chunks)
        result.pushed.append(tx_uuid)
        logger.info(f"Pushed local tx {local_tx.tx_id} as {tx_uuid} ({len(uploaded)} chunks)")

    def _push_one(self, local_tx: LocalTransaction, parent: UUID, result: SyncResult) -> UUID:
        """Push one local transaction and advance both heads to it."""
        tx_uuid = local_tx.uuid
        if tx_uuid is None:
            tx_uuid = uuid.uuid4()
            self._store.assign_uuid(local_tx.seq, tx_uuid)

        self._upload(local_tx, tx_uuid, parent, result)
        self._remote.set_head(tx_uuid)
        self._store.mark_pushed(local_tx.seq)
        self._store.advance_local_head(tx_uuid)
        return tx_uuid
