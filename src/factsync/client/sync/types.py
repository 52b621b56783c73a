"""Types for the sync package."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol
from uuid import UUID

from factsync.client.state import LocalTransaction, TxReport
from factsync.core.types import TxPart


class SyncPhase(str, Enum):
    """Phase of a sync pass, in execution order."""

    PULL = "pull"
    APPLY = "apply"
    COLLECT = "collect"
    PUSH = "push"


@dataclass
class SyncResult:
    """Result of a sync pass.

    Attributes:
        pulled: UUIDs of remote transactions applied locally, in order.
        pushed: UUIDs of local transactions pushed, in order.
        local_head: Local head after the pass.
        remote_head: Remote head after the pass.
        chunks_uploaded: Number of chunk writes issued.
    """

    pulled: list[UUID] = field(default_factory=list)
    pushed: list[UUID] = field(default_factory=list)
    local_head: UUID | None = None
    remote_head: UUID | None = None
    chunks_uploaded: int = 0

    @property
    def is_noop(self) -> bool:
        """True if nothing moved in either direction."""
        return not self.pulled and not self.pushed


class LocalLogStore(Protocol):
    """Everything the synchronizer needs from the local store."""

    def apply(self, tx_uuid: UUID, parts: Sequence[TxPart]) -> TxReport | None: ...

    def allocate_stable_id(self) -> int: ...

    def current_local_head(self) -> UUID: ...

    def advance_local_head(self, tx_uuid: UUID) -> None: ...

    def local_transactions_since(self, head: UUID) -> list[LocalTransaction]: ...

    def transaction_parts(self, tx_id: int) -> list[TxPart]: ...

    def assign_uuid(self, seq: int, tx_uuid: UUID) -> None: ...

    def mark_pushed(self, seq: int) -> None: ...

    def set_remote_head(self, tx_uuid: UUID) -> None: ...
