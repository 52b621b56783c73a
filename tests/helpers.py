"""Helpers for building transactions in tests."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from factsync.core.log import TransactionLog
from factsync.core.types import TX_INSTANT, TxPart, chunk_uuid

NAMESPACE = UUID("316ea470-ce35-4adf-9c61-e0de6e289c59")

DEFAULT_INSTANT = "2025-01-01T10:00:00.000+00:00"


def make_parts(
    facts: Iterable[tuple[Any, str, Any] | tuple[Any, str, Any, bool]],
    tx: int | str = "tx",
    instant: str | None = DEFAULT_INSTANT,
) -> list[TxPart]:
    """Build parts for one transaction, ending with its instant datom."""
    parts = []
    for fact in facts:
        e, a, v, *rest = fact
        parts.append(TxPart(e=e, a=a, v=v, tx=tx, added=rest[0] if rest else True))
    if instant is not None:
        parts.append(TxPart(e=tx, a=TX_INSTANT, v=instant, tx=tx))
    return parts


def publish(
    log: TransactionLog,
    parts: list[TxPart],
    parent: UUID,
    tx_uuid: UUID | None = None,
    move_head: bool = True,
) -> UUID:
    """Write a transaction the way a well-behaved pusher does."""
    tx_uuid = tx_uuid or uuid.uuid4()
    chunks = [chunk_uuid(part) for part in parts]
    for chunk, part in zip(chunks, parts, strict=True):
        log.put_chunk(chunk, part)
    log.put_transaction(tx_uuid, parent, chunks)
    if move_head:
        log.set_head(tx_uuid)
    return tx_uuid
