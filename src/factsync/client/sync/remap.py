"""Per-transaction identifier remapping.

A TempIdMap lives for the application of exactly one remote transaction.
It is never shared across transactions or sync passes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Protocol

from factsync.core.errors import TxIncorrectlyMappedError
from factsync.core.types import EntityId, TxPart, is_tempid, tempid_ref


class IdAllocator(Protocol):
    """Source of stable identifiers."""

    def allocate_stable_id(self) -> int:
        """Allocate a new stable identifier."""
        ...


class TempIdMap:
    """Mapping from temporary identifiers to stable identifiers."""

    def __init__(self, allocator: IdAllocator) -> None:
        self._allocator = allocator
        self._table: dict[EntityId, int] = {}

    @property
    def mappings(self) -> Mapping[EntityId, int]:
        """Read-only view of the table."""
        return MappingProxyType(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def bind(self, tempid: EntityId, stable_id: int) -> int:
        """Record a known binding.

        Raises:
            TxIncorrectlyMappedError: If ``tempid`` is already bound elsewhere.
        """
        current = self._table.get(tempid)
        if current is not None and current != stable_id:
            raise TxIncorrectlyMappedError(2, f"{tempid!r} -> {current} and {stable_id}")
        self._table[tempid] = stable_id
        return stable_id

    def resolve(self, tempid: EntityId) -> int:
        """Stable id for ``tempid``, allocated on first sight."""
        stable_id = self._table.get(tempid)
        if stable_id is None:
            stable_id = self.bind(tempid, self._allocator.allocate_stable_id())
        return stable_id

    def _resolve_entity(self, value: EntityId) -> int:
        if value in self._table or is_tempid(value):
            return self.resolve(value)
        return value  # type: ignore[return-value]

    def _resolve_value(self, value: Any) -> Any:
        ref = tempid_ref(value)
        if ref is not None:
            return self.resolve(ref)
        return value

    def resolve_part(self, part: TxPart) -> TxPart:
        """Replace every temporary identifier in a part.

        The transaction entity must already be bound.
        """
        if part.tx not in self._table:
            raise TxIncorrectlyMappedError(0, f"tx {part.tx!r}")
        return replace(
            part,
            e=self._resolve_entity(part.e),
            v=self._resolve_value(part.v),
            tx=self._table[part.tx],
        )
