"""Local fact store used by the synchronizer.

This module provides:
- LocalStore: SQLite-backed datoms, transactions and sync state
- LocalTransaction: a transaction authored on this machine
- TxReport: outcome of applying or authoring a transaction

Architecture:
    Every transaction has a local ``seq`` (authoring/apply order) and a
    transaction entity id. Its UUID is known once it has been pulled
    from, or assigned for pushing to, the remote log. The local head is
    the UUID of the last transaction known to be on the remote chain.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from factsync.core.errors import SerializationError, StoreError
from factsync.core.types import EMPTY_UUID, TX_INSTANT, TxPart, is_tempid, tempid_ref

logger = logging.getLogger(__name__)

LOCAL_HEAD_KEY = "local_head"
REMOTE_HEAD_KEY = "remote_head"

SQLITE_MIN_INT = -(2**63)
SQLITE_MAX_INT = 2**63 - 1


@dataclass
class TxReport:
    """Outcome of a local transaction.

    Attributes:
        tx_id: Transaction entity id.
        tx_uuid: Transaction UUID, if it has one.
        tempids: Tempids resolved while authoring.
        finished: True once the transaction is durably committed.
    """

    tx_id: int
    tx_uuid: UUID | None = None
    tempids: dict[str, int] = field(default_factory=dict)
    finished: bool = True


@dataclass
class LocalTransaction:
    """A locally authored transaction waiting to be pushed."""

    seq: int
    tx_id: int
    uuid: UUID | None
    instant: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> LocalTransaction:
        """Create LocalTransaction from database row."""
        return cls(
            seq=row["seq"],
            tx_id=row["tx_id"],
            uuid=UUID(row["uuid"]) if row["uuid"] else None,
            instant=row["instant"],
        )


def _now_instant() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


def _fact_to_part(fact: Mapping[str, Any] | Sequence[Any], tx_id: int) -> TxPart:
    """Validate an authored fact with the same rules as a pulled chunk."""
    if isinstance(fact, Mapping):
        data = {key: fact[key] for key in ("e", "a", "v") if key in fact}
        data["added"] = fact.get("added", True)
    elif isinstance(fact, Sequence) and not isinstance(fact, str) and 3 <= len(fact) <= 4:
        data = {"e": fact[0], "a": fact[1], "v": fact[2]}
        data["added"] = fact[3] if len(fact) == 4 else True
    else:
        raise StoreError(f"invalid fact {fact!r}", "expected a mapping or an (e, a, v[, added]) tuple")
    data["tx"] = tx_id
    try:
        return TxPart.from_dict(data)
    except SerializationError as e:
        raise StoreError(f"invalid fact {fact!r}", str(e)) from e


def _check_stable_id(value: int) -> int:
    """Stable ids must fit a signed 64-bit SQLite INTEGER."""
    if not SQLITE_MIN_INT <= value <= SQLITE_MAX_INT:
        raise StoreError(f"entity id {value} out of range", "must fit in 64 bits")
    return value


def _encode_value(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StoreError(f"value {value!r} is not JSON", str(e)) from e


class LocalStore:
    """SQLite-based local fact store.

    Implements the collaborators the synchronizer needs: atomic apply,
    local head tracking, the list of unpushed transactions and stable
    identifier allocation.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize local store database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Explicit BEGIN/COMMIT
        )
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS transactions (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                tx_id INTEGER NOT NULL UNIQUE,
                uuid TEXT UNIQUE,
                origin TEXT NOT NULL,
                instant TEXT NOT NULL,
                pushed INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS datoms (
                e INTEGER NOT NULL,
                a TEXT NOT NULL,
                v TEXT NOT NULL,
                tx INTEGER NOT NULL REFERENCES transactions(tx_id),
                added INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_datoms_tx ON datoms(tx);
            CREATE INDEX IF NOT EXISTS idx_datoms_e ON datoms(e);

            -- Key-value sync state
            CREATE TABLE IF NOT EXISTS sync_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements atomically, mapping sqlite errors to StoreError."""
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError("could not start local transaction", str(e)) from e
            try:
                yield self._conn
            except (sqlite3.Error, OverflowError) as e:
                self._conn.execute("ROLLBACK")
                raise StoreError("local transaction failed", str(e)) from e
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except (sqlite3.Error, OverflowError) as e:
                raise StoreError("local query failed", str(e)) from e

    # === Identifier allocation ===

    def allocate_stable_id(self) -> int:
        """Allocate a globally unique stable identifier.

        Random 63-bit values, so independent stores never hand out the
        same id for different entities.
        """
        return uuid.uuid4().int >> 65

    # === Authoring ===

    def transact(
        self,
        facts: Iterable[Mapping[str, Any] | Sequence[Any]],
        instant: str | None = None,
    ) -> TxReport:
        """Author a local transaction.

        Args:
            facts: Facts as ``{"e", "a", "v", "added"}`` mappings or
                ``(e, a, v[, added])`` tuples. String entities and
                ``{"tempid": ...}`` values are tempids.
            instant: Wall-clock instant; defaults to now.

        Returns:
            TxReport with the new transaction id and resolved tempids.

        Raises:
            StoreError: If a fact is malformed, an id does not fit in 64 bits,
                or a value is not JSON. Nothing is written in that case.
        """
        tempids: dict[str, int] = {}

        def resolve(value: Any) -> Any:
            if value not in tempids:
                tempids[value] = self.allocate_stable_id()
            return tempids[value]

        tx_id = self.allocate_stable_id()
        instant = instant or _now_instant()
        rows: list[tuple[int, str, str, int, int]] = []
        for part in (_fact_to_part(fact, tx_id) for fact in facts):
            e = resolve(part.e) if is_tempid(part.e) else _check_stable_id(part.e)
            v = part.v
            ref = tempid_ref(v)
            if ref is not None:
                v = resolve(ref)
            rows.append((e, part.a, _encode_value(v), tx_id, int(part.added)))
        rows.append((tx_id, TX_INSTANT, _encode_value(instant), tx_id, 1))

        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO transactions (tx_id, uuid, origin, instant) VALUES (?, NULL, 'local', ?)",
                (tx_id, instant),
            )
            conn.executemany(
                "INSERT INTO datoms (e, a, v, tx, added) VALUES (?, ?, ?, ?, ?)", rows
            )
            seq = cursor.lastrowid

        logger.debug(f"Authored local transaction seq={seq} tx={tx_id} ({len(rows)} datoms)")
        return TxReport(tx_id=tx_id, tempids=tempids)

    # === Applying remote transactions ===

    def apply(self, tx_uuid: UUID, parts: Sequence[TxPart]) -> TxReport:
        """Apply resolved facts of a remote transaction atomically.

        Every part must carry the same integer ``tx`` and integer ``e``.
        Re-applying a UUID already stored returns its existing report.

        Raises:
            StoreError: If the facts are unresolved or the write fails.
        """
        existing = self._query(
            "SELECT tx_id FROM transactions WHERE uuid = ?", (str(tx_uuid),)
        )
        if existing:
            logger.debug(f"Transaction {tx_uuid} already applied, skipping")
            return TxReport(tx_id=existing[0]["tx_id"], tx_uuid=tx_uuid)

        if not parts:
            raise StoreError(f"transaction {tx_uuid} has no facts")
        tx_ids = {part.tx for part in parts}
        if len(tx_ids) != 1:
            raise StoreError(f"transaction {tx_uuid} spans several tx entities: {sorted(map(str, tx_ids))}")
        tx_id = tx_ids.pop()
        if not isinstance(tx_id, int):
            raise StoreError(f"transaction {tx_uuid} has unresolved tx entity {tx_id!r}")
        _check_stable_id(tx_id)

        instant = None
        rows: list[tuple[int, str, str, int, int]] = []
        for part in parts:
            if not isinstance(part.e, int):
                raise StoreError(f"transaction {tx_uuid} has unresolved entity {part.e!r}")
            _check_stable_id(part.e)
            if part.is_tx_instant:
                instant = part.v
            rows.append((part.e, part.a, _encode_value(part.v), tx_id, int(part.added)))

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO transactions (tx_id, uuid, origin, instant, pushed)
                VALUES (?, ?, 'remote', ?, 1)
                """,
                (tx_id, str(tx_uuid), str(instant) if instant is not None else _now_instant()),
            )
            conn.executemany(
                "INSERT INTO datoms (e, a, v, tx, added) VALUES (?, ?, ?, ?, ?)", rows
            )

        return TxReport(tx_id=tx_id, tx_uuid=tx_uuid)

    # === Heads ===

    def current_local_head(self) -> UUID:
        """UUID of the last transaction known to be on the remote chain."""
        value = self.get_state(LOCAL_HEAD_KEY)
        return UUID(value) if value else EMPTY_UUID

    def advance_local_head(self, tx_uuid: UUID) -> None:
        """Move the local head forward."""
        self.set_state(LOCAL_HEAD_KEY, str(tx_uuid))

    def get_remote_head(self) -> UUID | None:
        """Remote head observed at the end of the last sync pass."""
        value = self.get_state(REMOTE_HEAD_KEY)
        return UUID(value) if value else None

    def set_remote_head(self, tx_uuid: UUID) -> None:
        """Remember the remote head observed by a sync pass."""
        self.set_state(REMOTE_HEAD_KEY, str(tx_uuid))

    # === Pushing ===

    def local_transactions_since(self, head: UUID) -> list[LocalTransaction]:
        """Locally authored transactions not yet pushed, oldest first.

        Args:
            head: Current local head; must be known to this store.

        Raises:
            StoreError: If ``head`` is neither empty nor a known transaction.
        """
        if head != EMPTY_UUID and not self._query(
            "SELECT 1 FROM transactions WHERE uuid = ?", (str(head),)
        ):
            raise StoreError(f"unknown local head {head}")
        rows = self._query(
            "SELECT * FROM transactions WHERE origin = 'local' AND pushed = 0 ORDER BY seq"
        )
        return [LocalTransaction.from_row(row) for row in rows]

    def transaction_parts(self, tx_id: int) -> list[TxPart]:
        """Facts of one transaction, in insertion order."""
        rows = self._query(
            "SELECT e, a, v, tx, added FROM datoms WHERE tx = ? ORDER BY rowid", (tx_id,)
        )
        return [
            TxPart(e=row["e"], a=row["a"], v=json.loads(row["v"]), tx=row["tx"], added=bool(row["added"]))
            for row in rows
        ]

    def assign_uuid(self, seq: int, tx_uuid: UUID) -> None:
        """Persist the UUID chosen for a local transaction before pushing it."""
        with self._transaction() as conn:
            conn.execute("UPDATE transactions SET uuid = ? WHERE seq = ?", (str(tx_uuid), seq))

    def mark_pushed(self, seq: int) -> None:
        """Record that a local transaction is on the remote chain."""
        with self._transaction() as conn:
            conn.execute("UPDATE transactions SET pushed = 1 WHERE seq = ?", (seq,))

    def tx_uuid(self, tx_id: int) -> UUID | None:
        """UUID of a transaction entity, if it has one."""
        rows = self._query("SELECT uuid FROM transactions WHERE tx_id = ?", (tx_id,))
        if not rows or rows[0]["uuid"] is None:
            return None
        return UUID(rows[0]["uuid"])

    # === Reading ===

    def datoms(self, e: int | None = None) -> list[TxPart]:
        """All datoms, optionally for one entity, in write order."""
        if e is None:
            rows = self._query("SELECT e, a, v, tx, added FROM datoms ORDER BY rowid")
        else:
            rows = self._query(
                "SELECT e, a, v, tx, added FROM datoms WHERE e = ? ORDER BY rowid", (e,)
            )
        return [
            TxPart(e=row["e"], a=row["a"], v=json.loads(row["v"]), tx=row["tx"], added=bool(row["added"]))
            for row in rows
        ]

    def entity(self, e: int) -> dict[str, Any]:
        """Current attribute values of an entity (retractions applied)."""
        current: dict[str, Any] = {}
        for datom in self.datoms(e):
            if datom.added:
                current[datom.a] = datom.v
            elif current.get(datom.a) == datom.v:
                del current[datom.a]
        return current

    def transaction_count(self) -> int:
        """Number of transactions stored locally."""
        return self._query("SELECT COUNT(*) AS n FROM transactions")[0]["n"]

    # === Sync state ===

    def get_state(self, key: str) -> str | None:
        """Get a sync state value."""
        rows = self._query("SELECT value FROM sync_state WHERE key = ?", (key,))
        return rows[0]["value"] if rows else None

    def set_state(self, key: str, value: str) -> None:
        """Set a sync state value."""
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
                (key, value),
            )
