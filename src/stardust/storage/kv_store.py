# src/stardust/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.errors import InvalidArgument, StorageUnavailable

logger = logging.getLogger(__name__)

KvKey = tuple[str, ...]

# Key parts are joined with the ASCII unit separator; the next code point (space)
# is the exclusive upper bound of a prefix range scan.
_SEP = "\x1f"
_SEP_END = "\x20"


@dataclass(frozen=True, slots=True)
class KvEntry:
    key: KvKey
    value: Any
    versionstamp: int


@dataclass(frozen=True, slots=True)
class CommitResult:
    ok: bool
    versionstamp: int | None = None


def _encode_key(key: Sequence[str]) -> str:
    if not key:
        raise InvalidArgument("key must have at least one part")
    parts: list[str] = []
    for part in key:
        if not isinstance(part, str) or not part:
            raise InvalidArgument(f"key parts must be non-empty strings: {key!r}")
        if _SEP in part:
            raise InvalidArgument(f"key part contains a reserved character: {part!r}")
        parts.append(part)
    return _SEP.join(parts)


def _decode_key(raw: str) -> KvKey:
    return tuple(raw.split(_SEP))


def _prefix_clause(prefix: Sequence[str]) -> tuple[str, tuple[str, ...]]:
    """SQL condition + params matching every key strictly below `prefix`."""
    if not prefix:
        return "1 = 1", ()
    base = _encode_key(prefix)
    return "key >= ? AND key < ?", (base + _SEP, base + _SEP_END)


@dataclass(slots=True)
class AtomicOperation:
    """
    Staged multi-key write, applied all-or-nothing by `commit()`.

    Checks are evaluated inside the write transaction:
    - check(key, vs): the entry's versionstamp must still equal `vs`
      (None means "the key must not exist"),
    - check_prefix(prefix, vs): no entry under `prefix` was written after `vs`.

    If any check fails nothing is written and `commit()` returns ok=False.
    """

    _store: KvStore
    _checks: list[tuple[KvKey, int | None]] = field(default_factory=list)
    _prefix_checks: list[tuple[KvKey, int]] = field(default_factory=list)
    _mutations: list[tuple[str, KvKey, Any]] = field(default_factory=list)

    def check(self, key: Sequence[str], versionstamp: int | None) -> AtomicOperation:
        self._checks.append((tuple(key), versionstamp))
        return self

    def check_prefix(self, prefix: Sequence[str], versionstamp: int) -> AtomicOperation:
        self._prefix_checks.append((tuple(prefix), int(versionstamp)))
        return self

    def set(self, key: Sequence[str], value: Any) -> AtomicOperation:
        self._mutations.append(("set", tuple(key), value))
        return self

    def delete(self, key: Sequence[str]) -> AtomicOperation:
        self._mutations.append(("delete", tuple(key), None))
        return self

    def commit(self) -> CommitResult:
        return self._store._commit(self._checks, self._prefix_checks, self._mutations)


class KvStore:
    """
    SQLite-backed key/value store with versionstamps and atomic commits.

    Thread-safety:
    - each method opens its own SQLite connection,
    - write transactions use BEGIN IMMEDIATE, so SQLite serializes writers.

    Availability is never cached: if the database cannot be opened at startup,
    schema creation is retried on the next call.
    """

    def __init__(self, db_path: str | Path = "stardust.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._schema_ready = False
        try:
            self._ensure_schema()
        except StorageUnavailable:
            logger.exception("KvStore schema init failed db=%s; will retry on first use", self._db_path)
            return
        logger.info("KvStore ready db=%s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        # autocommit mode: transactions are opened explicitly with BEGIN
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailable(f"cannot open {self._db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"sqlite error on {self._db_path}: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key          TEXT PRIMARY KEY,
                    value        TEXT NOT NULL,
                    versionstamp INTEGER NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_meta (
                    name  TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
                """
            )
            conn.execute("INSERT OR IGNORE INTO kv_meta(name, value) VALUES ('versionstamp', 0)")
        self._schema_ready = True

    def _ready(self) -> None:
        if not self._schema_ready:
            self._ensure_schema()

    @staticmethod
    def _dump_value(value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(f"value is not JSON-serializable: {exc}") from exc

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> KvEntry:
        try:
            value = json.loads(row["value"])
        except ValueError:
            logger.warning("Corrupt value for key=%r; reading as null", row["key"])
            value = None
        return KvEntry(
            key=_decode_key(str(row["key"])),
            value=value,
            versionstamp=int(row["versionstamp"]),
        )

    @staticmethod
    def _current_versionstamp(conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT value FROM kv_meta WHERE name = 'versionstamp'").fetchone()
        return int(row["value"]) if row else 0

    def _checks_pass(
        self,
        conn: sqlite3.Connection,
        checks: list[tuple[KvKey, int | None]],
        prefix_checks: list[tuple[KvKey, int]],
    ) -> bool:
        for key, expected in checks:
            row = conn.execute(
                "SELECT versionstamp FROM kv WHERE key = ?", (_encode_key(key),)
            ).fetchone()
            current = int(row["versionstamp"]) if row else None
            if current != expected:
                logger.debug("Check failed key=%r expected=%s current=%s", key, expected, current)
                return False

        for prefix, seen in prefix_checks:
            where, params = _prefix_clause(prefix)
            row = conn.execute(
                f"SELECT key FROM kv WHERE {where} AND versionstamp > ? LIMIT 1",
                (*params, seen),
            ).fetchone()
            if row is not None:
                logger.debug("Prefix check failed prefix=%r newer key=%r", prefix, row["key"])
                return False
        return True

    def _commit(
        self,
        checks: list[tuple[KvKey, int | None]],
        prefix_checks: list[tuple[KvKey, int]],
        mutations: list[tuple[str, KvKey, Any]],
    ) -> CommitResult:
        # Encode everything before touching the database so bad input never
        # leaves a half-open transaction behind.
        staged = [
            (op, _encode_key(key), self._dump_value(value) if op == "set" else None)
            for op, key, value in mutations
        ]

        self._ready()
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                if not self._checks_pass(conn, checks, prefix_checks):
                    conn.execute("ROLLBACK")
                    return CommitResult(ok=False)

                stamp = self._current_versionstamp(conn) + 1
                conn.execute("UPDATE kv_meta SET value = ? WHERE name = 'versionstamp'", (stamp,))

                for op, raw_key, raw_value in staged:
                    if op == "set":
                        conn.execute(
                            """
                            INSERT INTO kv(key, value, versionstamp) VALUES (?, ?, ?)
                            ON CONFLICT(key) DO UPDATE
                                SET value = excluded.value,
                                    versionstamp = excluded.versionstamp
                            """,
                            (raw_key, raw_value, stamp),
                        )
                    else:
                        conn.execute("DELETE FROM kv WHERE key = ?", (raw_key,))

                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    with contextlib.suppress(sqlite3.Error):
                        conn.execute("ROLLBACK")
                raise

        logger.debug("Committed %d mutation(s) versionstamp=%s", len(staged), stamp)
        return CommitResult(ok=True, versionstamp=stamp)

    # ---- public API ----

    def ping(self) -> bool:
        """Per-call health probe: True if the database answers a trivial query."""
        try:
            self._ready()
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except StorageUnavailable:
            logger.warning("KvStore ping failed db=%s", self._db_path, exc_info=True)
            return False

    def get(self, key: Sequence[str]) -> KvEntry | None:
        raw_key = _encode_key(key)
        self._ready()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT key, value, versionstamp FROM kv WHERE key = ?", (raw_key,)
            ).fetchone()
            return self._row_to_entry(row) if row else None

    def list(self, prefix: Sequence[str]) -> list[KvEntry]:
        entries, _ = self.snapshot(prefix)
        return entries

    def snapshot(self, prefix: Sequence[str]) -> tuple[list[KvEntry], int]:
        """
        Consistent read of every entry under `prefix`, plus the store's
        versionstamp at the time of the read (for check_prefix).
        """
        where, params = _prefix_clause(prefix)
        self._ready()
        with self._connect() as conn:
            conn.execute("BEGIN")
            try:
                stamp = self._current_versionstamp(conn)
                rows = conn.execute(
                    f"SELECT key, value, versionstamp FROM kv WHERE {where} ORDER BY key",
                    params,
                ).fetchall()
            finally:
                with contextlib.suppress(sqlite3.Error):
                    conn.execute("COMMIT")
            return [self._row_to_entry(r) for r in rows], stamp

    def set(self, key: Sequence[str], value: Any) -> int:
        result = self.atomic().set(key, value).commit()
        if result.versionstamp is None:
            raise RuntimeError("unchecked commit was refused")
        return result.versionstamp

    def delete(self, key: Sequence[str]) -> None:
        self.atomic().delete(key).commit()

    def atomic(self) -> AtomicOperation:
        return AtomicOperation(self)
