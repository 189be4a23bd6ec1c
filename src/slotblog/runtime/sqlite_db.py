# src/slotblog/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

Json = Dict[str, Any]
T = TypeVar("T")

_SYNC_LEVELS = ("OFF", "NORMAL", "FULL", "EXTRA")

_SELECT_STATE = "SELECT state_json FROM ledger_state WHERE id=1;"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Sorted, compact JSON. Raises TypeError on anything that is not plain JSON."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name) or "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _env_flag(name: str) -> bool:
    return str(os.environ.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


class SqliteDB:
    """One SQLite file holding the slotblog ledger snapshot.

    Connections are never shared: every read opens its own, every write runs
    in `write_tx()` (BEGIN IMMEDIATE ... COMMIT). SQLite's writer lock is what
    serializes two txs that touch the same slot address, across threads and
    processes alike.

    Tunables (env):
      SLOTBLOG_SQLITE_CONNECT_TIMEOUT_MS   default 30000
      SLOTBLOG_SQLITE_BUSY_TIMEOUT_MS      default = connect timeout
      SLOTBLOG_SQLITE_SYNCHRONOUS          OFF|NORMAL|FULL|EXTRA (FULL in prod, NORMAL otherwise)
      SLOTBLOG_SQLITE_WAL_AUTOCHECKPOINT   default 1000 pages
      SLOTBLOG_SQLITE_ALLOW_NON_WAL        accept a non-WAL journal (network filesystems)
      SLOTBLOG_SQLITE_WRITE_DEADLINE_MS    give up on a locked writer after this long
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def synchronous_level() -> str:
        fallback = "FULL" if (os.environ.get("SLOTBLOG_MODE") or "prod").strip().lower() == "prod" else "NORMAL"
        want = (os.environ.get("SLOTBLOG_SQLITE_SYNCHRONOUS") or fallback).strip().upper()
        return want if want in _SYNC_LEVELS else fallback

    def _pragmas(self, connect_timeout_ms: int) -> List[Tuple[str, Any]]:
        return [
            ("synchronous", self.synchronous_level()),
            ("foreign_keys", "ON"),
            ("temp_store", "MEMORY"),
            ("wal_autocheckpoint", max(1, _env_int("SLOTBLOG_SQLITE_WAL_AUTOCHECKPOINT", 1000))),
            ("busy_timeout", max(0, _env_int("SLOTBLOG_SQLITE_BUSY_TIMEOUT_MS", connect_timeout_ms))),
        ]

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        timeout_ms = _env_int("SLOTBLOG_SQLITE_CONNECT_TIMEOUT_MS", 30_000)

        # isolation_level=None: transactions are opened explicitly in write_tx().
        con = sqlite3.connect(self.path, timeout=timeout_ms / 1000.0, isolation_level=None, check_same_thread=False)
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        journal = str(row[0]).strip().lower() if row is not None else ""
        if journal and journal != "wal" and not _env_flag("SLOTBLOG_SQLITE_ALLOW_NON_WAL"):
            con.close()
            raise RuntimeError(f"sqlite journal_mode is {journal!r}, expected 'wal'")

        for name, value in self._pragmas(timeout_ms):
            con.execute(f"PRAGMA {name}={value};")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);")
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  height INTEGER NOT NULL,
                  tip TEXT NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )
            row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
                return
            have = str(row["value"]).strip()
            if have != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={have} want={self.SCHEMA_VERSION}. Refusing to open {self.path}"
                )

    @staticmethod
    def _locked(e: sqlite3.OperationalError) -> bool:
        msg = str(e).lower()
        return "database is locked" in msg or "database is busy" in msg

    @staticmethod
    def _sleep_before_retry(attempt: int) -> None:
        base = max(1, _env_int("SLOTBLOG_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0
        cap = max(base, _env_int("SLOTBLOG_SQLITE_WRITE_BACKOFF_MAX_MS", 250) / 1000.0)
        # exponential, jittered to [0.5x, 1.5x]
        time.sleep(min(cap, base * (2.0 ** min(attempt, 8))) * (0.5 + random.random()))

    def _execute_until(self, con: sqlite3.Connection, sql: str, deadline_ms: int) -> None:
        attempt = 0
        while True:
            try:
                con.execute(sql)
                return
            except sqlite3.OperationalError as e:
                if not self._locked(e) or _now_ms() >= deadline_ms:
                    raise
                self._sleep_before_retry(attempt)
                attempt += 1

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """BEGIN IMMEDIATE ... COMMIT, retrying lock contention until a deadline.

        Anything raised inside the block rolls the transaction back and
        propagates.
        """
        deadline = _now_ms() + max(250, _env_int("SLOTBLOG_SQLITE_WRITE_DEADLINE_MS", 30_000))
        with self.connection() as con:
            self._execute_until(con, "BEGIN IMMEDIATE;", deadline)
            try:
                yield con
                self._execute_until(con, "COMMIT;", deadline)
            except BaseException:
                if con.in_transaction:
                    con.execute("ROLLBACK;")
                raise


class SqliteLedgerStore:
    """The ledger as one JSON snapshot row (id=1) in `ledger_state`.

    `update(mut)` is the only way txs touch state: it reads the snapshot,
    hands it to `mut`, and writes it back in the same write transaction. If
    `mut` raises, nothing is written and the exception propagates. Whatever
    `mut` returns is returned to the caller.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def db(self) -> SqliteDB:
        return self._db

    @staticmethod
    def _decode(row: Optional[sqlite3.Row]) -> Json:
        if row is None:
            raise FileNotFoundError("ledger_state row is missing; write a genesis snapshot first")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("ledger_state is not a JSON object")
        return st

    @staticmethod
    def _columns(st: Json) -> Tuple[int, str, str, int]:
        return int(st.get("height", 0)), str(st.get("tip") or ""), _canon_json(st), _now_ms()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            return self._decode(con.execute(_SELECT_STATE).fetchone())

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger snapshot must be a dict")
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO ledger_state(id, height, tip, state_json, updated_ts_ms) VALUES(1, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  height=excluded.height, tip=excluded.tip,
                  state_json=excluded.state_json, updated_ts_ms=excluded.updated_ts_ms;
                """,
                self._columns(st),
            )

    def update(self, mut: Callable[[Json], T]) -> T:
        with self._db.write_tx() as con:
            st = self._decode(con.execute(_SELECT_STATE).fetchone())
            out = mut(st)
            con.execute(
                "UPDATE ledger_state SET height=?, tip=?, state_json=?, updated_ts_ms=? WHERE id=1;",
                self._columns(st),
            )
            return out
