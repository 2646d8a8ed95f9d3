"""SQLite-backed snapshot store for the fixed ticker batch.

Writes (bootstrap, replace) run as one ``BEGIN IMMEDIATE`` transaction each and
are serialized by a process-local lock. Reads are a single SELECT against a WAL
database, so a reader sees the snapshot either fully before or fully after any
concurrent replace commits.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from ticker_gateway.errors import (
    BootstrapError,
    DuplicateSymbolError,
    SnapshotSizeError,
    StorageIntegrityError,
    StoreInitError,
    UnknownSymbolError,
)
from ticker_gateway.schemas.ticker import QuoteRecord, find_duplicate_symbols
from ticker_gateway.utils.logger import get_logger

log = get_logger(__name__)

_CREATE_SQL = """
CREATE TABLE IF NOT EXISTS tickers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL UNIQUE,
    price REAL NOT NULL,
    volume REAL NOT NULL,
    last_trade REAL NOT NULL
);
"""
_INSERT_SQL = "INSERT INTO tickers (symbol, price, volume, last_trade) VALUES (?, ?, ?, ?)"
_UPDATE_SQL = "UPDATE tickers SET price = ?, volume = ?, last_trade = ? WHERE symbol = ?"
_SELECT_SQL = "SELECT symbol, price, volume, last_trade FROM tickers ORDER BY id"


@dataclass
class ReplaceResult:
    updated: int = 0
    unmatched: list[str] = field(default_factory=list)


class TickerStore:
    def __init__(
        self,
        db_path: str | Path,
        expected_count: int,
        *,
        strict_replace: bool = False,
        busy_timeout_sec: float = 5.0,
    ) -> None:
        if expected_count < 1:
            raise ValueError("expected_count must be positive")
        self.db_path = Path(db_path)
        self.expected_count = expected_count
        self.strict_replace = strict_replace
        self.busy_timeout_sec = busy_timeout_sec
        self._write_lock = threading.Lock()
        self._bootstrapped = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout_sec,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.execute("PRAGMA journal_mode=WAL;").fetchone()
            conn.execute("PRAGMA synchronous=NORMAL;")
            yield conn
        finally:
            conn.close()

    @staticmethod
    @contextmanager
    def _transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def _check_size(self, records: list[QuoteRecord]) -> None:
        if len(records) != self.expected_count:
            raise SnapshotSizeError(self.expected_count, len(records))

    def _db_files(self) -> list[Path]:
        return [
            self.db_path,
            self.db_path.with_name(self.db_path.name + "-wal"),
            self.db_path.with_name(self.db_path.name + "-shm"),
        ]

    def initialize(self) -> None:
        """Drop any previous database file and recreate an empty tickers table."""
        with self._write_lock:
            try:
                for path in self._db_files():
                    path.unlink(missing_ok=True)
                log.info("[STORE][db_create] path=%s", self.db_path)
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                with self._connect() as conn:
                    conn.execute(_CREATE_SQL)
            except (OSError, sqlite3.Error) as exc:
                raise StoreInitError(f"cannot create database {self.db_path}: {exc}") from exc
            self._bootstrapped = False
        log.info("[STORE][table_create] table=tickers")

    def bootstrap(self, records: list[QuoteRecord]) -> None:
        """Insert the first snapshot. Allowed once, on a freshly initialized store."""
        records = list(records)
        if len(records) != self.expected_count:
            raise BootstrapError(
                f"expected {self.expected_count} records, got {len(records)}"
            )
        duplicates = find_duplicate_symbols(records)
        if duplicates:
            raise BootstrapError(f"duplicate symbols: {','.join(duplicates)}")

        with self._write_lock:
            if self._bootstrapped:
                raise BootstrapError("store already bootstrapped")
            try:
                with self._connect() as conn, self._transaction(conn):
                    (existing,) = conn.execute("SELECT COUNT(*) FROM tickers").fetchone()
                    if existing:
                        raise BootstrapError(f"store is not empty: rows={existing}")
                    conn.executemany(
                        _INSERT_SQL,
                        [(r.symbol, r.price, r.volume, r.last_trade) for r in records],
                    )
            except sqlite3.Error as exc:
                raise BootstrapError(f"bootstrap write failed: {exc}") from exc
            self._bootstrapped = True
        log.info("[STORE][bootstrap_ok] count=%d", len(records))

    def replace(self, records: list[QuoteRecord]) -> ReplaceResult:
        """Update every stored record matched by symbol, all in one transaction.

        A batch whose size differs from the expected count, or that repeats a
        symbol, is rejected before anything is written. Unmatched symbols are
        logged and skipped unless ``strict_replace`` is set, in which case the
        whole batch rolls back.
        """
        records = list(records)
        self._check_size(records)
        duplicates = find_duplicate_symbols(records)
        if duplicates:
            raise DuplicateSymbolError(duplicates)

        result = ReplaceResult()
        with self._write_lock, self._connect() as conn, self._transaction(conn):
            for record in records:
                cursor = conn.execute(
                    _UPDATE_SQL,
                    (record.price, record.volume, record.last_trade, record.symbol),
                )
                if cursor.rowcount == 0:
                    result.unmatched.append(record.symbol)
                else:
                    result.updated += cursor.rowcount
            if result.unmatched and self.strict_replace:
                raise UnknownSymbolError(result.unmatched)

        for symbol in result.unmatched:
            log.warning("[STORE][replace_unmatched] symbol=%s", symbol)
        return result

    def read_all(self) -> list[QuoteRecord]:
        with self._connect() as conn:
            rows = conn.execute(_SELECT_SQL).fetchall()

        if len(rows) != self.expected_count:
            log.error(
                "[STORE][integrity_error] expected=%d actual=%d",
                self.expected_count,
                len(rows),
            )
            raise StorageIntegrityError(
                f"expected {self.expected_count} stored tickers, found {len(rows)}"
            )

        return [
            QuoteRecord(symbol=symbol, price=price, volume=volume, last_trade=last_trade)
            for symbol, price, volume, last_trade in rows
        ]
