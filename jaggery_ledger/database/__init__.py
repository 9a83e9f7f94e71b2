# database/__init__.py
from __future__ import annotations

import itertools
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..config import DB_PATH
from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .errors import DomainError, PersistenceError
from .seeders.default_data import seed as seed_default_data
from .versioning import get_current_version, set_current_version

_log = logging.getLogger(__name__)

_savepoint_ids = itertools.count(1)


def connect(db_path: Path | str | None = None, *, timeout: float = 30.0) -> sqlite3.Connection:
    """
    Open a connection WITHOUT touching the schema.

      - autocommit mode (isolation_level=None): every write boundary is an
        explicit transaction() block
      - WAL mode, foreign_keys ON, busy timeout for concurrent writers
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    conn = sqlite3.connect(path, timeout=timeout, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)};")
    return conn


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a connection (see connect()) after making sure schema & seed data
    are applied idempotently.
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    # Always apply the schema (idempotent: uses CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.init_schema(path)

    conn = connect(path)
    with transaction(conn):
        if get_current_version(conn) is None:
            set_current_version(conn, SCHEMA_VERSION)
        # Seeders are safe to run repeatedly (idempotent).
        seed_default_data(conn)
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection, *, immediate: bool = True) -> Iterator[sqlite3.Connection]:
    """
    All-or-nothing block.

    Outermost call opens BEGIN IMMEDIATE (takes the write lock up front, so
    read-check-write sequences against stock are serialized between
    connections). Nested calls use a SAVEPOINT. Any exception rolls back;
    raw sqlite3 errors are re-raised as PersistenceError, domain errors as-is.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoint_ids)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException as exc:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            _raise_translated(exc)
            raise
        else:
            conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    try:
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
    except sqlite3.Error as exc:
        _log.warning("could not start transaction: %s", exc)
        raise PersistenceError.from_exception(exc) from exc
    try:
        yield conn
    except BaseException as exc:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        _raise_translated(exc)
        raise
    else:
        try:
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            _log.warning("commit failed: %s", exc)
            raise PersistenceError.from_exception(exc) from exc


def _raise_translated(exc: BaseException) -> None:
    if isinstance(exc, DomainError):
        return
    if isinstance(exc, sqlite3.Error):
        err = PersistenceError.from_exception(exc)
        _log.warning("persistence failure (%s): %s", err.kind, exc)
        raise err from exc


__all__ = [
    "connect",
    "get_connection",
    "transaction",
]
