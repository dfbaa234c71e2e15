from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable

import streamlit as st

from core.schema import SCHEMA_SQL
from core.utils import iso_now

# Connections inside `transaction()`; writes on them wait for its single commit.
_open_transactions: set[int] = set()


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    return connect(db_path)


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table});").fetchall()
    cols = [r["name"] for r in rows]
    return column in cols


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Create base schema (for new installs)
    conn.executescript(SCHEMA_SQL)

    # ---- migrations for existing installs ----
    if not _column_exists(conn, "kv_store", "updated_at"):
        conn.execute("ALTER TABLE kv_store ADD COLUMN updated_at TEXT NOT NULL DEFAULT '';")

    conn.commit()


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    cur = conn.execute(sql, tuple(params))
    if id(conn) not in _open_transactions:
        conn.commit()
    last = cur.lastrowid
    cur.close()
    return int(last or 0)


def read_json(conn: sqlite3.Connection, key: str, default: Any = None) -> Any:
    rows = q(conn, "SELECT payload FROM kv_store WHERE key=?", (key,))
    if not rows:
        return default
    return json.loads(rows[0]["payload"])


def write_json(conn: sqlite3.Connection, key: str, payload: Any) -> None:
    x(
        conn,
        """
        INSERT INTO kv_store (key, payload, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at
        """,
        (key, json.dumps(payload, ensure_ascii=False), iso_now()),
    )


def delete_key(conn: sqlite3.Connection, key: str) -> None:
    x(conn, "DELETE FROM kv_store WHERE key=?", (key,))


def list_keys(conn: sqlite3.Connection) -> list[str]:
    return [str(r["key"]) for r in q(conn, "SELECT key FROM kv_store ORDER BY key")]


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Commits every write made inside the block at once, or none of them."""
    if id(conn) in _open_transactions:
        yield conn
        return
    _open_transactions.add(id(conn))
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        _open_transactions.discard(id(conn))
