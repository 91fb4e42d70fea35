from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable

from kiosk.schema import SCHEMA_SQL


def connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [r["name"] for r in conn.execute(f"PRAGMA table_info({table});").fetchall()]


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Create base schema (for new installs)
    conn.executescript(SCHEMA_SQL)

    # ---- migrations for existing installs ----
    # POS checkout support came after the first sales were logged
    sales_cols = table_columns(conn, "sales")
    if "source" not in sales_cols:
        conn.execute("ALTER TABLE sales ADD COLUMN source TEXT NOT NULL DEFAULT 'manual';")
    if "transaction_id" not in sales_cols:
        conn.execute("ALTER TABLE sales ADD COLUMN transaction_id TEXT;")

    conn.commit()


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> int:
    cur = conn.execute(sql, tuple(params))
    conn.commit()
    n = cur.rowcount
    cur.close()
    return int(n)
