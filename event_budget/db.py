"""SQLite persistence for events, categories and budget entries.

Each table gets the same small set of operations: fetch all by owner,
insert one, update by id with a partial set of columns, and delete by id.
Deleting an event cascades to its categories and entries.  Deleting a
category does *not* touch entries; they keep a dangling ``category_id``.

Every ``sqlite3.Error`` leaves this module as :class:`PersistenceError`.
Rows that cannot be converted raise :class:`MalformedRecord`.  Reads are
retried a bounded number of times, except on malformed rows; writes are
never retried.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, TypeVar

import pandas as pd

from . import config
from .editing import UpdateRequest
from .exceptions import MalformedRecord, PersistenceError
from .models import (
    BudgetEntry,
    Category,
    Event,
    category_from_row,
    entry_from_row,
    event_from_row,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DB_PATH = config.DB_PATH

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    allocated_budget TEXT NOT NULL DEFAULT '0',
    venue TEXT,
    start_date TEXT,
    end_date TEXT,
    status TEXT NOT NULL DEFAULT 'Active',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('Income', 'Expense')),
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budget_entries (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    category_id TEXT NOT NULL,
    item_name TEXT NOT NULL,
    amount TEXT NOT NULL,
    payment_method TEXT,
    receipt_photo_url TEXT,
    receipt_filename TEXT,
    to_be_reimbursed INTEGER NOT NULL DEFAULT 0,
    reimbursement_source TEXT,
    reimbursement_status TEXT NOT NULL DEFAULT 'pending',
    entry_date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_categories_event ON categories (event_id);
CREATE INDEX IF NOT EXISTS ix_entries_event ON budget_entries (event_id);
CREATE INDEX IF NOT EXISTS ix_entries_date ON budget_entries (entry_date);
"""

# Columns a caller may set through insert/update, per table
EVENT_COLUMNS = ("name", "allocated_budget", "venue", "start_date", "end_date", "status")
CATEGORY_COLUMNS = ("event_id", "name", "type")
ENTRY_COLUMNS = (
    "event_id",
    "category_id",
    "item_name",
    "amount",
    "payment_method",
    "receipt_photo_url",
    "receipt_filename",
    "to_be_reimbursed",
    "reimbursement_source",
    "reimbursement_status",
    "entry_date",
)

_UPDATABLE = {
    "events": EVENT_COLUMNS,
    "budget_entries": tuple(c for c in ENTRY_COLUMNS if c != "event_id"),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _sanitize_db_value(value: Any) -> Any:
    """Convert domain values to SQLite-friendly ones."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


@contextmanager
def connect() -> Iterator[sqlite3.Connection]:
    path = Path(DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = sqlite3.connect(str(path))
    except sqlite3.Error as e:
        raise PersistenceError(f"Could not open database {DB_PATH}: {e}") from e
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(str(e)) from e
    finally:
        conn.close()


def init_db() -> None:
    with connect() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.commit()


def _retry_read(func):
    """Retry an idempotent read with exponential backoff before giving up."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        attempts = max(1, config.READ_RETRY_ATTEMPTS)
        delay = config.READ_RETRY_BACKOFF_SECONDS
        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except MalformedRecord:
                # not transient
                raise
            except PersistenceError as e:
                if attempt == attempts:
                    raise
                logger.warning(
                    "%s failed (attempt %d/%d): %s", func.__name__, attempt, attempts, e
                )
                time.sleep(delay)
                delay *= 2

    return wrapper


def _read_records(sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
    with connect() as conn:
        try:
            df = pd.read_sql_query(sql, conn, params=list(params))
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            raise PersistenceError(str(e)) from e
    # Integer columns holding NULL come back as NaN
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict("records")


def _convert(table: str, rows: Iterable[Mapping[str, Any]], mapper: Callable[[Mapping[str, Any]], T]) -> List[T]:
    records = []
    for row in rows:
        try:
            records.append(mapper(row))
        except (ValueError, TypeError, KeyError, InvalidOperation) as e:
            logger.error("Malformed row %s in %s: %s", row.get("id"), table, e)
            raise MalformedRecord(f"Malformed row {row.get('id')} in {table}: {e}") from e
    return records


def _insert(table: str, allowed: Sequence[str], values: Mapping[str, Any], *, timestamps: Sequence[str]) -> str:
    unknown = set(values) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {sorted(unknown)}")
    record_id = _new_id()
    now = _now()
    row: Dict[str, Any] = {"id": record_id}
    row.update({key: _sanitize_db_value(value) for key, value in values.items()})
    for column in timestamps:
        row[column] = now
    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    with connect() as conn:
        conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", list(row.values()))
        conn.commit()
    return record_id


def _update(table: str, record_id: str, changes: Mapping[str, Any]) -> bool:
    allowed = _UPDATABLE.get(table)
    if allowed is None:
        raise ValueError(f"Table '{table}' does not support updates")
    unknown = set(changes) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {sorted(unknown)}")
    if not changes:
        return False

    updates = [f"{column} = ?" for column in changes]
    params = [_sanitize_db_value(value) for value in changes.values()]
    updates.append("updated_at = ?")
    params.append(_now())
    params.append(record_id)
    sql = f"UPDATE {table} SET {', '.join(updates)} WHERE id = ?"

    with connect() as conn:
        cursor = conn.execute(sql, params)
        conn.commit()
        return cursor.rowcount > 0


def _delete(table: str, record_id: str) -> bool:
    with connect() as conn:
        cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        conn.commit()
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@_retry_read
def fetch_events(sort_by: str = "date") -> List[Event]:
    """All events, newest first or grouped by status (descending)."""
    order = "status DESC, created_at DESC" if sort_by == "status" else "created_at DESC"
    rows = _read_records(f"SELECT * FROM events ORDER BY {order}")
    return _convert("events", rows, event_from_row)


@_retry_read
def fetch_event(event_id: str) -> Optional[Event]:
    rows = _read_records("SELECT * FROM events WHERE id = ?", (event_id,))
    return _convert("events", rows, event_from_row)[0] if rows else None


def insert_event(values: Mapping[str, Any]) -> str:
    return _insert("events", EVENT_COLUMNS, values, timestamps=("created_at", "updated_at"))


def update_event(event_id: str, changes: Mapping[str, Any]) -> bool:
    return _update("events", event_id, changes)


def delete_event(event_id: str) -> bool:
    """Delete an event; its categories and entries go with it."""
    return _delete("events", event_id)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@_retry_read
def fetch_categories(event_id: str) -> List[Category]:
    rows = _read_records(
        "SELECT * FROM categories WHERE event_id = ? ORDER BY type ASC, created_at ASC",
        (event_id,),
    )
    return _convert("categories", rows, category_from_row)


def insert_category(values: Mapping[str, Any]) -> str:
    return _insert("categories", CATEGORY_COLUMNS, values, timestamps=("created_at",))


def insert_categories(rows: Iterable[Mapping[str, Any]]) -> List[str]:
    """Insert several categories in one transaction."""
    now = _now()
    records = []
    ids = []
    for values in rows:
        unknown = set(values) - set(CATEGORY_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown columns for categories: {sorted(unknown)}")
        record_id = _new_id()
        ids.append(record_id)
        records.append((record_id, values["event_id"], values["name"], values["type"], now))
    if not records:
        return ids
    with connect() as conn:
        conn.executemany(
            "INSERT INTO categories (id, event_id, name, type, created_at) VALUES (?, ?, ?, ?, ?)",
            records,
        )
        conn.commit()
    return ids


def delete_category(category_id: str) -> bool:
    return _delete("categories", category_id)


# ---------------------------------------------------------------------------
# Budget entries
# ---------------------------------------------------------------------------


@_retry_read
def fetch_entries(event_id: str) -> List[BudgetEntry]:
    rows = _read_records(
        "SELECT * FROM budget_entries WHERE event_id = ? ORDER BY entry_date DESC, created_at DESC",
        (event_id,),
    )
    return _convert("budget_entries", rows, entry_from_row)


def insert_entry(values: Mapping[str, Any]) -> str:
    return _insert(
        "budget_entries", ENTRY_COLUMNS, values, timestamps=("created_at", "updated_at")
    )


def update_entry(entry_id: str, changes: Mapping[str, Any]) -> bool:
    return _update("budget_entries", entry_id, changes)


def delete_entry(entry_id: str) -> bool:
    return _delete("budget_entries", entry_id)


def apply_update(request: UpdateRequest) -> bool:
    """Dispatch an :class:`UpdateRequest` produced by the editing layer."""
    return _update(request.table, request.record_id, request.changes)
