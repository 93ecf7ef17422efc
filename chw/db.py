from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("chw.events")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

# sqlite event log; None keeps events in the process log only.
_db_path: str | None = None


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path(path: str) -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist on the host shows up as a
    directory inside the container; in that case the DB file goes inside it.
    """
    p = os.path.abspath(path)
    if os.path.isdir(p):
        p = os.path.join(p, "chw.db")
    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    return p


def connect() -> sqlite3.Connection:
    if _db_path is None:
        raise RuntimeError("Event log is not configured.")
    conn = sqlite3.connect(_db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(path: str | None) -> None:
    """Enable the sqlite event log at `path` (or disable it with None)."""
    global _db_path
    if path is None:
        _db_path = None
        return
    _db_path = _resolve_db_path(path)
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              target TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, target: str | None = None) -> None:
    level = level.upper()
    logger.log(_LEVELS.get(level, logging.INFO), "[%s] %s" % (target, message) if target else message)
    if _db_path is None:
        return
    try:
        with connect() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, target, message) VALUES (?, ?, ?, ?)",
                (utc_now(), level, target, message),
            )
    except sqlite3.Error as e:
        # The event log must never take the watchdog down.
        logger.warning("Could not write event to %s: %s", _db_path, e)


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    if _db_path is None:
        return []
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
