"""SQLite persistence for reminders.

One row per live reminder. Exactly one of due_time / schedule_expression is
set. Rows are deleted physically when a reminder is cancelled, fires as a
one-shot, or is dropped as overdue by recovery.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dateutil.parser import parse as parse_datetime

from logger import logger
from . import config
from .errors import ReminderNotFound, StoreFailure
from .models import OneShot, Recurring, Reminder, Schedule


def encode_due_time(due_at: datetime) -> str:
    """RFC 3339 UTC text, exact to the second."""
    return due_at.astimezone(timezone.utc).isoformat(timespec="seconds")


def decode_due_time(value: str) -> datetime:
    due_at = parse_datetime(value)
    # Ensure timezone aware
    if due_at.tzinfo is None:
        due_at = due_at.replace(tzinfo=timezone.utc)
    return due_at


class ReminderStore:
    """Thread-safe reminder table.

    All statements go through a single connection guarded by a lock, so the
    coordinator, fire callbacks and recovery can share one instance.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.REMINDER_DB
        self._lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection with WAL mode."""
        if self._connection is not None:
            return self._connection

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,  # Fire callbacks and recovery share it
                timeout=10.0
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
            self._init_schema(conn)
        except sqlite3.Error as e:
            raise StoreFailure() from e

        self._connection = conn
        logger.info(f"Reminder store initialized: {self.db_path}")
        return conn

    @staticmethod
    def _init_schema(conn: sqlite3.Connection) -> None:
        """Create tables if they don't exist."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS reminders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                destination TEXT NOT NULL,
                owner TEXT NOT NULL,
                message TEXT NOT NULL,
                due_time TEXT,
                schedule_expression TEXT,
                CHECK ((due_time IS NULL) != (schedule_expression IS NULL))
            );

            CREATE INDEX IF NOT EXISTS idx_reminders_owner ON reminders(owner);
        """)
        conn.commit()

    @contextmanager
    def _transaction(self):
        """Serialize a unit of work and translate sqlite errors."""
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"Reminder store error: {e}")
                raise StoreFailure() from e

    def create(self, destination: str, owner: str, message: str, schedule: Schedule) -> int:
        """Insert a reminder and return its new id.

        AUTOINCREMENT guarantees ids are never reused, even after deletes.
        """
        if isinstance(schedule, OneShot):
            due_time, expression = encode_due_time(schedule.due_at), None
        elif isinstance(schedule, Recurring):
            due_time, expression = None, schedule.expression
        else:
            raise TypeError(f"Unknown schedule type: {schedule!r}")

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO reminders (destination, owner, message, due_time, schedule_expression)
                VALUES (?, ?, ?, ?, ?)
                """,
                (str(destination), str(owner), message, due_time, expression)
            )
            reminder_id = cursor.lastrowid
        logger.debug(f"Saved reminder {reminder_id} for owner {owner}")
        return reminder_id

    def get(self, reminder_id: int) -> Reminder:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM reminders WHERE id = ?",
                (reminder_id,)
            ).fetchone()
        if row is None:
            raise ReminderNotFound(reminder_id)
        try:
            return self._row_to_reminder(row)
        except (ValueError, OverflowError) as e:
            raise StoreFailure() from e

    def delete(self, reminder_id: int) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
            deleted = cursor.rowcount
        if not deleted:
            raise ReminderNotFound(reminder_id)
        logger.debug(f"Deleted reminder {reminder_id}")

    def list_all(self) -> list[Reminder]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM reminders ORDER BY id").fetchall()
        return self._decode_rows(rows)

    def list_by_owner(self, owner: str) -> list[Reminder]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE owner = ? ORDER BY id",
                (str(owner),)
            ).fetchall()
        return self._decode_rows(rows)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def _decode_rows(self, rows: list[sqlite3.Row]) -> list[Reminder]:
        reminders = []
        for row in rows:
            try:
                reminders.append(self._row_to_reminder(row))
            except (ValueError, OverflowError) as e:
                logger.error(f"Skipping unreadable reminder row {row['id']}: {e}")
        return reminders

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        if row["schedule_expression"]:
            schedule = Recurring(expression=row["schedule_expression"])
        else:
            schedule = OneShot(due_at=decode_due_time(row["due_time"]))
        return Reminder(
            id=row["id"],
            destination=row["destination"],
            owner=row["owner"],
            message=row["message"],
            schedule=schedule,
        )
