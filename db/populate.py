import sqlite3
from datetime import datetime, timedelta

from loguru import logger

from utils.clock import dur_to_db, time_to_db
from .errors import DuplicateQuestionError, IntegrityViolation, PopulationError


class Populator:
    """Bulk loader wrapping a single write transaction.

    Ids are assigned here rather than left to SQLite, counting up from the
    current maximum (or from 1 after :meth:`wipe`), so regenerating the same
    content yields the same ids. The store should not otherwise be used while
    a Populator is open.

    Exactly one of :meth:`commit` / :meth:`rollback` must be called. Used as a
    context manager, the block commits on a clean exit and rolls back when it
    raises.
    """

    def __init__(self, store):
        self._conn = store.conn
        self._conn.execute("BEGIN IMMEDIATE")
        self._finished = False
        self._added = 0
        try:
            row = self._conn.execute("SELECT COALESCE(MAX(id), 0) FROM items").fetchone()
        except sqlite3.Error:
            self._conn.execute("ROLLBACK")
            raise
        self._next_id = row[0] + 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._finished:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def _check_open(self) -> None:
        if self._finished:
            raise PopulationError("Populator already committed or rolled back")

    def wipe(self) -> None:
        """Remove every item, schedule and log entry and restart ids at 1."""
        self._check_open()
        if self._added:
            raise PopulationError("wipe() must come before any add()")
        self._conn.execute("DELETE FROM log")
        self._conn.execute("DELETE FROM schedule")
        self._conn.execute("DELETE FROM items")
        self._next_id = 1
        logger.debug("Wiped all items")

    def _insert_item(self, question: str, answer: str) -> int:
        item_id = self._next_id
        try:
            self._conn.execute(
                "INSERT INTO items (id, question, answer) VALUES (?, ?, ?)",
                (item_id, question, answer),
            )
        except sqlite3.IntegrityError as exc:
            if "items.question" in str(exc):
                raise DuplicateQuestionError(question) from exc
            raise IntegrityViolation(str(exc)) from exc
        self._next_id += 1
        self._added += 1
        return item_id

    def add(self, question: str, answer: str) -> int:
        """Add a single unlearned problem, returning its id."""
        self._check_open()
        return self._insert_item(question, answer)

    def add_learning(self, question: str, answer: str, next_due: datetime, interval: timedelta) -> int:
        """Add a problem that is already being learned, e.g. when importing from elsewhere."""
        self._check_open()
        if interval <= timedelta(0):
            raise ValueError(f"Interval must be positive, got {interval}")
        due = time_to_db(next_due)
        item_id = self._insert_item(question, answer)
        self._conn.execute(
            "INSERT INTO schedule (item_id, next_due, interval) VALUES (?, ?, ?)",
            (item_id, due, dur_to_db(interval)),
        )
        return item_id

    def commit(self) -> None:
        self._check_open()
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error:
            self.rollback()
            raise
        self._finished = True
        logger.info(f"Committed {self._added} new problems")

    def rollback(self) -> None:
        self._check_open()
        self._conn.execute("ROLLBACK")
        self._finished = True
        logger.info(f"Rolled back population ({self._added} problems discarded)")
