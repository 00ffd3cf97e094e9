from __future__ import annotations

import sqlite3
from typing import List, Optional

from loguru import logger

from db.database import Store
from db.errors import UnknownItemError
from models.problem import Problem
from utils.clock import db_to_dur, db_to_time, dur_to_db, time_to_db
from utils.intervals import MIN_INTERVAL, Jitter, make_jitter, next_interval, validate_factor

_SCHEDULED_COLUMNS = """
    SELECT i.id, i.question, i.answer, s.next_due, s.interval
    FROM items i
    JOIN schedule s ON s.item_id = i.id
"""


def _scheduled_problem(row) -> Problem:
    return Problem(
        id=row["id"],
        question=row["question"],
        answer=row["answer"],
        next_due=db_to_time(row["next_due"]),
        interval=db_to_dur(row["interval"]),
    )


class Scheduler:
    """Picks what to ask next and reschedules problems after they are graded.

    ``jitter`` supplies the random multiplier applied on every update; pass a
    constant (``lambda: 1.0``) or a seeded provider from
    :func:`utils.intervals.make_jitter` for reproducible intervals.
    """

    def __init__(self, store: Store, jitter: Optional[Jitter] = None):
        self.store = store
        self.jitter = jitter or make_jitter()

    def _new_problem(self, row) -> Problem:
        return Problem(
            id=row["id"],
            question=row["question"],
            answer=row["answer"],
            next_due=self.store.now(),
            interval=MIN_INTERVAL,
            is_new=True,
        )

    def get_next(self, count: int) -> List[Problem]:
        """Return up to ``count`` due problems, earliest first.

        When nothing is due, fall back to a single unlearned problem. Only one,
        since by the time it has been answered other problems may have come
        due.
        """
        if count < 1:
            return []
        now = self.store.now()
        with self.store.snapshot() as conn:
            rows = conn.execute(
                _SCHEDULED_COLUMNS
                + """
                WHERE s.next_due <= ?
                ORDER BY s.next_due, i.id
                LIMIT ?
                """,
                (time_to_db(now), count),
            ).fetchall()
            result = [_scheduled_problem(row) for row in rows]
            logger.debug(f"{len(result)} problems due")
            if not result:
                fresh = self.get_new()
                if fresh is not None:
                    result.append(fresh)
        return result

    def get_new(self) -> Optional[Problem]:
        """Return the lowest-id problem that has never been asked, or None."""
        row = self.store.conn.execute(
            """
            SELECT i.id, i.question, i.answer
            FROM items i
            LEFT JOIN schedule s ON s.item_id = i.id
            WHERE s.item_id IS NULL
            ORDER BY i.id
            LIMIT 1
            """
        ).fetchone()
        if row is None:
            return None
        logger.debug(f"Offering unlearned problem {row['id']}")
        return self._new_problem(row)

    def get_problem(self, item_id: int) -> Optional[Problem]:
        """Current view of one problem, synthetic if it has never been asked."""
        row = self.store.conn.execute(
            _SCHEDULED_COLUMNS + " WHERE i.id = ?",
            (item_id,),
        ).fetchone()
        if row is not None:
            return _scheduled_problem(row)
        row = self.store.conn.execute(
            "SELECT id, question, answer FROM items WHERE id = ?",
            (item_id,),
        ).fetchone()
        if row is None:
            return None
        return self._new_problem(row)

    def update(self, problem: Problem, factor: int) -> Problem:
        """Reschedule ``problem`` after it was graded ``factor`` (1 = wrong, 4 = right).

        The schedule row is replaced and one log row appended in the same
        transaction. Returns the problem with its new schedule.
        """
        validate_factor(factor)
        interval = next_interval(problem.interval, factor, self.jitter())
        now = self.store.now()
        next_due = now + interval
        try:
            with self.store.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO schedule (item_id, next_due, interval)
                    VALUES (?, ?, ?)
                    ON CONFLICT(item_id) DO UPDATE SET
                        next_due = excluded.next_due,
                        interval = excluded.interval
                    """,
                    (problem.id, time_to_db(next_due), dur_to_db(interval)),
                )
                conn.execute(
                    "INSERT INTO log (timestamp, item_id, factor) VALUES (?, ?, ?)",
                    (time_to_db(now), problem.id, factor),
                )
        except sqlite3.IntegrityError as exc:
            if "FOREIGN KEY" in str(exc):
                raise UnknownItemError(problem.id) from exc
            raise
        logger.debug(
            f"Problem {problem.id} graded {factor}: interval {problem.interval} -> {interval}"
        )
        return problem.model_copy(update={"next_due": next_due, "interval": interval, "is_new": False})
