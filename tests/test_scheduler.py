import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from db.database import Store
from db.errors import InvalidFactorError, UnknownItemError
from models.problem import Problem
from models.stats import BucketId
from utils.clock import FixedClock
from utils.intervals import MAX_INTERVAL, MIN_INTERVAL
from utils.scheduler import Scheduler
from utils.stats import get_counts

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _make_store(tmp_path, count: int = 10):
    clock = FixedClock(START)
    store = Store.create(tmp_path / "learn.db", "simple", clock=clock)
    with store.begin() as pop:
        for i in range(1, count + 1):
            pop.add(f"Question #{i}", f"Answer #{i}")
    return store, clock


def _log_rows(store):
    return store.conn.execute("SELECT timestamp, item_id, factor FROM log ORDER BY rowid").fetchall()


def test_learning_scenario(tmp_path):
    store, clock = _make_store(tmp_path)
    scheduler = Scheduler(store, jitter=lambda: 1.0)

    probs = scheduler.get_next(2)
    assert len(probs) == 1
    first = probs[0]
    assert first.question == "Question #1"
    assert first.is_new
    assert first.interval == MIN_INTERVAL
    assert first.next_due == START

    updated = scheduler.update(first, 4)
    assert updated.interval == timedelta(seconds=11)
    assert updated.next_due == START + timedelta(seconds=11)
    assert not updated.is_new

    counts = get_counts(store)
    assert (counts.active, counts.later, counts.unlearned) == (0, 1, 9)
    assert counts.bucket(BucketId.SEC).count == 1

    # Nothing due yet, so the next unlearned problem is offered.
    waiting = scheduler.get_next(2)
    assert [p.question for p in waiting] == ["Question #2"]

    clock.advance(20)
    again = scheduler.get_next(2)
    assert [p.question for p in again] == ["Question #1"]
    assert again[0].interval == timedelta(seconds=11)

    counts = get_counts(store)
    assert (counts.active, counts.later, counts.unlearned) == (1, 0, 9)
    assert [(b.name, b.count) for b in counts.buckets] == [
        ("sec", 1),
        ("min", 0),
        ("hr", 0),
        ("day", 0),
        ("mon", 0),
    ]


def test_get_next_orders_by_due_then_id_and_limits(tmp_path):
    clock = FixedClock(START)
    store = Store.create(tmp_path / "learn.db", "simple", clock=clock)
    with store.begin() as pop:
        pop.add_learning("late", "a", START - timedelta(seconds=5), timedelta(seconds=30))
        pop.add_learning("early", "b", START - timedelta(seconds=50), timedelta(seconds=30))
        pop.add_learning("tie-1", "c", START - timedelta(seconds=20), timedelta(seconds=30))
        pop.add_learning("tie-2", "d", START - timedelta(seconds=20), timedelta(seconds=30))
        pop.add_learning("future", "e", START + timedelta(seconds=1), timedelta(seconds=30))
        pop.add("unlearned", "f")
    scheduler = Scheduler(store)

    everything = scheduler.get_next(10)
    assert [p.question for p in everything] == ["early", "tie-1", "tie-2", "late"]
    assert all(p.next_due <= START for p in everything)
    assert [p.next_due for p in everything] == sorted(p.next_due for p in everything)

    assert [p.question for p in scheduler.get_next(2)] == ["early", "tie-1"]


def test_due_exactly_now_is_due(tmp_path):
    store = Store.create(tmp_path / "learn.db", "simple", clock=FixedClock(START))
    with store.begin() as pop:
        pop.add_learning("now", "a", START, timedelta(seconds=30))
    assert [p.question for p in Scheduler(store).get_next(1)] == ["now"]


def test_fallback_returns_lowest_unlearned_only_once(tmp_path):
    store, _ = _make_store(tmp_path)
    probs = Scheduler(store).get_next(5)
    assert len(probs) == 1
    assert probs[0].id == 1
    assert probs[0].is_new


def test_nothing_due_and_nothing_unlearned_is_empty(tmp_path):
    store = Store.create(tmp_path / "learn.db", "simple", clock=FixedClock(START))
    with store.begin() as pop:
        pop.add_learning("later", "a", START + timedelta(hours=1), timedelta(hours=1))
    scheduler = Scheduler(store)
    assert scheduler.get_next(3) == []
    assert scheduler.get_new() is None


def test_empty_store(tmp_path):
    store = Store.create(tmp_path / "learn.db", "simple")
    assert Scheduler(store).get_next(2) == []


def test_non_positive_count_returns_nothing(tmp_path):
    store, _ = _make_store(tmp_path)
    scheduler = Scheduler(store)
    assert scheduler.get_next(0) == []
    assert scheduler.get_next(-3) == []


def test_update_replaces_schedule_and_appends_log(tmp_path):
    store, clock = _make_store(tmp_path)
    scheduler = Scheduler(store, jitter=lambda: 1.0)
    prob = scheduler.get_new()

    prob = scheduler.update(prob, 4)
    clock.advance(30)
    prob = scheduler.update(prob, 3)
    clock.advance(30)
    prob = scheduler.update(prob, 1)

    rows = store.conn.execute("SELECT item_id, next_due, interval FROM schedule").fetchall()
    assert len(rows) == 1
    assert rows[0]["item_id"] == 1
    assert prob.interval == max(MIN_INTERVAL, timedelta(seconds=5 * 2.2 * 1.2 * 0.25))
    assert prob.next_due == START + timedelta(seconds=60) + prob.interval

    log = _log_rows(store)
    assert [(r["item_id"], r["factor"]) for r in log] == [(1, 4), (1, 3), (1, 1)]
    assert log[2]["timestamp"] == pytest.approx((START + timedelta(seconds=60)).timestamp())


def test_update_persists_across_reopen(tmp_path):
    store, _ = _make_store(tmp_path)
    scheduler = Scheduler(store)
    updated = scheduler.update(scheduler.get_new(), 3)
    store.close()

    with Store.open(tmp_path / "learn.db") as reopened:
        current = Scheduler(reopened).get_problem(updated.id)
    assert current.interval == updated.interval
    assert current.next_due == updated.next_due


def test_update_interval_bounds_with_random_jitter(tmp_path):
    store, _ = _make_store(tmp_path)
    scheduler = Scheduler(store)
    for factor, multiplier in ((1, 0.25), (2, 0.9), (3, 1.2), (4, 2.2)):
        prob = scheduler.get_problem(factor)
        prob = prob.model_copy(update={"interval": timedelta(minutes=10)})
        updated = scheduler.update(prob, factor)
        low = max(5.0, 600 * multiplier * 0.75)
        high = max(5.0, 600 * multiplier * 1.25)
        assert low - 1e-6 <= updated.interval.total_seconds() <= high + 1e-6


@pytest.mark.parametrize("factor", [0, 5, 2.5, None])
def test_invalid_factor_writes_nothing(tmp_path, factor):
    store, _ = _make_store(tmp_path)
    scheduler = Scheduler(store)
    with pytest.raises(InvalidFactorError):
        scheduler.update(scheduler.get_new(), factor)
    assert store.conn.execute("SELECT COUNT(*) FROM schedule").fetchone()[0] == 0
    assert _log_rows(store) == []


def test_update_unknown_item_rolls_back(tmp_path):
    store, _ = _make_store(tmp_path)
    ghost = Problem(id=999, question="ghost", answer="boo", next_due=START, interval=MIN_INTERVAL)
    with pytest.raises(UnknownItemError) as excinfo:
        Scheduler(store).update(ghost, 4)
    assert excinfo.value.item_id == 999
    assert store.conn.execute("SELECT COUNT(*) FROM schedule").fetchone()[0] == 0
    assert _log_rows(store) == []


def test_update_is_atomic_when_log_insert_fails(tmp_path):
    store, _ = _make_store(tmp_path)
    store.conn.execute("DROP TABLE log")
    scheduler = Scheduler(store)
    with pytest.raises(sqlite3.OperationalError):
        scheduler.update(scheduler.get_new(), 4)
    assert store.conn.execute("SELECT COUNT(*) FROM schedule").fetchone()[0] == 0


def test_get_problem(tmp_path):
    store, _ = _make_store(tmp_path, count=2)
    scheduler = Scheduler(store, jitter=lambda: 1.0)
    assert scheduler.get_problem(42) is None
    fresh = scheduler.get_problem(2)
    assert fresh.is_new and fresh.question == "Question #2"
    scheduler.update(fresh, 4)
    current = scheduler.get_problem(2)
    assert not current.is_new
    assert current.interval == timedelta(seconds=11)


def test_repeated_top_grades_stop_at_ceiling(tmp_path):
    store, clock = _make_store(tmp_path, count=1)
    scheduler = Scheduler(store, jitter=lambda: 1.25)
    prob = scheduler.get_new()
    for _ in range(60):
        prob = scheduler.update(prob, 4)
        assert MIN_INTERVAL <= prob.interval <= MAX_INTERVAL
        clock.advance(1)
    assert prob.interval == MAX_INTERVAL
    assert prob.next_due == clock() - timedelta(seconds=1) + MAX_INTERVAL
    assert scheduler.get_problem(prob.id).interval == MAX_INTERVAL


def test_get_next_leaves_no_transaction_open(tmp_path):
    store, _ = _make_store(tmp_path)
    scheduler = Scheduler(store)
    assert len(scheduler.get_next(3)) == 1
    assert not store.conn.in_transaction
    scheduler.update(scheduler.get_new(), 2)
    assert not store.conn.in_transaction
