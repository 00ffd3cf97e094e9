from typing import List, Tuple

from db.database import Store
from models.stats import Bucket, BucketId, Counts
from utils.clock import time_to_db

# Each limit is how many of this unit make up the next one; thresholds are
# the running product, in seconds.
BUCKET_BINS: List[Tuple[BucketId, float]] = [
    (BucketId.SEC, 60.0),
    (BucketId.MIN, 60.0),
    (BucketId.HR, 24.0),
    (BucketId.DAY, 30.0),
    (BucketId.MON, 1.0e30),
]


def bucket_thresholds() -> List[Tuple[BucketId, float, float]]:
    """(bucket, lower, upper) in seconds; an interval i belongs where lower <= i < upper."""
    result = []
    prior = 0.0
    upper = 1.0
    for bucket_id, limit in BUCKET_BINS:
        upper *= limit
        result.append((bucket_id, prior, upper))
        prior = upper
    return result


def get_counts(store: Store) -> Counts:
    """Snapshot of how many problems are due, waiting and unlearned, plus the interval histogram."""
    now = time_to_db(store.now())
    with store.snapshot() as conn:
        unlearned = conn.execute(
            """
            SELECT COUNT(*) FROM items i
            LEFT JOIN schedule s ON s.item_id = i.id
            WHERE s.item_id IS NULL
            """
        ).fetchone()[0]
        active = conn.execute(
            "SELECT COUNT(*) FROM schedule WHERE next_due <= ?", (now,)
        ).fetchone()[0]
        later = conn.execute(
            "SELECT COUNT(*) FROM schedule WHERE next_due > ?", (now,)
        ).fetchone()[0]
        buckets = []
        for bucket_id, lower, upper in bucket_thresholds():
            count = conn.execute(
                "SELECT COUNT(*) FROM schedule WHERE interval >= ? AND interval < ?",
                (lower, upper),
            ).fetchone()[0]
            buckets.append(Bucket(id=bucket_id, count=count))
    return Counts(active=active, later=later, unlearned=unlearned, buckets=buckets)


def stars(width: int, value: int, total: int) -> str:
    """Fixed-width bar like '|****      |' showing value as a share of total."""
    thresh = (value / total * width) if total else 0.0
    return "|" + "".join("*" if i < thresh else " " for i in range(width)) + "|"
