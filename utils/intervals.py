import random
from datetime import timedelta
from typing import Callable, Optional

from db.errors import InvalidFactorError

# Grade (1 = totally wrong ... 4 = totally right) to interval multiplier.
FACTOR_MULTIPLIERS = {
    1: 0.25,
    2: 0.90,
    3: 1.20,
    4: 2.20,
}

# Floor for any computed interval, and the starting interval of a new problem.
MIN_INTERVAL = timedelta(seconds=5)

# Ceiling for any computed interval, keeping next_due well inside datetime range.
MAX_INTERVAL = timedelta(days=365 * 100)

JITTER_LOW = 0.75
JITTER_HIGH = 1.25

Jitter = Callable[[], float]


def validate_factor(factor) -> int:
    """Return ``factor`` if it is a grade 1-4, raise InvalidFactorError otherwise."""
    if isinstance(factor, bool) or not isinstance(factor, int) or factor not in FACTOR_MULTIPLIERS:
        raise InvalidFactorError(factor)
    return factor


def make_jitter(rng: Optional[random.Random] = None) -> Jitter:
    """Build a jitter provider drawing uniformly from [JITTER_LOW, JITTER_HIGH]."""
    rng = rng or random.Random()

    def jitter() -> float:
        return rng.uniform(JITTER_LOW, JITTER_HIGH)

    return jitter


def next_interval(previous: timedelta, factor: int, jitter: float) -> timedelta:
    """Scale ``previous`` by the factor's multiplier and ``jitter``, clamped to [MIN_INTERVAL, MAX_INTERVAL]."""
    multiplier = FACTOR_MULTIPLIERS[validate_factor(factor)]
    seconds = previous.total_seconds() * multiplier * jitter
    seconds = min(seconds, MAX_INTERVAL.total_seconds())
    return max(MIN_INTERVAL, timedelta(seconds=seconds))
