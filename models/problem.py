from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProblemBase(BaseModel):
    question: str
    answer: str


class ProblemCreate(ProblemBase):
    """One entry of a load file. ``next_due``/``interval`` import an item that is already being learned."""

    next_due: Optional[datetime] = None
    interval: Optional[timedelta] = Field(default=None, gt=timedelta(0))

    @model_validator(mode="after")
    def check_schedule_pair(self):
        if (self.next_due is None) != (self.interval is None):
            raise ValueError("next_due and interval must be given together")
        return self

    @property
    def is_learning(self) -> bool:
        return self.next_due is not None


class Problem(ProblemBase):
    """A problem together with its current schedule.

    Never-reviewed problems come back with ``is_new`` set and a synthetic
    schedule: due now, with the minimum interval.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    next_due: datetime
    interval: timedelta = Field(gt=timedelta(0))
    is_new: bool = False
