from enum import Enum
from typing import List

from pydantic import BaseModel


class BucketId(str, Enum):
    SEC = "sec"
    MIN = "min"
    HR = "hr"
    DAY = "day"
    MON = "mon"

    @property
    def is_learned(self) -> bool:
        """Intervals of a day or more count as learned."""
        return self in (BucketId.DAY, BucketId.MON)


class Bucket(BaseModel):
    id: BucketId
    count: int = 0

    @property
    def name(self) -> str:
        return self.id.value


class Counts(BaseModel):
    active: int
    later: int
    unlearned: int
    buckets: List[Bucket]

    @property
    def scheduled(self) -> int:
        return self.active + self.later

    @property
    def learned(self) -> int:
        return sum(b.count for b in self.buckets if b.id.is_learned)

    @property
    def learning(self) -> int:
        return sum(b.count for b in self.buckets if not b.id.is_learned)

    def bucket(self, bucket_id: BucketId) -> Bucket:
        for b in self.buckets:
            if b.id == bucket_id:
                return b
        raise KeyError(bucket_id)
