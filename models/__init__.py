from .problem import Problem, ProblemCreate
from .stats import Bucket, BucketId, Counts

__all__ = ['Problem', 'ProblemCreate', 'Bucket', 'BucketId', 'Counts']
