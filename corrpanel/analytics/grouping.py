"""
Explicit-key grouping helpers.

"Group by" here means: partition a sequence by a key function, then map an
aggregation over each partition. The key is always passed in; nothing
depends on grouped state stored on a shared table object.
"""

import math
from typing import Callable, Dict, Hashable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def partition_by(records: Iterable[T], key: Callable[[T], Hashable]) -> Dict[Hashable, List[T]]:
    """
    Partition records by key.

    Postconditions:
        - Partitions appear in first-seen key order
        - Records keep their input order within a partition
        - Every record lands in exactly one partition

    Args:
        records: Records to partition
        key: Function mapping a record to its group key

    Returns:
        Dictionary of key -> list of records
    """
    partitions: Dict[Hashable, List[T]] = {}
    for record in records:
        partitions.setdefault(key(record), []).append(record)
    return partitions


def aggregate_by(
    records: Iterable[T],
    key: Callable[[T], Hashable],
    func: Callable[[List[T]], R]
) -> Dict[Hashable, R]:
    """
    Aggregate each partition of records with func.

    Args:
        records: Records to aggregate
        key: Function mapping a record to its group key
        func: Aggregation applied to each partition's record list

    Returns:
        Dictionary of key -> aggregate, in first-seen key order
    """
    return {k: func(group) for k, group in partition_by(records, key).items()}


def nanmean(values: Iterable[float]) -> float:
    """Mean of the defined (non-NaN) values; NaN when there are none."""
    total = 0.0
    count = 0
    for v in values:
        if not math.isnan(v):
            total += v
            count += 1
    return total / count if count else math.nan
