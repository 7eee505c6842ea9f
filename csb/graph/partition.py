"""Partitioned execution: pure per-partition work plus an ordered merge.

Every data-parallel step (histogram aggregation, attachment sampling,
Kronecker cell sampling) is written as a function of one partition slice.
map_partitions() runs those functions, optionally on a thread pool, and
always returns results in partition order so merges are deterministic
regardless of completion order.
"""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

import numpy as np

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def split_range(n: int, partitions: int) -> list[tuple[int, int]]:
    """Split ``range(n)`` into at most ``partitions`` contiguous non-empty slices."""
    if n <= 0:
        return []
    bounds = np.linspace(0, n, min(partitions, n) + 1).astype(np.int64)
    return [
        (int(start), int(end))
        for start, end in zip(bounds[:-1], bounds[1:])
        if end > start
    ]


def map_partitions(
    fn: Callable[[T], R], tasks: Sequence[T], workers: int = 1
) -> list[R]:
    """Apply ``fn`` to every task and return the results in task order.

    With ``workers > 1`` tasks run on a thread pool; numpy releases the GIL
    for the heavy array work done per partition.
    """
    if workers <= 1 or len(tasks) <= 1:
        return [fn(task) for task in tasks]

    results: dict[int, R] = {}
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futures = {ex.submit(fn, task): i for i, task in enumerate(tasks)}
        for fut in as_completed(futures):
            results[futures[fut]] = fut.result()
    log.debug("Processed %d partitions on %d workers", len(tasks), workers)
    return [results[i] for i in range(len(tasks))]
