"""Thread pool scatter/gather helpers."""
from __future__ import annotations

import concurrent.futures
from typing import Callable, Iterable, List, TypeVar

T = TypeVar("T")

DEFAULT_WORKERS = 5


def gather(tasks: Iterable[Callable[[], T]], max_workers: int = DEFAULT_WORKERS) -> List[T]:
    """Run ``tasks`` concurrently and return their results in submission order.

    The first failure observed is re-raised. Tasks that have not started yet
    are cancelled; the pool still waits for the running ones before raising.
    """
    tasks = list(tasks)
    if not tasks:
        return []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(tasks)))) as executor:
        futures = [executor.submit(task) for task in tasks]
        try:
            for fut in concurrent.futures.as_completed(futures):
                fut.result()
        except BaseException:
            for fut in futures:
                fut.cancel()
            raise
        return [fut.result() for fut in futures]


def peak_concurrency(max_workers: int = DEFAULT_WORKERS) -> int:
    """Most requests an audit run can have in flight at once.

    Repositories fan out over three sources and the review source fans out
    again over pull requests; author enrichment runs after collection.
    """
    workers = max(1, max_workers)
    return workers * (workers + 2)
