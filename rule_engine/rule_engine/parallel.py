"""Fail-fast parallel map over a thread pool.

Used for the two parallel fan-outs of a run: evaluating data files during
``check`` and evaluating test scripts during ``test``.  Every unit of work
must be independent; nothing is shared between tasks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    fn: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: int | None = None,
) -> list[R]:
    """Apply *fn* to every item concurrently and return results in input order.

    The first exception raised by any task is re-raised here.  Tasks that
    have not started yet are cancelled; tasks already running are left to
    finish on their worker thread and their results are discarded.

    Parameters
    ----------
    fn:
        Callable applied to each item.
    items:
        Work items.  Consumed eagerly.
    max_workers:
        Thread pool size.  ``None`` uses the :class:`ThreadPoolExecutor`
        default.

    Returns
    -------
    list
        ``[fn(item) for item in items]``, in the same order as *items*.
    """
    work = list(items)
    if not work:
        return []

    results: list[R | None] = [None] * len(work)
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rulecheck")
    try:
        futures = {executor.submit(fn, item): index for index, item in enumerate(work)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    except BaseException:
        logger.debug("Parallel map aborted; cancelling pending work.")
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return results  # type: ignore[return-value]
