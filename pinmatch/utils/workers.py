"""
Bounded worker pools for per-record work.

Two regimes are used by the pipeline and never nested:

- ``run_per_item``: one task per record (record matching, companion probes).
- ``run_with_cursor``: a fixed set of workers pulling indices from a shared
  cursor, appending results under one lock (cluster unification).

Both return only after every worker has finished, and both downgrade a
failing item to a logged skip.
"""

import itertools
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from pinmatch.config import get_worker_limit

PROGRESS_EVERY = 100


@dataclass
class PoolRun:
    """Outcome of one pool pass: results in input order plus failed indices."""
    results: list[tuple[int, Any]] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def values(self) -> list[Any]:
        return [value for _, value in self.results]


def run_per_item(
    items: Sequence,
    fn: Callable[[Any], Any],
    max_workers: int | None = None,
    label: str = "items",
) -> PoolRun:
    """
    Run ``fn`` once per item, one task per item.

    Args:
        items: Work items
        fn: Callable applied to each item
        max_workers: Pool size (defaults to hardware threads)
        label: Noun used in progress messages

    Returns:
        PoolRun with results sorted by item index
    """
    run = PoolRun()
    if not items:
        return run

    max_workers = max_workers or get_worker_limit()
    total = len(items)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(fn, item): i for i, item in enumerate(items)}
        completed = 0
        for future in as_completed(futures):
            index = futures[future]
            completed += 1
            try:
                run.results.append((index, future.result()))
            except Exception as e:
                logger.warning(f"Skipping {label} #{index}: {e}")
                run.failed.append(index)
            if completed % PROGRESS_EVERY == 0:
                logger.info(f"Processed {completed}/{total} {label}")

    run.results.sort(key=lambda pair: pair[0])
    run.failed.sort()
    return run


def run_with_cursor(
    items: Sequence,
    fn: Callable[[Any], Any],
    max_workers: int,
    label: str = "items",
) -> PoolRun:
    """
    Run ``fn`` over items with a fixed number of workers sharing a cursor.

    Each worker repeatedly claims the next unprocessed index until the
    sequence is exhausted. Results are appended under a single lock and
    returned once all workers have joined.
    """
    run = PoolRun()
    total = len(items)
    if not total:
        return run

    cursor = itertools.count()
    cursor_lock = threading.Lock()
    results_lock = threading.Lock()
    done = 0

    def worker() -> None:
        nonlocal done
        while True:
            with cursor_lock:
                index = next(cursor)
            if index >= total:
                return
            try:
                value = fn(items[index])
            except Exception as e:
                logger.warning(f"Skipping {label} #{index}: {e}")
                with results_lock:
                    run.failed.append(index)
                continue
            with results_lock:
                run.results.append((index, value))
                done += 1
                if done % PROGRESS_EVERY == 0:
                    logger.info(f"Processed {done}/{total} {label}")

    workers = max(1, min(max_workers, total))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(worker) for _ in range(workers)]
        for future in as_completed(futures):
            future.result()

    run.results.sort(key=lambda pair: pair[0])
    run.failed.sort()
    return run
