"""Bounded worker pool shared by the hasher, uploader and deleter."""

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Sequence, TypeVar

from ..utils import DEFAULT_CONCURRENCY

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class BoundedPool:
    """Runs a function over a list of items with at most N in flight.

    ``concurrency`` worker threads pull ``(index, item)`` pairs from a shared
    queue and store results by index, so the output order matches the input
    order regardless of completion order.

    After the first failure no worker starts a new item. Items already in
    flight run to completion and every worker is joined before the first
    error is re-raised, so no work outlives the call.

    Examples:
        >>> pool = BoundedPool(concurrency=3)
        >>> pool.map(lambda x: x * 2, [1, 2, 3])
        [2, 4, 6]
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY, name: str = "pool"):
        """Initialize the pool.

        Args:
            concurrency: Maximum number of items processed at once
            name: Name used for worker threads and log messages
        """
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self.concurrency = concurrency
        self.name = name

    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        """Apply ``fn`` to every item and return the results in input order.

        Args:
            fn: Function to run for each item
            items: Items to process

        Returns:
            List of results aligned with ``items``

        Raises:
            Exception: The first exception raised by ``fn``
        """
        if not items:
            return []

        work: "queue.Queue[tuple[int, T]]" = queue.Queue()
        for index, item in enumerate(items):
            work.put((index, item))

        results: list[Optional[R]] = [None] * len(items)
        stop = threading.Event()
        lock = threading.Lock()
        errors: list[Exception] = []

        def worker() -> None:
            while not stop.is_set():
                try:
                    index, item = work.get_nowait()
                except queue.Empty:
                    return
                try:
                    results[index] = fn(item)
                except Exception as e:
                    with lock:
                        errors.append(e)
                    stop.set()
                    return

        worker_count = min(self.concurrency, len(items))
        logger.debug(
            "%s: processing %d item(s) with %d worker(s)",
            self.name,
            len(items),
            worker_count,
        )
        with ThreadPoolExecutor(
            max_workers=worker_count, thread_name_prefix=self.name
        ) as executor:
            futures = [executor.submit(worker) for _ in range(worker_count)]
            try:
                for future in as_completed(futures):
                    future.result()
            except KeyboardInterrupt:
                # Let in-flight items finish, start nothing new
                stop.set()
                raise

        if errors:
            logger.debug(
                "%s: %d item(s) not started after failure",
                self.name,
                work.qsize(),
            )
            raise errors[0]

        return results  # type: ignore[return-value]
