"""
Bounded worker pool for query execution.

Wraps a ThreadPoolExecutor so that a submitted job never raises into the
caller and a job that escapes its own error handling is still logged.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

logger = logging.getLogger(__name__)


class QueryExecutor:
    """Runs query jobs on a fixed number of worker threads."""

    def __init__(self, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mql-query")
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, job: Callable[..., None], *args) -> Future:
        future = self._pool.submit(job, *args)
        future.add_done_callback(self._report_failure)
        return future

    @staticmethod
    def _report_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Query job escaped its error handling: {error!r}", exc_info=error)

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._pool.shutdown(wait=wait, cancel_futures=True)
