"""Background worker for retention sweeps triggered after Delete."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class SweepWorker:
    """Single-thread executor with its own error channel.

    Failures are logged and reported through `errors`; they never propagate
    to the code that submitted the task. Store writes in the task are
    serialized with foreground writes by the store lock.
    """

    def __init__(self, name: str = "recyclebin-sweep"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._futures: List[Future] = []
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(self._log_failure)
        with self._lock:
            self._futures.append(future)
        return future

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"Background sweep failed: {exc}")

    @property
    def errors(self) -> List[BaseException]:
        with self._lock:
            futures = list(self._futures)
        return [
            f.exception()
            for f in futures
            if f.done() and not f.cancelled() and f.exception() is not None
        ]

    def pending(self) -> int:
        with self._lock:
            return sum(1 for f in self._futures if not f.done())

    def drain(self, timeout: Optional[float] = None) -> List[BaseException]:
        """Wait for submitted tasks and return their errors."""
        with self._lock:
            futures = list(self._futures)
        if futures:
            wait(futures, timeout=timeout)
        return self.errors

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "SweepWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)
