"""Bounded execution of external collaborator calls.

Notifier and certificate generator calls run on a small worker pool so the
caller can stop waiting after ``timeout`` seconds. A timed-out call keeps
running in its worker and its result is discarded. Until it returns, that
worker is unavailable, so a timeout is logged with the number of calls
still occupying workers.
"""

import concurrent.futures
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CollaboratorPool:
    """Thread pool that runs collaborator calls with a deadline."""

    def __init__(self, timeout: float, max_workers: int = 4):
        self.timeout = timeout
        self.max_workers = max_workers
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="collaborator",
        )
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> int:
        """Calls submitted and not yet finished, including abandoned ones."""
        with self._lock:
            return self._in_flight

    def _finished(self, future: concurrent.futures.Future) -> None:
        with self._lock:
            self._in_flight -= 1

    def call(self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> Any:
        """
        Run ``fn`` and wait for its result.

        Raises:
            TimeoutError: If the call does not finish in time
            Exception: Whatever ``fn`` raised
        """
        with self._lock:
            self._in_flight += 1
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(self._finished)

        try:
            return future.result(timeout=timeout if timeout is not None else self.timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            name = getattr(fn, "__qualname__", fn)
            logger.warning(
                f"{name} timed out; {self.in_flight}/{self.max_workers} "
                f"collaborator workers still busy"
            )
            raise TimeoutError(f"{name} timed out")

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
