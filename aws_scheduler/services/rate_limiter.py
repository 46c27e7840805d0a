"""
Concurrency cap for throttled AWS APIs.
"""
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, TypeVar


T = TypeVar('T')

DEFAULT_CONCURRENCY = 10


class RateLimiter:
    """Admits queued tasks FIFO with at most ``concurrency`` running at once.

    Admission is a fixed-size worker pool: the pool's work queue is FIFO and a
    task only starts when one of the ``concurrency`` workers is free. The cap
    holds for the lifetime of the limiter, across every caller that queues on it.
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY, name: str = 'rate-limiter'):
        """Initialize the limiter.

        Args:
            concurrency: Maximum number of tasks executing at any instant
            name: Thread name prefix, useful in logs
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.concurrency = concurrency
        self._executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def active(self) -> int:
        """Number of tasks executing right now."""
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        """Highest number of simultaneously executing tasks observed."""
        with self._lock:
            return self._peak

    def queue(self, task: Callable[[], T]) -> 'Future[T]':
        """Queue a zero-argument task.

        The returned future carries the task's own result or exception.
        """
        return self._executor.submit(self._run, task)

    def _run(self, task: Callable[[], T]) -> T:
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)
        try:
            return task()
        finally:
            with self._lock:
                self._active -= 1

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> 'RateLimiter':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.shutdown()
