"""
Slow-fail execution of independent operations.

Every operation runs to completion regardless of its siblings. Nothing is
cancelled on the first failure; failures are gathered and raised together.
"""
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence, TypeVar

from ..core.exceptions import AggregateGroupError


T = TypeVar('T')

DEFAULT_MAX_WORKERS = 32


def collect(futures: Sequence[Future]) -> List[T]:
    """Wait for every future and aggregate failures.

    Args:
        futures: Already-submitted futures

    Returns:
        Results in the order of ``futures`` when all succeeded

    Raises:
        AggregateGroupError: If any future failed. Errors are in completion order.
    """
    errors = []
    for future in as_completed(futures):
        error = future.exception()
        if error is not None:
            errors.append(error)

    if errors:
        raise AggregateGroupError(errors)

    return [future.result() for future in futures]


def run_all(tasks: Sequence[Callable[[], T]], max_workers: Optional[int] = None) -> List[T]:
    """Run zero-argument callables concurrently with slow-fail semantics.

    Args:
        tasks: Callables to run
        max_workers: Thread pool size. Defaults to one thread per task, capped.

    Returns:
        Results in the order of ``tasks``

    Raises:
        AggregateGroupError: If any task raised
    """
    if not tasks:
        return []

    workers = max_workers or min(DEFAULT_MAX_WORKERS, len(tasks))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(task) for task in tasks]
        return collect(futures)
