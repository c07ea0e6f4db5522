"""Per-well task execution with an optional worker pool and cooperative cancellation."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, TypeVar

from mitomi.core.exceptions import AnalysisCancelled

T = TypeVar("T")

_SKIPPED = object()


class CancelToken:
    """Thread-safe cancellation flag checked between wells."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def iter_wells(
    func: Callable[[int], T],
    num_wells: int,
    stage: str,
    workers: int = 1,
    cancel: CancelToken | None = None,
    progress_callback: Callable[[int, int], None] | None = None,
) -> Iterator[tuple[int, T]]:
    """Run ``func(m)`` for every well and yield ``(m, result)`` in index order.

    Wells share nothing but read-only inputs, so with ``workers > 1`` they
    run on a thread pool. The cancel token is checked before each well is
    started; wells already finished are still yielded, then
    ``AnalysisCancelled`` is raised.

    Args:
        func: Per-well task.
        num_wells: Number of wells (tasks are ``range(num_wells)``).
        stage: Stage name used in the cancellation error.
        workers: Worker threads. 1 runs inline.
        cancel: Optional cancellation token.
        progress_callback: Optional callback(completed, total).

    Raises:
        AnalysisCancelled: If the token was set before all wells ran.
    """
    completed = 0

    if workers <= 1:
        for m in range(num_wells):
            if cancel is not None and cancel.cancelled:
                raise AnalysisCancelled(stage, completed, num_wells)
            result = func(m)
            completed += 1
            yield m, result
            if progress_callback:
                progress_callback(completed, num_wells)
        return

    def guarded(m: int) -> object:
        if cancel is not None and cancel.cancelled:
            return _SKIPPED
        return func(m)

    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [executor.submit(guarded, m) for m in range(num_wells)]
        for m, future in enumerate(futures):
            result = future.result()
            if result is _SKIPPED:
                continue
            completed += 1
            yield m, result  # type: ignore[misc]
            if progress_callback:
                progress_callback(completed, num_wells)
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    if completed < num_wells:
        raise AnalysisCancelled(stage, completed, num_wells)
