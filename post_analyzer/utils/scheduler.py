"""Single-thread delayed task scheduler.

Used by the throttle to run each admitted request's decrement ``delay_seconds``
after admission. One daemon thread drains a heap ordered by due time, so the
number of threads stays constant no matter how many requests are in flight.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a pending call; ``cancel()`` prevents it from running."""

    __slots__ = ("due_at", "fn", "args", "cancelled")

    def __init__(self, due_at: float, fn: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.due_at = due_at
        self.fn = fn
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        if not self.cancelled:
            self.fn(*self.args)


class DelayedTaskScheduler:
    """Run callables after a delay on a dedicated background thread.

    Attributes:
        name: Thread name, useful when reading thread dumps.
    """

    def __init__(
        self,
        *,
        name: str = "delayed-task-scheduler",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._clock = clock
        self._heap: list[tuple[float, int, ScheduledTask]] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._thread: threading.Thread | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        with self._cond:
            return sum(1 for _, _, task in self._heap if not task.cancelled)

    def start(self) -> None:
        """Start the worker thread (no-op when already running)."""
        with self._cond:
            if self.running:
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logger.debug("scheduler.started", extra={"scheduler": self.name})

    def call_later(self, delay_seconds: float, fn: Callable[..., Any], *args: Any) -> ScheduledTask:
        """Schedule ``fn(*args)`` to run after ``delay_seconds``.

        Args:
            delay_seconds: Non-negative delay.
            fn: Callable to invoke on the scheduler thread.
            *args: Positional arguments for ``fn``.

        Returns:
            ScheduledTask that can be cancelled.

        Raises:
            ValueError: If delay_seconds is negative.
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

        task = ScheduledTask(self._clock() + delay_seconds, fn, args)
        with self._cond:
            heapq.heappush(self._heap, (task.due_at, next(self._seq), task))
            self._cond.notify()
        return task

    def shutdown(self, *, run_pending: bool = False, timeout: float | None = 5.0) -> None:
        """Stop the worker thread.

        Args:
            run_pending: Run every task still queued (in due order) before returning.
            timeout: Seconds to wait for the worker thread to exit.
        """
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
            thread = self._thread
            self._thread = None

        if thread is not None:
            thread.join(timeout)

        with self._cond:
            leftovers = [task for _, _, task in sorted(self._heap)]
            self._heap.clear()

        if run_pending:
            for task in leftovers:
                self._run_task(task)

        logger.debug(
            "scheduler.stopped",
            extra={"scheduler": self.name, "dropped": 0 if run_pending else len(leftovers)},
        )

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._stopping:
                    if not self._heap:
                        self._cond.wait()
                        continue
                    due_at = self._heap[0][0]
                    wait_for = due_at - self._clock()
                    if wait_for <= 0:
                        break
                    self._cond.wait(wait_for)
                if self._stopping:
                    return
                _, _, task = heapq.heappop(self._heap)
            self._run_task(task)

    def _run_task(self, task: ScheduledTask) -> None:
        try:
            task.run()
        except Exception:
            logger.exception(
                "scheduler.task_failed",
                extra={"scheduler": self.name, "task": getattr(task.fn, "__name__", repr(task.fn))},
            )
