"""
Task dispatcher adapters.

InlineDispatcher runs a task immediately on the caller's thread, after the
caller's write has already committed. ThreadDispatcher hands each task to a
daemon thread so the caller returns without waiting on it.

In both cases a failing task is logged and recorded, never re-raised.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from src.ports.tasks import TaskResult, TaskStatus

logger = logging.getLogger(__name__)


def _run_task(name: str, task: Callable[[], object]) -> TaskResult:
    start_time = time.monotonic()
    try:
        task()
    except Exception as e:
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.exception("Background task %s failed", name)
        return TaskResult(
            name=name,
            status=TaskStatus.FAILURE,
            error=str(e),
            execution_time_ms=elapsed_ms,
        )

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    return TaskResult(name=name, status=TaskStatus.SUCCESS, execution_time_ms=elapsed_ms)


class InlineDispatcher:
    """Synchronous dispatcher for tests and the CLI."""

    def __init__(self) -> None:
        self.results: list[TaskResult] = []

    def dispatch(self, name: str, task: Callable[[], object]) -> TaskResult:
        result = _run_task(name, task)
        self.results.append(result)
        return result

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if r.status == TaskStatus.FAILURE)


class ThreadDispatcher:
    """
    Runs each task on its own daemon thread.

    Completed results are collected under a lock; join() waits for in-flight
    tasks (used on shutdown and in tests).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []
        self.results: list[TaskResult] = []

    def dispatch(self, name: str, task: Callable[[], object]) -> TaskResult:
        thread = threading.Thread(
            target=self._worker, args=(name, task), name=f"task-{name}", daemon=True
        )
        with self._lock:
            self._threads.append(thread)
        thread.start()
        return TaskResult(name=name, status=TaskStatus.PENDING)

    def _worker(self, name: str, task: Callable[[], object]) -> None:
        result = _run_task(name, task)
        with self._lock:
            self.results.append(result)

    def join(self, timeout: float = 5.0) -> None:
        with self._lock:
            threads = list(self._threads)
            self._threads.clear()
        for thread in threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    "Background task %s still running after %.1fs", thread.name, timeout
                )

    @property
    def failure_count(self) -> int:
        with self._lock:
            return sum(1 for r in self.results if r.status == TaskStatus.FAILURE)
