"""
Background task dispatch port.

Used for fire-and-forget side effects that run after a write has committed
(invitation emails). A task failure must never propagate to the caller that
dispatched it; dispatchers log and record it instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class TaskStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"  # Handed to a background worker


@dataclass
class TaskResult:
    """Result of a dispatched task, as far as the dispatcher knows it."""

    name: str
    status: TaskStatus
    error: str | None = None
    execution_time_ms: int = 0


class TaskDispatcherPort(Protocol):
    def dispatch(self, name: str, task: Callable[[], object]) -> TaskResult:
        """
        Run or schedule the task.

        Must not raise for task failures; return/record a FAILURE result.
        """
        ...
