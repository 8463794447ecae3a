"""
Progress aggregation for parallel chunk tasks.

Collects start/completion events from concurrently running chunk tasks and
forwards unified updates to a single progress callback. The completed-chunk
counter is shared between worker threads, so every mutation happens under
a lock.

Completions always produce an update; start messages are throttled so a
batch of simultaneous starts doesn't flood the caller.

Usage:
    aggregator = ProgressAggregator(on_update, throttle_ms=0)
    aggregator.set_total(len(chunks))

    # In worker threads:
    aggregator.start("doc-1-chunk-0", "Extracting facts from chunk 1/4")
    aggregator.complete("doc-1-chunk-0")

    # on_update receives (completed, total, message), e.g.
    # (0, 4, "Extracting facts from chunk 1/4")
    # (1, 4, "Processed 1/4 chunks")
"""

from dataclasses import dataclass, field
from typing import Callable
import time
import threading

from lessonscribe.logging_config import debug_log


@dataclass
class ProgressState:
    """
    Tracks progress across parallel chunk tasks.

    Not thread-safe on its own; ProgressAggregator provides the locking.

    Attributes:
        total_tasks: Total number of chunks to process.
        completed_tasks: Number of chunks that have finished (success or failure).
        task_messages: Map of task_id -> current status message.
    """
    total_tasks: int
    completed_tasks: int = 0
    task_messages: dict = field(default_factory=dict)

    @property
    def percentage(self) -> int:
        """Integer percentage (0-100) of completed tasks."""
        if self.total_tasks == 0:
            return 0
        return int((self.completed_tasks / self.total_tasks) * 100)


class ProgressAggregator:
    """
    Thread-safe aggregator of chunk progress events.

    Args:
        on_update: Callback receiving (completed, total, message).
        throttle_ms: Minimum milliseconds between start-message updates
                     (0 = forward every event).

    A callback that raises is logged and ignored; progress reporting never
    aborts processing.
    """

    def __init__(self, on_update: Callable[[int, int, str], None] = None, throttle_ms: int = 0):
        self.on_update = on_update
        self.throttle_ms = throttle_ms
        self._state = ProgressState(total_tasks=0)
        self._last_update = 0.0
        self._lock = threading.Lock()

    def set_total(self, count: int) -> None:
        """Set total number of tasks and reset state."""
        with self._lock:
            self._state = ProgressState(total_tasks=count)
            self._last_update = 0.0

    def start(self, task_id: str, message: str) -> None:
        """Record that a task started (throttled update)."""
        with self._lock:
            self._state.task_messages[task_id] = message
            self._maybe_send_update()

    def complete(self, task_id: str) -> None:
        """Mark a task as finished (always sends update)."""
        with self._lock:
            self._state.completed_tasks += 1
            self._state.task_messages.pop(task_id, None)
            self._send_update()

    def _maybe_send_update(self) -> None:
        """Must be called while holding _lock."""
        now = time.time() * 1000
        if now - self._last_update >= self.throttle_ms:
            self._send_update()

    def _send_update(self) -> None:
        """
        Forward aggregated progress to the callback.

        Shows up to 3 concurrent task messages. Must be called while holding _lock.
        """
        messages = list(self._state.task_messages.values())

        if messages:
            combined = " | ".join(messages[:3])
            if len(messages) > 3:
                combined += f" (+{len(messages) - 3} more)"
        else:
            combined = f"Processed {self._state.completed_tasks}/{self._state.total_tasks} chunks"

        self._last_update = time.time() * 1000

        if self.on_update is None:
            return
        try:
            self.on_update(self._state.completed_tasks, self._state.total_tasks, combined)
        except Exception as e:
            debug_log(f"[ProgressAggregator] Progress callback error (ignored): {e}")

    @property
    def completed(self) -> int:
        """Number of completed tasks (thread-safe)."""
        with self._lock:
            return self._state.completed_tasks

    @property
    def total(self) -> int:
        """Total number of tasks (thread-safe)."""
        with self._lock:
            return self._state.total_tasks

    @property
    def percentage(self) -> int:
        with self._lock:
            return self._state.percentage
