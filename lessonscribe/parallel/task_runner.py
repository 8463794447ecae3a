"""
Batched task runner for chunk processing.

Runs a function over an ordered list of items in fixed-size batches. Each
batch is submitted to the executor strategy at once and awaited together;
the runner waits a configurable delay between batches to give the backend
breathing room, and supports cancellation between batches.

Completion callbacks fire as tasks finish (as_completed), but the returned
results always come back in submission order, so chunk_index order
survives parallel execution.

Usage:
    runner = BatchTaskRunner(
        strategy=ThreadPoolStrategy(max_workers=2),
        batch_size=2,
        batch_delay=0.5,
        on_task_start=lambda task_id: print(f"{task_id} started"),
    )

    items = [(chunk.id, chunk) for chunk in chunks]
    results = runner.run(extract_chunk, items)

    for result in results:
        if result.success:
            print(f"{result.task_id}: {result.result}")
        elif result.cancelled:
            print(f"{result.task_id} never ran")
        else:
            print(f"{result.task_id} failed: {result.error}")
"""

from concurrent.futures import Future, as_completed
from dataclasses import dataclass
from typing import Callable, Any, Iterator
import threading

from lessonscribe.logging_config import debug_log

from .executor_strategy import ExecutorStrategy


@dataclass
class TaskResult:
    """
    Result of a single task.

    Attributes:
        task_id: Identifier for the task (chunk id).
        success: True if task completed without exception.
        result: Return value from the task function (if success=True).
        error: Exception raised by the task (if success=False).
        cancelled: True if the task was never scheduled because the run was cancelled.
    """
    task_id: str
    success: bool
    result: Any = None
    error: Exception = None
    cancelled: bool = False


class BatchTaskRunner:
    """
    Runs tasks in ordered batches using a configurable ExecutorStrategy.

    Features:
    - Batches of batch_size tasks submitted together and awaited together
    - Delay between batches (optionally before every batch, for sequential pacing)
    - Start/completion callbacks for progress tracking
    - Cancellation between batches via threading.Event
    - Per-task exception capture (one failure doesn't abort the batch)
    - Results returned in submission order

    Args:
        strategy: ExecutorStrategy implementation to use for execution.
        batch_size: Number of tasks submitted per batch.
        batch_delay: Seconds to wait between batches.
        delay_first: Also wait before the first batch.
        on_task_start: Optional callback (task_id) invoked as each task is submitted.
        on_task_complete: Optional callback (task_id, TaskResult) invoked as each task finishes.
    """

    def __init__(
        self,
        strategy: ExecutorStrategy,
        batch_size: int = 1,
        batch_delay: float = 0.0,
        delay_first: bool = False,
        on_task_start: Callable[[str], None] = None,
        on_task_complete: Callable[[str, TaskResult], None] = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self.strategy = strategy
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.delay_first = delay_first
        self.on_task_start = on_task_start
        self.on_task_complete = on_task_complete
        self._cancel_event = threading.Event()

    def run(
        self,
        fn: Callable[[Any], Any],
        items: list[tuple[str, Any]]
    ) -> list[TaskResult]:
        """
        Run function over items in batches.

        Args:
            fn: Function to execute for each item. Receives the payload.
            items: List of (task_id, payload) tuples, in the order results
                   should be returned.

        Returns:
            One TaskResult per item, in submission order. Items left
            unscheduled by cancel() come back with cancelled=True.
        """
        if not items:
            return []

        results: list[TaskResult] = []
        batches = [items[i:i + self.batch_size] for i in range(0, len(items), self.batch_size)]

        for batch_number, batch in enumerate(batches):
            if batch_number > 0 or self.delay_first:
                self._wait(self.batch_delay)

            if self._cancel_event.is_set():
                break

            debug_log(
                f"[BatchTaskRunner] Batch {batch_number + 1}/{len(batches)}: "
                f"{len(batch)} task(s)"
            )

            futures = {}
            for position, (task_id, payload) in enumerate(batch):
                if self.on_task_start:
                    self.on_task_start(task_id)
                futures[self.strategy.submit(fn, payload)] = (position, task_id)

            # Report each task as it finishes; store by position so the
            # returned list keeps submission order
            batch_results: list[TaskResult] = [None] * len(batch)
            for future in self._completion_order(futures):
                position, task_id = futures[future]
                try:
                    task_result = TaskResult(task_id=task_id, success=True, result=future.result())
                except Exception as e:
                    task_result = TaskResult(task_id=task_id, success=False, error=e)

                if self.on_task_complete:
                    self.on_task_complete(task_id, task_result)
                batch_results[position] = task_result

            results.extend(batch_results)

        for task_id, _ in items[len(results):]:
            results.append(TaskResult(task_id=task_id, success=False, cancelled=True))

        return results

    @staticmethod
    def _completion_order(futures: dict[Future, Any]) -> Iterator[Future]:
        """
        Yield futures as they finish.

        Futures already done at submission (always the case with
        SequentialStrategy) come first, in submission order; as_completed
        alone yields those in arbitrary order.
        """
        pending = []
        for future in futures:
            if future.done():
                yield future
            else:
                pending.append(future)
        yield from as_completed(pending)

    def _wait(self, seconds: float):
        """Sleep between batches, waking early on cancellation."""
        if seconds > 0:
            self._cancel_event.wait(seconds)

    def cancel(self):
        """
        Stop scheduling further batches.

        Tasks already submitted run to completion; the current batch is
        still awaited and returned normally.
        """
        debug_log("[BatchTaskRunner] Cancellation requested")
        self._cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancel_event.is_set()
