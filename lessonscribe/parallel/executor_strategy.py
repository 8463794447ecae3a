"""
Execution strategies for chunk-level model calls.

Separates "what to run" (one extraction call per chunk) from "how to run it"
(a thread pool in production, inline execution in tests). The chunk
processor only ever talks to the ExecutorStrategy interface, so tests can
swap in SequentialStrategy and get deterministic ordering without threads.

Usage:
    # Production: one worker per chunk in the current batch
    strategy = ThreadPoolStrategy(max_workers=config.chunking.batch_size)

    # Testing
    strategy = SequentialStrategy()

    future = strategy.submit(extract_chunk, chunk)
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Callable, TypeVar
import os

T = TypeVar('T')
R = TypeVar('R')


class ExecutorStrategy(ABC):
    """
    Abstract strategy for running chunk tasks.

    Attributes:
        max_workers: Number of concurrent workers (1 for sequential).
    """

    max_workers: int

    @abstractmethod
    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        """
        Submit a single task for execution.

        Args:
            fn: Function to execute.
            item: Argument to pass to the function.

        Returns:
            Future object that will contain the result.
        """

    @abstractmethod
    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """
        Shutdown the executor and release resources.

        Args:
            wait: If True, wait for pending tasks to complete.
            cancel_futures: If True, cancel futures that have not started.
        """

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False


class ThreadPoolStrategy(ExecutorStrategy):
    """
    Thread-based execution for backend calls.

    Model calls are HTTP requests that spend nearly all their time waiting on
    the Ollama server, so threads give real concurrency here despite the GIL.
    The pool size is the batch size: a batch of N chunks never has more than
    N requests in flight.

    Args:
        max_workers: Maximum concurrent threads. Defaults to min(cpu_count, 4).

    Example:
        with ThreadPoolStrategy(max_workers=2) as strategy:
            futures = [strategy.submit(extract_chunk, c) for c in batch]
    """

    def __init__(self, max_workers: int = None):
        if max_workers is None:
            # Local Ollama servers serialize most work anyway; more threads only queue
            max_workers = min(os.cpu_count() or 4, 4)

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="lessonscribe-chunk",
        )
        self.max_workers = max_workers

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        """Submit a single task to the thread pool."""
        return self._executor.submit(fn, item)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)


class SequentialStrategy(ExecutorStrategy):
    """
    Inline execution strategy for tests and single-worker runs.

    submit() runs the function immediately and hands back an already-completed
    Future, so callers written against ThreadPoolStrategy work unchanged.

    Example:
        processor = ChunkProcessor(backend, strategy_factory=lambda n: SequentialStrategy())
    """

    def __init__(self):
        self.max_workers = 1

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        """Execute synchronously and return a completed Future."""
        future: Future = Future()
        try:
            result = fn(item)
            future.set_result(result)
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """No-op (no resources to release)."""
