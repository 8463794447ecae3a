"""
Parallel processing utilities for LessonScribe.

Strategy Pattern-based execution of chunk-level backend calls, with batched
scheduling, progress aggregation, cancellation and bounded retry.

Components:
    ExecutorStrategy - Abstract base class defining the execution interface
    ThreadPoolStrategy - Thread-based parallel execution (production)
    SequentialStrategy - Inline execution (testing/debugging)
    BatchTaskRunner - Ordered batch scheduling with delays and cancellation
    TaskResult - Dataclass for task execution results
    ProgressAggregator - Thread-safe progress aggregation
    with_retry - Bounded retry helper

Testing Example:
    from lessonscribe.parallel import SequentialStrategy, BatchTaskRunner

    runner = BatchTaskRunner(strategy=SequentialStrategy(), batch_size=2)
    results = runner.run(process_chunk, items)
    assert [r.task_id for r in results] == [task_id for task_id, _ in items]
"""

from .executor_strategy import (
    ExecutorStrategy,
    ThreadPoolStrategy,
    SequentialStrategy,
)
from .task_runner import BatchTaskRunner, TaskResult
from .progress_aggregator import ProgressAggregator, ProgressState
from .retry import with_retry

__all__ = [
    # Strategies
    'ExecutorStrategy',
    'ThreadPoolStrategy',
    'SequentialStrategy',
    # Task runner
    'BatchTaskRunner',
    'TaskResult',
    # Progress tracking
    'ProgressAggregator',
    'ProgressState',
    # Retry
    'with_retry',
]
