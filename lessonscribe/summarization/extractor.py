"""
Chunk Processor for Lesson Summarization.

Extracts structured lesson facts from each chunk via the text backend. This
is the MAP phase: every chunk is processed independently and the results are
merged later by the FactMerger (REDUCE phase).

Execution is configuration-driven:
- Sequential: one chunk at a time, each preceded by a short delay
- Parallel-batched: batch_size chunks submitted together to a thread pool,
  awaited together, with a delay between batches

Each chunk is retried on backend and parse errors. A chunk that exhausts
its retries is recorded as failed (parse_success=False, empty facts) and
never aborts its siblings. Results always come back in chunk_index order.
"""

import threading
import time
from typing import Callable

from lessonscribe.ai.base import TextBackend
from lessonscribe.exceptions import BackendError, FactParseError
from lessonscribe.logging_config import debug_log, error
from lessonscribe.parallel import (
    BatchTaskRunner,
    ExecutorStrategy,
    ProgressAggregator,
    SequentialStrategy,
    ThreadPoolStrategy,
    with_retry,
)
from lessonscribe.processing_config import ProcessingConfig
from lessonscribe.prompt_template_manager import PromptTemplateManager

from .chunker import TextChunk
from .json_parsing import parse_fact_response
from .prompts import build_style_section
from .result_types import ChunkFacts, StyleGuide

CANCELLED_ERROR = "cancelled"

# (completed_chunks, total_chunks, status)
ChunkProgressCallback = Callable[[int, int, str], None]


def default_strategy_factory(max_workers: int) -> ExecutorStrategy:
    return ThreadPoolStrategy(max_workers=max_workers)


class ChunkProcessor:
    """
    Extracts facts from chunks with retry and per-chunk error isolation.

    Example:
        processor = ChunkProcessor(OllamaClient())
        chunk_facts = processor.process(chunks, style_guide, document.id, config, on_progress)
        failed = [cf for cf in chunk_facts if not cf.parse_success]
    """

    def __init__(
        self,
        backend: TextBackend,
        prompt_manager: PromptTemplateManager | None = None,
        strategy_factory: Callable[[int], ExecutorStrategy] = default_strategy_factory,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            backend: Text backend used for extraction calls
            prompt_manager: Template source (default: built-in + user prompts)
            strategy_factory: Builds the executor for parallel runs from a worker count
            sleep: Sleep function for retry delays (injected by tests)
        """
        self.backend = backend
        self.prompt_manager = prompt_manager or PromptTemplateManager()
        self.strategy_factory = strategy_factory
        self._sleep = sleep
        self._cancel_event = threading.Event()
        self._runner: BatchTaskRunner | None = None
        self._runner_lock = threading.Lock()

    def process(
        self,
        chunks: list[TextChunk],
        style_guide: StyleGuide,
        document_id: str,
        config: ProcessingConfig,
        on_progress: ChunkProgressCallback | None = None,
    ) -> list[ChunkFacts]:
        """
        Extract facts from every chunk.

        Args:
            chunks: Chunks in chunk_index order
            style_guide: Style parameters embedded in the prompt
            document_id: Owning document (for logging)
            config: Retry, timeout, batching and delay settings
            on_progress: Optional callback(completed, total, status)

        Returns:
            One ChunkFacts per chunk, in chunk order
        """
        if not chunks:
            return []

        total = len(chunks)
        chunk_numbers = {chunk.id: position + 1 for position, chunk in enumerate(chunks)}
        aggregator = ProgressAggregator(on_progress)
        aggregator.set_total(total)
        style_section = build_style_section(style_guide)

        parallel = config.runs_in_parallel and total > 1
        if parallel:
            batch_size = config.chunking.batch_size
            strategy = self.strategy_factory(batch_size)
            runner_options = dict(batch_size=batch_size, batch_delay=config.batch_delay, delay_first=False)
        else:
            strategy = SequentialStrategy()
            runner_options = dict(batch_size=1, batch_delay=config.chunk_delay, delay_first=True)

        debug_log(
            f"[ChunkProcessor] {document_id}: {total} chunks, "
            f"{'parallel batches of ' + str(runner_options['batch_size']) if parallel else 'sequential'}, "
            f"max_retries={config.max_retries}, timeout={config.fact_extraction_timeout}s"
        )

        runner = BatchTaskRunner(
            strategy=strategy,
            on_task_start=lambda task_id: aggregator.start(
                task_id, f"Extracting facts from chunk {chunk_numbers[task_id]}/{total}"
            ),
            on_task_complete=lambda task_id, _result: aggregator.complete(task_id),
            **runner_options,
        )
        with self._runner_lock:
            self._runner = runner
            if self._cancel_event.is_set():
                runner.cancel()

        try:
            with strategy:
                results = runner.run(
                    lambda chunk: self.extract(chunk, style_section, config),
                    [(chunk.id, chunk) for chunk in chunks],
                )
        finally:
            with self._runner_lock:
                self._runner = None

        chunk_facts = []
        for chunk, task_result in zip(chunks, results):
            if task_result.success:
                chunk_facts.append(task_result.result)
            elif task_result.cancelled:
                chunk_facts.append(self._failed(chunk, CANCELLED_ERROR))
            else:
                error(f"[ChunkProcessor] Unexpected error on chunk {chunk.id}: {task_result.error}")
                chunk_facts.append(self._failed(chunk, str(task_result.error)))

        succeeded = sum(1 for cf in chunk_facts if cf.parse_success)
        debug_log(f"[ChunkProcessor] {document_id}: {succeeded}/{total} chunks extracted")
        return chunk_facts

    def extract(self, chunk: TextChunk, style_section: str, config: ProcessingConfig) -> ChunkFacts:
        """
        Extract facts from one chunk, retrying backend and parse failures.

        Returns a failed ChunkFacts (never raises) once retries are exhausted.
        """
        prompt = self.prompt_manager.render(
            "fact-extraction",
            chunk_text=chunk.text,
            chunk_number=chunk.chunk_index + 1,
            style_section=style_section,
        )
        messages = [{"role": "user", "content": prompt}]
        last_response = ""

        def attempt() -> tuple[dict, str]:
            nonlocal last_response
            response = self.backend.chat(messages, timeout=config.fact_extraction_timeout)
            last_response = response
            return parse_fact_response(response).unwrap(), response

        try:
            facts, response = with_retry(
                attempt,
                max_attempts=config.max_retries + 1,
                delay=config.retry_delay,
                retry_on=(BackendError, FactParseError),
                label=f"extract {chunk.id}",
                sleep=self._sleep,
            )
        except (BackendError, FactParseError) as e:
            kind = "parse" if isinstance(e, FactParseError) else "backend"
            error(f"[ChunkProcessor] Chunk {chunk.id} failed after {config.max_retries + 1} attempt(s) ({kind}): {e}")
            return self._failed(chunk, str(e), last_response)

        return ChunkFacts(
            chunk_id=chunk.id,
            chunk_index=chunk.chunk_index,
            facts=facts,
            parse_success=True,
            raw_response=response,
        )

    def cancel(self):
        """
        Stop scheduling further batches.

        In-flight calls finish; chunks never scheduled are recorded as failed
        with error "cancelled".
        """
        with self._runner_lock:
            self._cancel_event.set()
            if self._runner is not None:
                self._runner.cancel()

    def reset(self):
        """Clear a previous cancellation so the processor can run again."""
        self._cancel_event.clear()

    @staticmethod
    def _failed(chunk: TextChunk, message: str, raw_response: str = "") -> ChunkFacts:
        return ChunkFacts(
            chunk_id=chunk.id,
            chunk_index=chunk.chunk_index,
            facts={},
            parse_success=False,
            raw_response=raw_response,
            error=message,
        )
