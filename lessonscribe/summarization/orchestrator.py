"""
Summarization Orchestrator for LessonScribe.

Coordinates the full pipeline from a lesson transcript to a styled summary:
1. CHUNK: Model-aware (or fixed/paragraph) splitting, with an aggressive
   fallback configuration if the first attempt throws
2. SELECT: Fast path (single call on the raw text) or standard path
3. COMBINE: Merge over-fragmented chunk lists into fewer, larger chunks
4. MAP: Per-chunk fact extraction (sequential or parallel-batched)
5. REDUCE: Merge and deduplicate facts
6. RENDER: Raw and styled summaries

Progress is reported as (current, 100, status) at coarse milestones:
chunking 5, chunks ready 10, extraction 10-70, merge 75, raw summary 80,
styled summary 90, done 100.

This is the main entry point for summarizing documents.
"""

import threading
import time
from typing import Callable

from lessonscribe.ai.base import TextBackend
from lessonscribe.config import (
    DEFAULT_PRESET,
    FALLBACK_CHUNK_OVERLAP,
    FALLBACK_CHUNK_SIZE,
    FALLBACK_MAX_CHUNKS,
    get_model_config,
)
from lessonscribe.exceptions import ChunkingError, EmptyDocumentError
from lessonscribe.logging_config import Timer, debug_log, error, info, warning
from lessonscribe.processing_config import ChunkingConfig, ProcessingConfig, get_preset
from lessonscribe.prompt_template_manager import PromptTemplateManager

from .chunker import TextChunk, TextChunker
from .combiner import ChunkCombiner
from .extractor import ChunkProcessor, default_strategy_factory
from .merger import FactMerger
from .path_selector import PathDecision, select_path
from .result_types import (
    Document,
    FactSet,
    ProcessingStats,
    StyleGuide,
    SummarizationResult,
)
from .renderer import SummaryRenderer

# Progress callback signature: (current: int, total: int, status: str | None)
ProgressCallback = Callable[..., None]

PROGRESS_TOTAL = 100
PROGRESS_CHUNKING = 5
PROGRESS_CHUNKS_READY = 10
PROGRESS_EXTRACTION_END = 70
PROGRESS_MERGE = 75
PROGRESS_RAW_SUMMARY = 80
PROGRESS_STYLED_SUMMARY = 90

FALLBACK_CHUNKING = ChunkingConfig(
    chunk_size=FALLBACK_CHUNK_SIZE,
    overlap=FALLBACK_CHUNK_OVERLAP,
    max_chunks=FALLBACK_MAX_CHUNKS,
    parallel_processing=False,
    batch_size=1,
    mode="fallback",
    strategy="fixed",
    description="Aggressive fallback chunking",
)


class SummarizationOrchestrator:
    """
    Main coordinator for lesson summarization.

    Example:
        orchestrator = SummarizationOrchestrator(OllamaClient(model_name="gemma3:4b"))

        document = Document.from_file(Path("lesson_03.txt"))
        result = orchestrator.summarize_document(
            document,
            StyleGuide.from_yaml(Path("studio_voice.yaml")),
            config=get_preset("fast"),
            on_progress=lambda current, total, status=None: print(current, status),
        )
        print(result.styled_summary)

        # Later, without re-running extraction
        result = orchestrator.regenerate_styled_summary(result, style_guide)
    """

    def __init__(
        self,
        backend: TextBackend,
        prompt_manager: PromptTemplateManager | None = None,
        result_store=None,
        config: ProcessingConfig | None = None,
        strategy_factory=default_strategy_factory,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            backend: Text backend shared by all pipeline stages
            prompt_manager: Prompt templates (default: built-in + user prompts)
            result_store: Optional ResultStore that receives every result
            config: Default configuration for runs that pass none
            strategy_factory: Builds executors for parallel extraction
            sleep: Sleep function for retry delays (injected by tests)
        """
        self.backend = backend
        self.prompt_manager = prompt_manager or PromptTemplateManager()
        self.result_store = result_store
        self.config = config or get_preset(DEFAULT_PRESET)

        self.combiner = ChunkCombiner()
        self.processor = ChunkProcessor(
            backend,
            prompt_manager=self.prompt_manager,
            strategy_factory=strategy_factory,
            sleep=sleep,
        )
        self.merger = FactMerger()
        self.renderer = SummaryRenderer(backend, prompt_manager=self.prompt_manager)

        self._run_lock = threading.Lock()
        self._active_document: str | None = None

        debug_log(f"[Orchestrator] Initialized pipeline components (model={backend.model_name})")

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def summarize_document(
        self,
        document: Document,
        style_guide: StyleGuide,
        config: ProcessingConfig | None = None,
        model_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SummarizationResult:
        """
        Summarize one document.

        Args:
            document: Document to summarize
            style_guide: Style for the styled summary
            config: Processing configuration (default: the orchestrator's)
            model_id: Model used for context-window lookup (default: backend model)
            on_progress: Optional callback(current, total, status), 0-100 scale

        Returns:
            SummarizationResult; failed chunks are counted in processing_stats

        Raises:
            EmptyDocumentError: If the document has no text
            ChunkingError: If chunking fails with both configurations
            SummaryGenerationError: If the raw summary cannot be generated
        """
        config = config or self.config
        model_id = model_id or self.backend.model_name

        if not document.text.strip():
            raise EmptyDocumentError(f"Document {document.id} has no text to summarize")

        start_time = time.time()
        self.processor.reset()
        with self._run_lock:
            self._active_document = document.id

        info(f"[Orchestrator] Summarizing '{document.title}' ({len(document.text)} chars, model={model_id})")
        self._notify_progress(on_progress, 0, "Starting summarization...")

        try:
            chunks = self._phase_chunk(document, config, model_id, on_progress)

            context_window = get_model_config(model_id)["context_window"]
            decision = select_path(len(document.text), len(chunks), context_window)

            result = None
            if decision.fast_path:
                result = self._run_fast_path(document, style_guide, config, model_id, decision, on_progress, start_time)

            if result is None:
                result = self._run_standard_path(
                    document, chunks, style_guide, config, model_id, on_progress, start_time
                )
        finally:
            with self._run_lock:
                self._active_document = None

        self._save(result)
        self._notify_progress(
            on_progress,
            PROGRESS_TOTAL,
            f"Summary complete in {result.processing_stats.processing_time:.1f}s",
        )
        info(
            f"[Orchestrator] Done: {result.path} path, "
            f"{result.processing_stats.successful_chunks}/{result.processing_stats.total_chunks} chunks, "
            f"{result.processing_stats.processing_time:.1f}s"
        )
        return result

    def regenerate_styled_summary(
        self,
        result: SummarizationResult,
        style_guide: StyleGuide,
        regeneration_count: int | None = None,
        config: ProcessingConfig | None = None,
    ) -> SummarizationResult:
        """
        Produce a new, deliberately different styled summary from existing facts.

        Extraction is not re-run. The returned result is a copy with the new
        styled summary and counter; it is saved to the result store.

        Args:
            result: A previous summarization result
            style_guide: Style to apply (may differ from the original run)
            regeneration_count: Counter value (default: previous count + 1)
            config: Supplies summary_timeout

        Raises:
            ValueError: If regeneration_count does not increase
            SummaryGenerationError: If the backend fails
        """
        config = config or self.config
        if regeneration_count is None:
            regeneration_count = result.regeneration_count + 1
        elif regeneration_count <= result.regeneration_count:
            raise ValueError(
                f"regeneration_count must exceed {result.regeneration_count}, got {regeneration_count}"
            )

        with Timer(f"Regeneration #{regeneration_count}"):
            styled = self.renderer.regenerate_styled_summary(
                result.document,
                result.merged_facts,
                style_guide,
                regeneration_count,
                raw_summary=result.raw_summary,
                timeout=config.summary_timeout,
            )

        regenerated = result.with_styled_summary(styled, regeneration_count)
        self._save(regenerated)
        return regenerated

    def cancel(self):
        """Stop scheduling further extraction batches for the current run."""
        debug_log(f"[Orchestrator] Cancel requested (document={self._active_document})")
        self.processor.cancel()

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _phase_chunk(
        self,
        document: Document,
        config: ProcessingConfig,
        model_id: str,
        callback: ProgressCallback | None,
    ) -> list[TextChunk]:
        """
        Phase 1: chunking, retried once with the aggressive fallback config.

        Raises:
            ChunkingError: If both attempts fail or produce no chunks
        """
        self._notify_progress(callback, PROGRESS_CHUNKING, "Splitting document into chunks...")

        with Timer("Chunking") as timer:
            try:
                chunks = TextChunker(config.chunking).chunk(document.text, document.id, model_id)
            except Exception as e:
                warning(f"[Orchestrator] Chunking failed ({e}); retrying with fallback configuration")
                try:
                    chunks = TextChunker(FALLBACK_CHUNKING).chunk(document.text, document.id, model_id)
                except Exception as fallback_error:
                    error(f"[Orchestrator] Fallback chunking failed: {fallback_error}")
                    raise ChunkingError(
                        f"Chunking failed for document {document.id}: {fallback_error}"
                    ) from fallback_error

        if not chunks:
            raise ChunkingError(f"Chunking produced no chunks for document {document.id}")

        stats = TextChunker.get_chunking_stats(chunks)
        debug_log(
            f"[Orchestrator] Chunking: {stats['total_chunks']} chunks, "
            f"avg {stats['average_chunk_size']} chars in {timer.duration_ms:.0f}ms"
        )
        self._notify_progress(callback, PROGRESS_CHUNKS_READY, f"Created {len(chunks)} chunk(s)")
        return chunks

    def _run_fast_path(
        self,
        document: Document,
        style_guide: StyleGuide,
        config: ProcessingConfig,
        model_id: str,
        decision: PathDecision,
        callback: ProgressCallback | None,
        start_time: float,
    ) -> SummarizationResult | None:
        """
        Summarize the raw text directly.

        Returns None (after logging) on any failure so the caller can run the
        standard path instead.
        """
        self._notify_progress(callback, PROGRESS_CHUNKS_READY, "Generating summary directly from document...")

        try:
            with Timer("FastPathRender"):
                rendered = self.renderer.render_from_text(document, style_guide, config)
        except Exception as e:
            warning(f"[Orchestrator] Fast path failed, falling back to standard path: {e}")
            self._notify_progress(callback, PROGRESS_CHUNKS_READY, "Retrying with detailed extraction...")
            return None

        debug_log(f"[Orchestrator] Fast path succeeded ({rendered.method}): {decision.reason}")
        self._notify_progress(callback, PROGRESS_STYLED_SUMMARY, "Summary generated")

        return SummarizationResult(
            document=document,
            chunk_facts=(),
            merged_facts=FactSet(),
            styled_summary=rendered.styled_summary,
            raw_summary=rendered.raw_summary,
            processing_stats=ProcessingStats(
                total_chunks=1,
                successful_chunks=1,
                failed_chunks=0,
                processing_time=time.time() - start_time,
                model_used=model_id,
            ),
            path="fast",
        )

    def _run_standard_path(
        self,
        document: Document,
        chunks: list[TextChunk],
        style_guide: StyleGuide,
        config: ProcessingConfig,
        model_id: str,
        callback: ProgressCallback | None,
        start_time: float,
    ) -> SummarizationResult:
        """Combine, extract, merge and render."""
        if self.combiner.should_combine(chunks):
            chunks = self.combiner.combine(chunks)

        chunk_facts = self._phase_extract(document, chunks, style_guide, config, callback)

        self._notify_progress(callback, PROGRESS_MERGE, "Merging extracted facts...")
        with Timer("FactMerge"):
            merged = self.merger.merge(chunk_facts)

        # Fast mode skips the separate raw summary call
        raw_summary = None
        if config.generate_raw_summary and not config.enable_fast_mode:
            self._notify_progress(callback, PROGRESS_RAW_SUMMARY, "Generating factual summary...")
            with Timer("RawSummary"):
                raw_summary = self.renderer.generate_raw_from_facts(document, merged, config.summary_timeout)

        self._notify_progress(callback, PROGRESS_STYLED_SUMMARY, "Applying style guide...")
        with Timer("StyledSummary"):
            rendered = self.renderer.render_styled(document, merged, style_guide, config, raw_summary)

        successful = sum(1 for cf in chunk_facts if cf.parse_success)
        return SummarizationResult(
            document=document,
            chunk_facts=tuple(chunk_facts),
            merged_facts=merged,
            styled_summary=rendered.styled_summary,
            raw_summary=rendered.raw_summary,
            processing_stats=ProcessingStats(
                total_chunks=len(chunk_facts),
                successful_chunks=successful,
                failed_chunks=len(chunk_facts) - successful,
                processing_time=time.time() - start_time,
                model_used=model_id,
            ),
            path="standard",
        )

    def _phase_extract(self, document, chunks, style_guide, config, callback):
        """MAP phase; chunk progress is mapped onto 10-70."""
        span = PROGRESS_EXTRACTION_END - PROGRESS_CHUNKS_READY

        def chunk_progress(completed: int, total: int, status: str):
            current = PROGRESS_CHUNKS_READY + int(span * completed / total) if total else PROGRESS_CHUNKS_READY
            self._notify_progress(callback, current, status)

        with Timer("FactExtraction") as timer:
            chunk_facts = self.processor.process(chunks, style_guide, document.id, config, chunk_progress)

        failed = sum(1 for cf in chunk_facts if not cf.parse_success)
        if failed:
            warning(f"[Orchestrator] {failed}/{len(chunk_facts)} chunk(s) failed extraction")
        debug_log(f"[Orchestrator] Extraction: {len(chunk_facts) - failed}/{len(chunk_facts)} in {timer.duration_ms:.0f}ms")
        return chunk_facts

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _save(self, result: SummarizationResult):
        if self.result_store is not None:
            self.result_store.save(result.document.id, result)
            debug_log(f"[Orchestrator] Saved result for {result.document.id}")

    def _notify_progress(self, callback: ProgressCallback | None, current: int, status: str | None = None) -> None:
        """Send progress update if callback provided."""
        if callback:
            try:
                callback(current, PROGRESS_TOTAL, status)
            except Exception as e:
                debug_log(f"[Orchestrator] Progress callback error: {e}")

    def is_ready(self) -> bool:
        """True if the backend answers its health check."""
        return self.backend.is_available()

    def get_status(self) -> dict:
        """Connection and configuration info for display."""
        return {
            "ready": self.is_ready(),
            "model": self.backend.model_name,
            "context_window": get_model_config(self.backend.model_name)["context_window"],
            "preset": self.config.chunking.mode,
            "active_document": self._active_document,
        }
