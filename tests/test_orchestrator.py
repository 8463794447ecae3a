"""
Tests for the summarization orchestrator.

Tests cover:
- End-to-end standard path on a short document
- Fast-path gating and fallback to the standard path
- Partial chunk failure, chunking fallback, combination of many chunks
- Progress reporting on the 0-100 scale
- Regeneration, result storage, cancellation and status helpers
"""

import json
import re
from unittest.mock import patch

import pytest

from lessonscribe.exceptions import (
    BackendError,
    BackendTimeoutError,
    ChunkingError,
    EmptyDocumentError,
    SummaryGenerationError,
)
from lessonscribe.processing_config import ChunkingConfig, ProcessingConfig
from lessonscribe.storage import InMemoryResultStore
from lessonscribe.summarization.chunker import TextChunker, make_chunk
from lessonscribe.summarization.extractor import CANCELLED_ERROR
from lessonscribe.summarization.orchestrator import SummarizationOrchestrator
from lessonscribe.summarization.result_types import Document, StyleGuide

from conftest import RAW_SUMMARY, ScriptedBackend, make_facts_json

PARAGRAPH = "breathing practice with attention on the exhale, the pause and the quiet that follows it."


def paragraph_document(count: int, fail_index: int | None = None) -> Document:
    paragraphs = []
    for index in range(count):
        marker = "FAILME" if index == fail_index else ""
        paragraphs.append(f"P{index + 1}: {marker} Segment {index + 1} covers {PARAGRAPH}")
    return Document.from_text("\n\n".join(paragraphs), title="Evening Class", document_id="evening")


def facts_for_paragraph(prompt: str) -> str:
    if "FAILME" in prompt:
        raise BackendTimeoutError("timed out")
    match = re.search(r"P(\d+):", prompt)
    return make_facts_json(
        class_title=f"Title from P{match.group(1)}",
        topics=[f"Topic {match.group(1)}", "Breathing"],
    )


@pytest.fixture
def paragraph_config():
    return ProcessingConfig(
        chunking=ChunkingConfig(strategy="paragraph", parallel_processing=False, batch_size=1),
        enable_parallel_fact_extraction=False,
        chunk_delay=0.0,
        batch_delay=0.0,
        retry_delay=0.0,
    )


def make_orchestrator(backend, prompt_manager, **kwargs):
    return SummarizationOrchestrator(backend, prompt_manager=prompt_manager, **kwargs)


class TestStandardPath:
    """Extract, merge and render."""

    def test_short_document_end_to_end(self, backend, prompt_manager):
        """300 characters, default config, small-context model: one chunk, standard path."""
        text = ("Today we practiced slow breathing and noticed the pause after each exhale. " * 5)[:300]
        document = Document.from_text(text, title="Breathwork Basics")

        result = make_orchestrator(backend, prompt_manager).summarize_document(document, StyleGuide())

        assert len(text) == 300
        assert result.path == "standard"
        assert backend.kinds() == ["extraction", "raw", "styled"]
        assert result.processing_stats.total_chunks == 1
        assert result.processing_stats.successful_chunks == 1
        assert result.processing_stats.failed_chunks == 0
        assert result.processing_stats.model_used == "test-model"
        assert result.merged_facts.class_title == "Breathwork Basics"
        assert result.raw_summary == RAW_SUMMARY.strip()
        assert result.styled_summary

    def test_one_failed_chunk_of_five(self, prompt_manager, paragraph_config):
        """Chunk 3 exhausts its retries; the run still completes."""
        backend = ScriptedBackend(extraction=facts_for_paragraph)
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            paragraph_document(5, fail_index=2), StyleGuide(), config=paragraph_config
        )

        stats = result.processing_stats
        assert (stats.total_chunks, stats.successful_chunks, stats.failed_chunks) == (5, 4, 1)
        assert not result.chunk_facts[2].parse_success
        assert result.merged_facts.class_title == "Title from P1"
        assert result.merged_facts.topics == ("Topic 1", "Breathing", "Topic 2", "Topic 4", "Topic 5")

    def test_fast_mode_skips_raw_summary(self, backend, prompt_manager, sequential_config):
        config = sequential_config.with_overrides(enable_fast_mode=True)
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text("A short lesson about posture and breath."), StyleGuide(), config=config
        )

        assert backend.kinds() == ["extraction", "styled"]
        assert result.raw_summary is None

    def test_raw_summary_can_be_disabled(self, backend, prompt_manager, sequential_config):
        config = sequential_config.with_overrides(generate_raw_summary=False)
        make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text("A short lesson about posture and breath."), StyleGuide(), config=config
        )
        assert backend.kinds() == ["extraction", "styled"]

    def test_many_small_chunks_are_combined(self, backend, prompt_manager, paragraph_config):
        """Ten paragraphs exceed the combine threshold and fit one combined chunk."""
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            paragraph_document(10), StyleGuide(), config=paragraph_config
        )

        assert backend.count("extraction") == 1
        assert result.processing_stats.total_chunks == 1
        assert "P10:" in backend.calls[0][1]

    def test_raw_summary_failure_propagates(self, prompt_manager, sequential_config):
        backend = ScriptedBackend(raw=[BackendError("HTTP 500")])
        with pytest.raises(SummaryGenerationError):
            make_orchestrator(backend, prompt_manager).summarize_document(
                Document.from_text("A short lesson."), StyleGuide(), config=sequential_config
            )

    def test_styled_failure_still_returns_result(self, prompt_manager, sequential_config):
        backend = ScriptedBackend(styled=[BackendError("HTTP 500")])
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text("A short lesson."), StyleGuide(), config=sequential_config
        )
        assert result.styled_summary.startswith("# Breathwork Basics")
        assert "- Box breathing" in result.styled_summary


class TestFastPath:
    """Single-call summarization for large-context models."""

    TEXT = ("Today we practiced slow breathing and noticed the pause after each exhale. " * 140)[:10000]

    def test_large_context_model_takes_fast_path(self, prompt_manager, sequential_config):
        backend = ScriptedBackend(model_name="gemma3:4b")
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text(self.TEXT), StyleGuide(), config=sequential_config
        )

        assert result.path == "fast"
        assert backend.kinds() == ["combined"]
        assert result.chunk_facts == ()
        assert result.merged_facts.is_empty
        assert result.processing_stats.total_chunks == 1
        assert result.processing_stats.successful_chunks == 1

    def test_small_context_model_takes_standard_path(self, prompt_manager, sequential_config):
        backend = ScriptedBackend(model_name="llama3.1:8b")
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text(self.TEXT), StyleGuide(), config=sequential_config
        )

        assert result.path == "standard"
        assert "combined" not in backend.kinds()

    def test_model_id_overrides_backend_model(self, backend, prompt_manager, sequential_config):
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text(self.TEXT), StyleGuide(), config=sequential_config, model_id="gemma3:12b"
        )
        assert result.path == "fast"
        assert result.processing_stats.model_used == "gemma3:12b"

    def test_rejected_combined_response_uses_two_calls(self, prompt_manager, sequential_config):
        weak_raw = RAW_SUMMARY.replace('- "Breath is the anchor"', "")
        backend = ScriptedBackend(
            model_name="gemma3:4b",
            combined=[json.dumps({"rawSummary": weak_raw, "styledSummary": "styled"})],
        )
        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text(self.TEXT), StyleGuide(), config=sequential_config
        )

        assert backend.kinds() == ["combined", "raw", "styled"]
        assert result.path == "fast"
        assert '- "Breath is the anchor"' in result.raw_summary

    def test_fast_path_failure_falls_back_to_standard_path(self, prompt_manager, sequential_config):
        """The fast path's raw call fails; the standard path produces the result."""
        backend = ScriptedBackend(
            model_name="gemma3:4b",
            combined=["not json"],
            raw=[BackendError("HTTP 500"), RAW_SUMMARY],
        )
        with patch("lessonscribe.summarization.orchestrator.warning") as mock_warning:
            result = make_orchestrator(backend, prompt_manager).summarize_document(
                Document.from_text(self.TEXT), StyleGuide(), config=sequential_config
            )

        assert result.path == "standard"
        assert backend.kinds() == ["combined", "raw", "extraction", "raw", "styled"]
        assert result.processing_stats.total_chunks == 1
        assert any("Fast path failed" in call[0][0] for call in mock_warning.call_args_list)


class TestChunkingFailures:
    """Fallback chunking configuration."""

    def test_chunking_error_retries_with_fallback_config(self, backend, prompt_manager, sequential_config):
        document = Document.from_text("A short lesson.", document_id="doc")
        fallback_chunks = [make_chunk("doc", 0, "A short lesson.", 0, 15)]

        with patch.object(TextChunker, "chunk", autospec=True,
                          side_effect=[ValueError("degenerate input"), fallback_chunks]) as mock_chunk:
            result = make_orchestrator(backend, prompt_manager).summarize_document(
                document, StyleGuide(), config=sequential_config
            )

        fallback_chunker = mock_chunk.call_args_list[1][0][0]
        assert fallback_chunker.config.strategy == "fixed"
        assert fallback_chunker.config.chunk_size == 15000
        assert fallback_chunker.config.max_chunks == 3
        assert result.processing_stats.total_chunks == 1

    def test_double_chunking_failure_raises(self, backend, prompt_manager, sequential_config):
        with patch.object(TextChunker, "chunk", side_effect=ValueError("degenerate input")):
            with pytest.raises(ChunkingError):
                make_orchestrator(backend, prompt_manager).summarize_document(
                    Document.from_text("A short lesson."), StyleGuide(), config=sequential_config
                )
        assert backend.calls == []

    def test_empty_document_raises(self, backend, prompt_manager):
        with pytest.raises(EmptyDocumentError):
            make_orchestrator(backend, prompt_manager).summarize_document(
                Document.from_text("   \n "), StyleGuide()
            )
        assert backend.calls == []


class TestProgress:
    """Progress callbacks on the 0-100 scale."""

    def test_milestones_are_monotonic_and_complete(self, prompt_manager, paragraph_config):
        updates = []
        backend = ScriptedBackend(extraction=facts_for_paragraph)

        make_orchestrator(backend, prompt_manager).summarize_document(
            paragraph_document(4), StyleGuide(), config=paragraph_config,
            on_progress=lambda current, total, status=None: updates.append((current, total, status)),
        )

        values = [current for current, _, _ in updates]
        assert values[0] == 0
        assert values[-1] == 100
        assert values == sorted(values)
        assert {5, 10, 75, 80, 90} <= set(values)
        assert all(total == 100 for _, total, _ in updates)
        assert any(10 < value <= 70 for value in values)

    def test_failing_callback_does_not_abort_run(self, backend, prompt_manager, sequential_config):
        def broken(current, total, status=None):
            raise RuntimeError("window closed")

        result = make_orchestrator(backend, prompt_manager).summarize_document(
            Document.from_text("A short lesson."), StyleGuide(), config=sequential_config, on_progress=broken
        )
        assert result.styled_summary


class TestRegenerationAndStorage:
    """Regeneration without re-extraction, and result persistence."""

    def test_result_is_saved_to_store(self, backend, prompt_manager, sequential_config):
        store = InMemoryResultStore()
        result = make_orchestrator(backend, prompt_manager, result_store=store).summarize_document(
            Document.from_text("A short lesson.", document_id="lesson-1"), StyleGuide(), config=sequential_config
        )
        assert store.get("lesson-1") is result

    def test_regeneration_increments_counter_without_extraction(self, backend, prompt_manager, sequential_config):
        store = InMemoryResultStore()
        orchestrator = make_orchestrator(backend, prompt_manager, result_store=store)
        result = orchestrator.summarize_document(
            Document.from_text("A short lesson.", document_id="lesson-1"), StyleGuide(), config=sequential_config
        )

        first = orchestrator.regenerate_styled_summary(result, StyleGuide())
        second = orchestrator.regenerate_styled_summary(first, StyleGuide())

        assert (first.regeneration_count, second.regeneration_count) == (1, 2)
        assert backend.count("extraction") == 1
        assert backend.count("regeneration") == 2
        assert second.chunk_facts == result.chunk_facts
        assert second.styled_summary.startswith("# Breathwork Basics")
        assert store.get("lesson-1") is second
        assert "REGENERATION COUNT: 2" in backend.calls[-1][1]

    def test_regeneration_count_must_increase(self, backend, prompt_manager, sequential_config):
        orchestrator = make_orchestrator(backend, prompt_manager)
        result = orchestrator.summarize_document(Document.from_text("A short lesson."), StyleGuide(),
                                                 config=sequential_config)
        regenerated = orchestrator.regenerate_styled_summary(result, StyleGuide(), regeneration_count=5)

        assert regenerated.regeneration_count == 5
        with pytest.raises(ValueError):
            orchestrator.regenerate_styled_summary(regenerated, StyleGuide(), regeneration_count=5)


class TestCancellationAndStatus:
    """cancel(), is_ready() and get_status()."""

    def test_cancel_marks_unscheduled_chunks_failed(self, prompt_manager, paragraph_config):
        orchestrator = None

        def cancel_on_first(prompt):
            orchestrator.cancel()
            return facts_for_paragraph(prompt)

        backend = ScriptedBackend(extraction=cancel_on_first)
        orchestrator = make_orchestrator(backend, prompt_manager)
        result = orchestrator.summarize_document(paragraph_document(4), StyleGuide(), config=paragraph_config)

        assert result.processing_stats.successful_chunks == 1
        assert result.processing_stats.failed_chunks == 3
        assert [cf.error for cf in result.chunk_facts[1:]] == [CANCELLED_ERROR] * 3

        # The next run starts fresh
        again = orchestrator.summarize_document(paragraph_document(4), StyleGuide(), config=paragraph_config)
        assert again.processing_stats.total_chunks == 4

    def test_status_reports_backend_and_window(self, prompt_manager):
        orchestrator = make_orchestrator(ScriptedBackend(model_name="gemma3:4b", available=False), prompt_manager)
        status = orchestrator.get_status()

        assert not orchestrator.is_ready()
        assert status["ready"] is False
        assert status["model"] == "gemma3:4b"
        assert status["context_window"] == 131072
        assert status["active_document"] is None
