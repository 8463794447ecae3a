"""
Lesson Summarization Package for LessonScribe.

Turns long lesson transcripts into structured, style-adapted summaries using
a Map-Reduce pattern over text-generation backend calls.

Architecture:
- TextChunker: Model-aware, fixed-size or paragraph splitting
- ChunkCombiner: Merges over-fragmented chunk lists into larger chunks
- select_path: Fast path (one call on the raw text) vs standard path
- ChunkProcessor: Per-chunk fact extraction, sequential or parallel-batched
- FactMerger: First-wins singular fields, case-insensitive list dedupe
- SummaryRenderer: Raw/styled summaries, combined generation, regeneration
- SummarizationOrchestrator: Coordinates the full pipeline

The Map-Reduce pattern:
1. MAP: Extract structured facts from each chunk
2. REDUCE: Merge and deduplicate across chunks
3. RENDER: Raw summary from facts, then the styled rewrite

Usage:
    from lessonscribe.ai import OllamaClient
    from lessonscribe.summarization import Document, StyleGuide, SummarizationOrchestrator

    orchestrator = SummarizationOrchestrator(OllamaClient(model_name="gemma3:4b"))
    result = orchestrator.summarize_document(
        Document.from_text(transcript, title="Breathwork Basics"),
        StyleGuide(),
    )
    print(result.styled_summary)
"""

from .result_types import (
    ChunkFacts,
    Document,
    DocumentMetadata,
    ExamplePhrases,
    FactSet,
    ProcessingStats,
    StyleGuide,
    SummarizationResult,
    ToneSettings,
)
from .chunker import TextChunk, TextChunker
from .combiner import ChunkCombiner
from .path_selector import PathDecision, select_path
from .json_parsing import ParseResult, clean_json_response, parse_fact_response
from .extractor import ChunkProcessor
from .merger import FactMerger
from .quality_check import QualityReport, check_summary_quality
from .renderer import RenderedSummary, SummaryRenderer
from .orchestrator import SummarizationOrchestrator

__all__ = [
    # Data model
    "Document",
    "DocumentMetadata",
    "StyleGuide",
    "ToneSettings",
    "ExamplePhrases",
    "ChunkFacts",
    "FactSet",
    "ProcessingStats",
    "SummarizationResult",
    # Chunking and path selection
    "TextChunk",
    "TextChunker",
    "ChunkCombiner",
    "PathDecision",
    "select_path",
    # Extraction and merging
    "ParseResult",
    "clean_json_response",
    "parse_fact_response",
    "ChunkProcessor",
    "FactMerger",
    # Rendering and orchestration
    "QualityReport",
    "check_summary_quality",
    "RenderedSummary",
    "SummaryRenderer",
    "SummarizationOrchestrator",
]
