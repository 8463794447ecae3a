"""
Text Chunker for Lesson Summarization.

Splits document text into ordered TextChunks sized for a model's context
budget. Three strategies:

- fixed: window of chunk_size characters, broken at the last space when that
  space lies past 70% of the window (avoids mid-word splits)
- model: keep the whole document as one chunk whenever its estimated tokens
  fit in 95% of the model's context window; otherwise force a few very large
  chunks and log a warning. The forced chunk count is capped, so for huge
  documents on small windows the chunks grow past ~15 000 characters and
  past the window itself (logged as a second warning)
- paragraph: one chunk per blank-line paragraph when most paragraphs have a
  sane size, fixed-size otherwise

Overlap is informational in fixed-size mode: the next window starts at the
actual break point. Chunking never calls the backend.
"""

import math
from dataclasses import dataclass

from lessonscribe.config import (
    CHARS_PER_TOKEN,
    MODEL_FORCED_CHUNK_MAX_CHARS,
    MODEL_FORCED_CHUNK_WINDOW_FRACTION,
    MODEL_FORCED_MAX_CHUNKS,
    MODEL_FORCED_OVERLAP_FRACTION,
    MODEL_SINGLE_CHUNK_UTILIZATION,
    PARAGRAPH_MAX_CHARS,
    PARAGRAPH_MIN_CHARS,
    PARAGRAPH_SANE_RATIO,
    WORD_BREAK_MIN_FRACTION,
    get_model_config,
)
from lessonscribe.logging_config import debug_log, warning
from lessonscribe.processing_config import ChunkingConfig


@dataclass(frozen=True)
class TextChunk:
    """
    An ordered fragment of a document.

    Attributes:
        id: "<document_id>-chunk-<chunk_index>"
        document_id: Id of the source document
        text: Trimmed fragment text
        start_index: Offset of the fragment in the original text (best effort)
        end_index: End offset in the original text (best effort)
        chunk_index: Processing order
    """

    id: str
    document_id: str
    text: str
    start_index: int
    end_index: int
    chunk_index: int

    @property
    def char_count(self) -> int:
        return len(self.text)


def make_chunk(document_id: str, chunk_index: int, text: str, start: int, end: int) -> TextChunk:
    return TextChunk(
        id=f"{document_id}-chunk-{chunk_index}",
        document_id=document_id,
        text=text,
        start_index=start,
        end_index=end,
        chunk_index=chunk_index,
    )


def estimate_tokens(text: str) -> int:
    """Rough token estimate: 1 token per 4 characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class TextChunker:
    """
    Splits text into TextChunks.

    Example:
        chunker = TextChunker(ChunkingConfig(chunk_size=2500, overlap=200))
        chunks = chunker.split(document.text, document.id)

        # Context-window aware
        chunks = chunker.split_for_model(document.text, document.id, "gemma3:4b")
    """

    def __init__(self, config: ChunkingConfig | None = None):
        self.config = config or ChunkingConfig()

    def chunk(self, text: str, document_id: str, model_id: str | None = None,
              options: ChunkingConfig | None = None) -> list[TextChunk]:
        """Split using the strategy named by the chunking config."""
        options = options or self.config
        if options.strategy == "model":
            return self.split_for_model(text, document_id, model_id)
        if options.strategy == "paragraph":
            return self.split_by_paragraphs(text, document_id, options)
        return self.split(text, document_id, options)

    def split(self, text: str, document_id: str, options: ChunkingConfig | None = None) -> list[TextChunk]:
        """
        Fixed-size split.

        Args:
            text: Document text
            document_id: Used to build chunk ids
            options: Overrides the chunker's config (chunk_size, max_chunks)

        Returns:
            Ordered chunks; empty for blank text
        """
        options = options or self.config

        if not text.strip():
            debug_log(f"[TextChunker] {document_id}: blank text, no chunks")
            return []

        if len(text) <= options.chunk_size:
            return [make_chunk(document_id, 0, text.strip(), 0, len(text))]

        chunks = self._fixed_size_chunks(text, document_id, options.chunk_size)

        if options.max_chunks and len(chunks) > options.max_chunks:
            chunks = self._limit_chunks(text, chunks, options.max_chunks)

        debug_log(
            f"[TextChunker] {document_id}: {len(text)} chars -> {len(chunks)} chunks "
            f"(chunk_size={options.chunk_size}, max_chunks={options.max_chunks})"
        )
        return chunks

    def _fixed_size_chunks(self, text: str, document_id: str, chunk_size: int) -> list[TextChunk]:
        chunks = []
        start = 0
        text_length = len(text)

        while start < text_length:
            end = min(start + chunk_size, text_length)

            if end < text_length:
                # Space at index end is allowed: the break lands just before it
                last_space = text.rfind(" ", start, end + 1)
                if last_space > start + chunk_size * WORD_BREAK_MIN_FRACTION:
                    end = last_space

            piece = text[start:end].strip()
            if piece:
                chunks.append(make_chunk(document_id, len(chunks), piece, start, end))

            start = end

        return chunks

    def _limit_chunks(self, text: str, chunks: list[TextChunk], max_chunks: int) -> list[TextChunk]:
        """
        Merge consecutive chunks into max_chunks evenly sized groups.

        Group text is re-sliced from the original text so nothing is dropped.
        """
        base, extra = divmod(len(chunks), max_chunks)
        limited = []
        position = 0

        for group_index in range(max_chunks):
            size = base + (1 if group_index < extra else 0)
            group = chunks[position:position + size]
            position += size

            start, end = group[0].start_index, group[-1].end_index
            limited.append(make_chunk(group[0].document_id, group_index, text[start:end].strip(), start, end))

        debug_log(f"[TextChunker] Merged {len(chunks)} chunks into {max_chunks} to respect max_chunks")
        return limited

    def split_for_model(self, text: str, document_id: str, model_id: str | None) -> list[TextChunk]:
        """
        Context-window aware split.

        Unknown models use the default window from data/models.yaml.
        """
        if not text.strip():
            return []

        context_window = self.get_model_context_window(model_id)
        estimated = estimate_tokens(text)

        if estimated <= context_window * MODEL_SINGLE_CHUNK_UTILIZATION:
            debug_log(
                f"[TextChunker] {document_id}: {estimated} tokens fits {model_id or 'default'} "
                f"window of {context_window}; single chunk"
            )
            return [make_chunk(document_id, 0, text.strip(), 0, len(text))]

        chunk_size = min(
            MODEL_FORCED_CHUNK_MAX_CHARS,
            math.floor(context_window * MODEL_FORCED_CHUNK_WINDOW_FRACTION),
        )
        forced = ChunkingConfig(
            chunk_size=chunk_size,
            overlap=math.floor(chunk_size * MODEL_FORCED_OVERLAP_FRACTION),
            max_chunks=MODEL_FORCED_MAX_CHUNKS,
            parallel_processing=self.config.parallel_processing,
            batch_size=self.config.batch_size,
            strategy="fixed",
        )
        warning(
            f"[TextChunker] Document {document_id} is extremely large ({estimated} tokens vs "
            f"{context_window}-token window); forcing split into at most {MODEL_FORCED_MAX_CHUNKS} chunks"
        )
        chunks = self.split(text, document_id, forced)

        # The chunk cap wins over chunk_size: every word is kept, but a merged
        # chunk can outgrow the window and be truncated by the backend
        oversized = [chunk for chunk in chunks if estimate_tokens(chunk.text) > context_window]
        if oversized:
            largest = max(chunk.char_count for chunk in oversized)
            warning(
                f"[TextChunker] {len(oversized)}/{len(chunks)} forced chunk(s) of {document_id} exceed the "
                f"{context_window}-token window (largest {largest} chars); the backend may truncate them"
            )
        return chunks

    def split_by_paragraphs(self, text: str, document_id: str,
                            options: ChunkingConfig | None = None) -> list[TextChunk]:
        """
        One chunk per blank-line separated paragraph, if the paragraphs are sane.

        Falls back to fixed-size splitting when fewer than 70% of paragraphs are
        50-2000 characters long.
        """
        options = options or self.config
        if not text.strip():
            return []

        paragraphs = text.split("\n\n")
        non_empty = [p.strip() for p in paragraphs if p.strip()]
        sane = [p for p in non_empty if PARAGRAPH_MIN_CHARS <= len(p) <= PARAGRAPH_MAX_CHARS]

        if len(sane) < len(non_empty) * PARAGRAPH_SANE_RATIO:
            debug_log(
                f"[TextChunker] {document_id}: only {len(sane)}/{len(non_empty)} paragraphs in size band; "
                "using fixed-size chunks"
            )
            return self.split(text, document_id, options)

        chunks = []
        position = 0
        for paragraph in paragraphs:
            stripped = paragraph.strip()
            if stripped:
                chunks.append(make_chunk(document_id, len(chunks), stripped, position, position + len(paragraph)))
            position += len(paragraph) + 2

        debug_log(f"[TextChunker] {document_id}: {len(chunks)} paragraph chunks")
        return chunks

    @staticmethod
    def get_model_context_window(model_id: str | None) -> int:
        return get_model_config(model_id)["context_window"]

    @staticmethod
    def get_model_utilization_threshold(model_id: str | None) -> float:
        """Share of the context window a model can safely use."""
        return get_model_config(model_id)["utilization"]

    @staticmethod
    def get_chunking_stats(chunks: list[TextChunk]) -> dict:
        """Count, average/min/max size and total characters of a chunk list."""
        if not chunks:
            return {
                "total_chunks": 0,
                "average_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "total_characters": 0,
            }

        sizes = [len(chunk.text) for chunk in chunks]
        total = sum(sizes)
        return {
            "total_chunks": len(chunks),
            "average_chunk_size": round(total / len(chunks)),
            "min_chunk_size": min(sizes),
            "max_chunk_size": max(sizes),
            "total_characters": total,
        }
