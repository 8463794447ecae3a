"""
Chunk Combiner for Lesson Summarization.

Reduces the number of extraction calls for over-fragmented documents by
merging consecutive chunks into larger ones (~10,000 characters). Only kicks
in above a chunk-count threshold; small chunk lists pass through untouched.

Positional precision is traded for throughput: a combined chunk keeps the
start_index/end_index of its FIRST sub-chunk, so offsets are approximate
after combination. Text is never dropped.
"""

from lessonscribe.config import COMBINE_CHUNK_THRESHOLD, COMBINE_TARGET_CHARS
from lessonscribe.logging_config import debug_log

from .chunker import TextChunk, make_chunk

SEPARATOR = "\n\n"


class ChunkCombiner:
    """
    Merges consecutive chunks into fewer, larger ones.

    Example:
        combiner = ChunkCombiner()
        if combiner.should_combine(chunks):
            chunks = combiner.combine(chunks)
    """

    def __init__(self, threshold: int = COMBINE_CHUNK_THRESHOLD, target_chars: int = COMBINE_TARGET_CHARS):
        """
        Args:
            threshold: Combine only when there are more than this many chunks
            target_chars: Flush a combined chunk before it would exceed this size
        """
        self.threshold = threshold
        self.target_chars = target_chars

    def should_combine(self, chunks: list[TextChunk]) -> bool:
        return len(chunks) > self.threshold

    def combine(self, chunks: list[TextChunk]) -> list[TextChunk]:
        """
        Combine consecutive chunks, re-indexed 0..n-1.

        A single chunk larger than target_chars is kept as its own combined chunk.
        """
        if not self.should_combine(chunks):
            return list(chunks)

        combined: list[TextChunk] = []
        buffer: list[TextChunk] = []
        buffer_length = 0

        def flush():
            first = buffer[0]
            text = SEPARATOR.join(chunk.text for chunk in buffer)
            combined.append(make_chunk(first.document_id, len(combined), text, first.start_index, first.end_index))

        for chunk in chunks:
            if buffer and buffer_length + len(SEPARATOR) + len(chunk.text) > self.target_chars:
                flush()
                buffer, buffer_length = [], 0

            buffer_length += (len(SEPARATOR) if buffer else 0) + len(chunk.text)
            buffer.append(chunk)

        if buffer:
            flush()

        debug_log(f"[ChunkCombiner] Combined {len(chunks)} chunks into {len(combined)}")
        return combined
