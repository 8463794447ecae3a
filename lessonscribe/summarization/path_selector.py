"""
Path Selector for Lesson Summarization.

Decides whether a document can be summarized in one or two backend calls
(fast path) or needs per-chunk extraction and merging (standard path).

The fast path is taken only when chunking produced a single chunk AND the
model has a large context window. A small-context model can hold a
single chunk and still truncate the prompt once instructions and output are
added, so it always takes the standard path.
"""

from dataclasses import dataclass

from lessonscribe.config import FAST_PATH_MIN_CONTEXT_WINDOW
from lessonscribe.logging_config import debug_log


@dataclass(frozen=True)
class PathDecision:
    """
    Attributes:
        fast_path: True to summarize the raw text directly
        reason: Human-readable explanation (logged and shown in status)
        text_length: Document length in characters
        chunk_count: Chunks produced by the chunker
        context_window: Model context window in tokens
    """
    fast_path: bool
    reason: str
    text_length: int
    chunk_count: int
    context_window: int

    @property
    def name(self) -> str:
        return "fast" if self.fast_path else "standard"


def select_path(
    text_length: int,
    chunk_count: int,
    model_context_window: int,
    min_context_window: int = FAST_PATH_MIN_CONTEXT_WINDOW,
) -> PathDecision:
    """
    Choose fast or standard path.

    Args:
        text_length: Document length in characters
        chunk_count: Number of chunks the chunker produced
        model_context_window: Target model's window in tokens
        min_context_window: Smallest window allowed on the fast path

    Returns:
        PathDecision
    """
    if chunk_count != 1:
        reason = f"{chunk_count} chunks require extraction and merge"
        fast = False
    elif model_context_window < min_context_window:
        reason = (
            f"context window {model_context_window} is below {min_context_window} tokens"
        )
        fast = False
    else:
        reason = f"single chunk fits {model_context_window}-token context window"
        fast = True

    decision = PathDecision(
        fast_path=fast,
        reason=reason,
        text_length=text_length,
        chunk_count=chunk_count,
        context_window=model_context_window,
    )
    debug_log(f"[PathSelector] {decision.name} path: {reason} ({text_length} chars)")
    return decision
