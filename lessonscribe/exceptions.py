"""
Exception hierarchy for LessonScribe.

Backend and parse failures are retried at the chunk level and end up recorded
on ChunkFacts; the remaining errors surface to the caller as run failures.
"""


class LessonScribeError(Exception):
    """Base class for all LessonScribe errors."""


class BackendError(LessonScribeError):
    """The text-generation backend failed to return a usable response."""


class BackendTimeoutError(BackendError):
    """A backend call exceeded its timeout."""


class BackendUnavailableError(BackendError):
    """The backend could not be reached at all."""


class FactParseError(LessonScribeError):
    """A model response could not be parsed into the expected JSON structure."""


class PromptTemplateError(LessonScribeError):
    """A prompt template is missing or was rendered without a required variable."""


class ChunkingError(LessonScribeError):
    """Chunking failed on both the primary and the fallback configuration."""


class EmptyDocumentError(LessonScribeError):
    """The document has no text to summarize."""


class SummaryGenerationError(LessonScribeError):
    """The raw summary could not be generated."""
