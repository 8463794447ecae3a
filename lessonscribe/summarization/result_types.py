"""
Result Types for Lesson Summarization

Data structures passed between the pipeline stages. Everything here is a
frozen dataclass: documents are owned by the caller, chunk results are
created once by the chunk processor, and the final SummarizationResult is
handed to the caller (and optionally a ResultStore) unchanged.

Key Types:
    Document - The input text plus metadata
    StyleGuide - Voice/tone parameters for styled output
    ChunkFacts - Extraction output for one chunk
    FactSet - Canonical facts merged across all chunks
    SummarizationResult - The terminal artifact of a run

Usage:
    document = Document.from_text(text, title="Breathwork Basics")
    result = orchestrator.summarize_document(document, StyleGuide())
    print(result.styled_summary)
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import Path

import yaml


SINGULAR_FACT_FIELDS = ("class_title", "date_or_series", "audience")
LIST_FACT_FIELDS = (
    "learning_objectives",
    "key_takeaways",
    "topics",
    "techniques",
    "action_items",
    "notable_quotes",
    "open_questions",
    "timestamp_refs",
)
REQUIRED_FACT_FIELDS = ("key_takeaways", "topics", "techniques")


@dataclass(frozen=True)
class DocumentMetadata:
    word_count: int = 0
    file_size: int = 0
    filename: str = ""
    file_type: str = "text/plain"
    date_added: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Document:
    """
    A document to summarize.

    Attributes:
        id: Stable identifier, used for chunk ids and result storage keys
        title: Display title (used in summary headings)
        text: Full document text
        metadata: Word count, size and file information
    """
    id: str
    title: str
    text: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)

    @classmethod
    def from_text(
        cls,
        text: str,
        title: str = "Untitled",
        document_id: str | None = None,
        filename: str = "",
        file_type: str = "text/plain",
    ) -> Document:
        """Build a Document with a generated id and computed word count."""
        metadata = DocumentMetadata(
            word_count=len(text.split()),
            file_size=len(text.encode("utf-8")),
            filename=filename,
            file_type=file_type,
        )
        return cls(
            id=document_id or uuid.uuid4().hex[:12],
            title=title,
            text=text,
            metadata=metadata,
        )

    @classmethod
    def from_file(cls, path: Path, title: str | None = None) -> Document:
        """Read a UTF-8 text file into a Document titled after the file."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        return cls.from_text(
            text,
            title=title or path.stem.replace("_", " ").replace("-", " ").title(),
            filename=path.name,
        )


@dataclass(frozen=True)
class ToneSettings:
    """Tone levels, each 0-100."""
    formality: int = 50
    enthusiasm: int = 50
    technicality: int = 50

    def __post_init__(self):
        for name in ("formality", "enthusiasm", "technicality"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 100:
                raise ValueError(f"Tone setting '{name}' must be an integer 0-100, got {value!r}")


@dataclass(frozen=True)
class ExamplePhrases:
    preferred_openings: tuple[str, ...] = ()
    preferred_transitions: tuple[str, ...] = ()
    preferred_conclusions: tuple[str, ...] = ()
    avoid_phrases: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.preferred_openings, self.preferred_transitions,
             self.preferred_conclusions, self.avoid_phrases)
        )


@dataclass(frozen=True)
class StyleGuide:
    """
    Voice and tone parameters applied to extraction and styled summaries.

    Attributes:
        instructions_md: Free-text markdown writing instructions
        tone_settings: Formality, enthusiasm and technicality levels
        keywords: Voice markers to emphasize
        example_phrases: Preferred openings/transitions/conclusions and phrases to avoid
    """
    instructions_md: str = ""
    tone_settings: ToneSettings = field(default_factory=ToneSettings)
    keywords: tuple[str, ...] = ()
    example_phrases: ExamplePhrases = field(default_factory=ExamplePhrases)

    @classmethod
    def from_dict(cls, data: dict) -> StyleGuide:
        """
        Build a StyleGuide from a plain mapping (e.g. parsed YAML).

        Raises:
            ValueError: If a tone value is out of range
        """
        phrases = data.get("example_phrases") or {}
        return cls(
            instructions_md=data.get("instructions_md", "") or "",
            tone_settings=ToneSettings(**(data.get("tone_settings") or {})),
            keywords=tuple(data.get("keywords") or ()),
            example_phrases=ExamplePhrases(
                **{key: tuple(value or ()) for key, value in phrases.items()}
            ),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> StyleGuide:
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(yaml.safe_load(f) or {})


@dataclass(frozen=True)
class ChunkFacts:
    """
    Extraction output for one chunk.

    Attributes:
        chunk_id: Id of the source TextChunk
        chunk_index: Processing order of the source chunk
        facts: Normalized partial facts (empty when parse_success is False)
        parse_success: Whether a valid fact object was obtained
        raw_response: Last raw backend response ("" if none)
        error: Last error message for failed chunks
    """
    chunk_id: str
    chunk_index: int
    facts: dict = field(default_factory=dict)
    parse_success: bool = False
    raw_response: str = ""
    error: str | None = None


@dataclass(frozen=True)
class FactSet:
    """
    Canonical facts merged across all successful chunks.

    Singular fields hold the first non-empty value in chunk order; list
    fields hold the case-insensitive union in first-occurrence order.
    """
    class_title: str | None = None
    date_or_series: str | None = None
    audience: str | None = None
    learning_objectives: tuple[str, ...] = ()
    key_takeaways: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    techniques: tuple[str, ...] = ()
    action_items: tuple[str, ...] = ()
    notable_quotes: tuple[str, ...] = ()
    open_questions: tuple[str, ...] = ()
    timestamp_refs: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in SINGULAR_FACT_FIELDS + LIST_FACT_FIELDS)

    def to_dict(self) -> dict:
        data = {name: getattr(self, name) for name in SINGULAR_FACT_FIELDS if getattr(self, name)}
        data.update({name: list(getattr(self, name)) for name in LIST_FACT_FIELDS})
        return data

    @classmethod
    def from_dict(cls, data: dict) -> FactSet:
        values = {name: data.get(name) or None for name in SINGULAR_FACT_FIELDS}
        values.update({name: tuple(data.get(name) or ()) for name in LIST_FACT_FIELDS})
        return cls(**values)


@dataclass(frozen=True)
class ProcessingStats:
    """
    Attributes:
        total_chunks: Chunks sent to extraction (1 on the fast path)
        successful_chunks: Chunks whose facts parsed
        failed_chunks: Chunks that exhausted retries or were cancelled
        processing_time: Wall-clock seconds for the run
        model_used: Backend model name
    """
    total_chunks: int
    successful_chunks: int
    failed_chunks: int
    processing_time: float
    model_used: str


@dataclass(frozen=True)
class SummarizationResult:
    """
    Terminal artifact of a summarization run.

    Attributes:
        document: The input document
        chunk_facts: Per-chunk extraction results in chunk order (empty on the fast path)
        merged_facts: Canonical merged facts
        styled_summary: Final style-adapted markdown summary
        processing_stats: Chunk counts and timing
        raw_summary: Unstyled section-template summary, if generated
        path: "fast" or "standard"
        regeneration_count: Number of styled regenerations applied
        generated_at: When the styled summary was produced
    """
    document: Document
    chunk_facts: tuple[ChunkFacts, ...]
    merged_facts: FactSet
    styled_summary: str
    processing_stats: ProcessingStats
    raw_summary: str | None = None
    path: str = "standard"
    regeneration_count: int = 0
    generated_at: datetime = field(default_factory=datetime.now)

    def with_styled_summary(self, styled_summary: str, regeneration_count: int) -> SummarizationResult:
        """Copy of this result with a regenerated styled summary."""
        return replace(
            self,
            styled_summary=styled_summary,
            regeneration_count=regeneration_count,
            generated_at=datetime.now(),
        )

    def to_dict(self) -> dict:
        """JSON-serializable representation (datetimes as ISO strings)."""
        data = asdict(self)
        data["merged_facts"] = self.merged_facts.to_dict()
        data["generated_at"] = self.generated_at.isoformat()
        data["document"]["metadata"]["date_added"] = self.document.metadata.date_added.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> SummarizationResult:
        doc = data["document"]
        meta = dict(doc.get("metadata") or {})
        if isinstance(meta.get("date_added"), str):
            meta["date_added"] = datetime.fromisoformat(meta["date_added"])

        return cls(
            document=Document(
                id=doc["id"],
                title=doc["title"],
                text=doc["text"],
                metadata=DocumentMetadata(**meta),
            ),
            chunk_facts=tuple(ChunkFacts(**cf) for cf in data.get("chunk_facts", [])),
            merged_facts=FactSet.from_dict(data.get("merged_facts") or {}),
            styled_summary=data["styled_summary"],
            processing_stats=ProcessingStats(**data["processing_stats"]),
            raw_summary=data.get("raw_summary"),
            path=data.get("path", "standard"),
            regeneration_count=data.get("regeneration_count", 0),
            generated_at=datetime.fromisoformat(data["generated_at"]),
        )
