"""
Result Export for LessonScribe.

Turns a SummarizationResult into a shareable file: a markdown document
(metadata, processing stats, styled summary, raw summary and the extracted
facts) or a JSON document with the same content in machine-readable form.

Usage:
    exported = export_result(result, "markdown")
    Path(exported.filename).write_text(exported.content, encoding="utf-8")
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime

from lessonscribe import __version__
from lessonscribe.logging_config import debug_log
from lessonscribe.summarization.result_types import (
    LIST_FACT_FIELDS,
    SINGULAR_FACT_FIELDS,
    FactSet,
    SummarizationResult,
)

EXPORT_FORMAT_VERSION = "1.0"
MAX_FILENAME_STEM = 50

# Format name -> (file extension, mime type)
EXPORT_FORMATS = {
    "markdown": ("md", "text/markdown"),
    "json": ("json", "application/json"),
}

FACT_SECTIONS = (
    ("Learning Objectives", "learning_objectives"),
    ("Key Takeaways", "key_takeaways"),
    ("Topics Covered", "topics"),
    ("Techniques & Methods", "techniques"),
    ("Action Items", "action_items"),
    ("Notable Quotes", "notable_quotes"),
    ("Open Questions", "open_questions"),
    ("Timestamp References", "timestamp_refs"),
)


@dataclass(frozen=True)
class ExportedSummary:
    """
    One exported file, ready to write.

    Attributes:
        content: File body
        filename: Suggested filename ("<sanitized title>_summary.<ext>")
        mime_type: MIME type of the content
    """

    content: str
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content.encode("utf-8"))


def sanitize_filename(name: str) -> str:
    """
    Lowercase, filesystem-safe stem for an exported file.

    Every run of characters outside a-z/0-9 becomes a single underscore,
    leading and trailing underscores are dropped, and the result is cut to
    50 characters. Falls back to "lesson" when nothing usable is left.
    """
    safe = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")
    return safe[:MAX_FILENAME_STEM].rstrip("_") or "lesson"


def export_result(result: SummarizationResult, format_type: str = "markdown",
                  exported_at: datetime | None = None) -> ExportedSummary:
    """
    Export a result in the given format.

    Args:
        result: Completed summarization result
        format_type: "markdown" or "json"
        exported_at: Timestamp stamped into the export (default: now)

    Raises:
        ValueError: If the format is not supported
    """
    if format_type not in EXPORT_FORMATS:
        available = ", ".join(EXPORT_FORMATS)
        raise ValueError(f"Unsupported export format '{format_type}'. Available: {available}")

    exported_at = exported_at or datetime.now()
    if format_type == "json":
        content = _export_json(result, exported_at)
    else:
        content = _export_markdown(result, exported_at)

    extension, mime_type = EXPORT_FORMATS[format_type]
    exported = ExportedSummary(
        content=content,
        filename=f"{sanitize_filename(result.document.title)}_summary.{extension}",
        mime_type=mime_type,
    )
    debug_log(f"[Export] {result.document.id} as {format_type}: {exported.filename} ({exported.size} bytes)")
    return exported


def facts_to_markdown(facts: FactSet) -> str:
    """Markdown listing of the non-empty facts. Quotes render as blockquotes."""
    lines = []
    for label, value in (
        ("Class Title", facts.class_title),
        ("Date/Series", facts.date_or_series),
        ("Audience", facts.audience),
    ):
        if value:
            lines += [f"**{label}:** {value}", ""]

    for heading, name in FACT_SECTIONS:
        items = getattr(facts, name)
        if not items:
            continue
        lines.append(f"### {heading}")
        if name == "notable_quotes":
            for item in items:
                lines += [f"> {item}", ""]
        else:
            lines += [f"- {item}" for item in items]
            lines.append("")

    return "\n".join(lines).rstrip() + "\n" if lines else "*No facts extracted.*\n"


def _export_markdown(result: SummarizationResult, exported_at: datetime) -> str:
    document = result.document
    metadata = document.metadata
    stats = result.processing_stats

    lines = [
        f"# {document.title}",
        "",
        "**Document Information:**",
        f"- **File:** {metadata.filename or 'n/a'}",
        f"- **Date Added:** {metadata.date_added.strftime('%Y-%m-%d')}",
        f"- **Word Count:** {metadata.word_count:,}",
        f"- **File Size:** {format_file_size(metadata.file_size)}",
        "",
        "**Processing Statistics:**",
        f"- **Path:** {result.path}",
        f"- **Model:** {stats.model_used}",
        f"- **Chunks Processed:** {stats.total_chunks}",
        f"- **Successful Chunks:** {stats.successful_chunks}",
        f"- **Failed Chunks:** {stats.failed_chunks}",
        f"- **Processing Time:** {round(stats.processing_time)}s",
    ]
    if result.regeneration_count:
        lines.append(f"- **Regenerations:** {result.regeneration_count}")

    lines += ["", "---", "", result.styled_summary.strip()]

    if result.raw_summary:
        lines += ["", "---", "", "## Raw Summary", "", result.raw_summary.strip()]

    lines += [
        "",
        "---",
        "",
        "## Extracted Facts",
        "",
        facts_to_markdown(result.merged_facts).rstrip(),
        "",
        "---",
        "",
        f"*Exported on {exported_at.strftime('%Y-%m-%d %H:%M')}*",
    ]
    return "\n".join(lines) + "\n"


def _export_json(result: SummarizationResult, exported_at: datetime) -> str:
    document = result.document
    metadata = document.metadata
    stats = result.processing_stats
    facts = result.merged_facts

    extracted = {name: getattr(facts, name) for name in SINGULAR_FACT_FIELDS}
    extracted.update({name: list(getattr(facts, name)) for name in LIST_FACT_FIELDS})

    data = {
        "document_info": {
            "id": document.id,
            "title": document.title,
            "filename": metadata.filename,
            "date_added": metadata.date_added.isoformat(),
            "word_count": metadata.word_count,
            "file_size": metadata.file_size,
            "file_type": metadata.file_type,
        },
        "processing_stats": {
            "path": result.path,
            "model_used": stats.model_used,
            "total_chunks": stats.total_chunks,
            "successful_chunks": stats.successful_chunks,
            "failed_chunks": stats.failed_chunks,
            "processing_time_seconds": stats.processing_time,
        },
        "extracted_facts": extracted,
        "styled_summary": result.styled_summary,
        "raw_summary": result.raw_summary,
        "regeneration_count": result.regeneration_count,
        "export_info": {
            "timestamp": exported_at.isoformat(),
            "format_version": EXPORT_FORMAT_VERSION,
            "exported_by": f"LessonScribe {__version__}",
        },
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_file_size(size: int) -> str:
    """Human-readable byte count, e.g. 1536 -> "1.5 KB"."""
    if size < 1024:
        return f"{size} bytes"
    for unit in ("KB", "MB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} GB"
