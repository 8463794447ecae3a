"""
Summary Renderer for Lesson Summarization.

Turns merged facts (standard path) or the raw document text (fast path) into
the final markdown summaries via the text backend.

Outputs:
- Raw summary: factual, unstyled, fixed section template
- Styled summary: the same sections and facts rewritten per the style guide

Fast path uses a single combined call returning {"rawSummary", "styledSummary"}
and keeps it only if the JSON is valid and the raw summary passes the
structural quality check; otherwise it makes two calls (raw, then styled).

Failure handling:
- Styled failure falls back to a summary assembled locally from the facts
  (fast path: the raw summary, since there are no facts)
- Raw failure raises SummaryGenerationError
"""

from dataclasses import dataclass
from datetime import datetime

from lessonscribe.ai.base import TextBackend
from lessonscribe.exceptions import BackendError, SummaryGenerationError
from lessonscribe.logging_config import debug_log, error, warning
from lessonscribe.processing_config import ProcessingConfig
from lessonscribe.prompt_template_manager import PromptTemplateManager

from .json_parsing import parse_json_object
from .prompts import build_style_section, format_facts
from .quality_check import check_summary_quality
from .result_types import Document, FactSet, StyleGuide

FACTS_LABEL = "EXTRACTED FACTS"
TEXT_LABEL = "TRANSCRIPT"
RAW_SUMMARY_LABEL = "FACTUAL SUMMARY"

# (heading, FactSet field) in template order
FALLBACK_SECTIONS = (
    ("Learning Objectives", "learning_objectives"),
    ("Key Takeaways", "key_takeaways"),
    ("Topics", "topics"),
    ("Techniques", "techniques"),
    ("Action Items", "action_items"),
    ("Notable Quotes", "notable_quotes"),
    ("Open Questions", "open_questions"),
)


@dataclass(frozen=True)
class RenderedSummary:
    """
    Attributes:
        styled_summary: Final style-adapted summary
        raw_summary: Unstyled summary, if one was generated
        method: "combined", "two-call", "llm", "fallback" or "raw-as-styled"
    """
    styled_summary: str
    raw_summary: str | None = None
    method: str = "llm"


class SummaryRenderer:
    """
    Generates raw and styled summaries.

    Example:
        renderer = SummaryRenderer(OllamaClient())
        rendered = renderer.render(document, merged_facts, style_guide, config)
        print(rendered.styled_summary)
    """

    def __init__(self, backend: TextBackend, prompt_manager: PromptTemplateManager | None = None):
        self.backend = backend
        self.prompt_manager = prompt_manager or PromptTemplateManager()

    # ------------------------------------------------------------------
    # Standard path
    # ------------------------------------------------------------------

    def render(
        self,
        document: Document,
        facts: FactSet,
        style_guide: StyleGuide,
        config: ProcessingConfig | None = None,
        include_raw: bool = True,
    ) -> RenderedSummary:
        """
        Render summaries from merged facts.

        Args:
            document: Source document (title)
            facts: Merged facts
            style_guide: Style for the styled summary
            config: Supplies summary_timeout
            include_raw: Generate the raw summary first and style from it

        Raises:
            SummaryGenerationError: If the raw summary fails
        """
        config = config or ProcessingConfig()
        raw_summary = None
        if include_raw:
            raw_summary = self.generate_raw_from_facts(document, facts, config.summary_timeout)
        return self.render_styled(document, facts, style_guide, config, raw_summary)

    def generate_raw_from_facts(self, document: Document, facts: FactSet, timeout: float | None = None) -> str:
        return self.generate_raw_summary(document, FACTS_LABEL, format_facts(facts), timeout)

    def render_styled(
        self,
        document: Document,
        facts: FactSet,
        style_guide: StyleGuide,
        config: ProcessingConfig | None = None,
        raw_summary: str | None = None,
    ) -> RenderedSummary:
        """Styled summary from the raw summary (if any) or the facts, with local fallback."""
        config = config or ProcessingConfig()
        if raw_summary:
            source_label, source_content = RAW_SUMMARY_LABEL, raw_summary
        else:
            source_label, source_content = FACTS_LABEL, format_facts(facts)

        try:
            styled = self.generate_styled_summary(
                document, style_guide, source_label, source_content, config.summary_timeout
            )
        except BackendError as e:
            warning(f"[SummaryRenderer] Styled summary failed, using local fallback: {e}")
            return RenderedSummary(
                styled_summary=self.fallback_summary(document, facts),
                raw_summary=raw_summary,
                method="fallback",
            )

        return RenderedSummary(styled_summary=styled, raw_summary=raw_summary, method="llm")

    # ------------------------------------------------------------------
    # Fast path
    # ------------------------------------------------------------------

    def render_from_text(
        self,
        document: Document,
        style_guide: StyleGuide,
        config: ProcessingConfig | None = None,
    ) -> RenderedSummary:
        """
        Render both summaries straight from the document text.

        Tries one combined call first; falls back to raw-then-styled.

        Raises:
            SummaryGenerationError: If the raw summary fails in the two-call branch
        """
        config = config or ProcessingConfig()

        combined = self.generate_combined(document, style_guide, config.summary_timeout)
        if combined is not None:
            return combined

        debug_log("[SummaryRenderer] Falling back to separate raw and styled calls")
        raw_summary = self.generate_raw_summary(document, TEXT_LABEL, document.text, config.summary_timeout)

        try:
            styled = self.generate_styled_summary(
                document, style_guide, RAW_SUMMARY_LABEL, raw_summary, config.summary_timeout
            )
        except BackendError as e:
            warning(f"[SummaryRenderer] Styled summary failed on fast path, returning raw summary: {e}")
            return RenderedSummary(styled_summary=raw_summary, raw_summary=raw_summary, method="raw-as-styled")

        return RenderedSummary(styled_summary=styled, raw_summary=raw_summary, method="two-call")

    def generate_combined(self, document: Document, style_guide: StyleGuide, timeout: float) -> RenderedSummary | None:
        """
        One call for both summaries.

        Returns None when the call fails, the JSON is invalid or incomplete,
        or the raw summary fails the quality check.
        """
        prompt = self.prompt_manager.render(
            "combined-summary-generation",
            document_title=document.title,
            document_text=document.text,
            style_section=build_style_section(style_guide),
        )

        try:
            response = self.backend.chat([{"role": "user", "content": prompt}], timeout=timeout)
        except BackendError as e:
            warning(f"[SummaryRenderer] Combined generation call failed: {e}")
            return None

        parsed = parse_json_object(response)
        if not parsed.ok:
            debug_log(f"[SummaryRenderer] Combined response rejected: {parsed.error}")
            return None

        raw_summary = parsed.value.get("rawSummary")
        styled_summary = parsed.value.get("styledSummary")
        if not isinstance(raw_summary, str) or not isinstance(styled_summary, str) \
                or not raw_summary.strip() or not styled_summary.strip():
            debug_log("[SummaryRenderer] Combined response rejected: rawSummary/styledSummary missing")
            return None

        report = check_summary_quality(raw_summary)
        if not report.passed:
            debug_log(f"[SummaryRenderer] Combined response failed quality check: {'; '.join(report.reasons)}")
            return None

        debug_log(f"[SummaryRenderer] Combined response accepted ({report.length} chars raw)")
        return RenderedSummary(
            styled_summary=styled_summary.strip(),
            raw_summary=raw_summary.strip(),
            method="combined",
        )

    # ------------------------------------------------------------------
    # Individual generations
    # ------------------------------------------------------------------

    def generate_raw_summary(self, document: Document, source_label: str, source_content: str,
                             timeout: float | None = None) -> str:
        """
        Generate the unstyled section-template summary.

        Raises:
            SummaryGenerationError: On backend failure or an empty response
        """
        prompt = self.prompt_manager.render(
            "raw-summary",
            document_title=document.title,
            source_label=source_label,
            source_content=source_content,
        )
        try:
            response = self.backend.chat([{"role": "user", "content": prompt}], timeout=timeout)
        except BackendError as e:
            error(f"[SummaryRenderer] Raw summary generation failed: {e}")
            raise SummaryGenerationError(f"Raw summary generation failed: {e}") from e

        if not response.strip():
            raise SummaryGenerationError("Raw summary generation returned an empty response")
        return response.strip()

    def generate_styled_summary(self, document: Document, style_guide: StyleGuide, source_label: str,
                                source_content: str, timeout: float | None = None) -> str:
        """
        Rewrite content per the style guide.

        Raises:
            BackendError: On backend failure or an empty response
        """
        prompt = self.prompt_manager.render(
            "styled-summary",
            document_title=document.title,
            source_label=source_label,
            source_content=source_content,
            style_section=build_style_section(style_guide),
        )
        return self._chat_non_empty(prompt, timeout, "styled summary")

    def regenerate_styled_summary(
        self,
        document: Document,
        facts: FactSet,
        style_guide: StyleGuide,
        regeneration_count: int,
        raw_summary: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """
        Ask for a dramatically different styled rendering of the same facts.

        Uses the merged facts when there are any, otherwise the raw summary
        (fast-path results have no facts).

        Raises:
            SummaryGenerationError: If the backend fails; the caller keeps its previous summary
        """
        if facts.is_empty and raw_summary:
            source_label, source_content = RAW_SUMMARY_LABEL, raw_summary
        else:
            source_label, source_content = FACTS_LABEL, format_facts(facts)

        prompt = self.prompt_manager.render(
            "summary-regeneration",
            document_title=document.title,
            source_label=source_label,
            source_content=source_content,
            style_section=build_style_section(style_guide),
            timestamp=datetime.now().isoformat(),
            regeneration_count=regeneration_count,
        )
        debug_log(f"[SummaryRenderer] Regeneration #{regeneration_count} for {document.id}")

        try:
            return self._chat_non_empty(prompt, timeout, "regenerated summary")
        except BackendError as e:
            error(f"[SummaryRenderer] Regeneration #{regeneration_count} failed: {e}")
            raise SummaryGenerationError(f"Styled summary regeneration failed: {e}") from e

    def _chat_non_empty(self, prompt: str, timeout: float | None, label: str) -> str:
        response = self.backend.chat([{"role": "user", "content": prompt}], timeout=timeout)
        if not response.strip():
            raise BackendError(f"Backend returned an empty {label}")
        return response.strip()

    # ------------------------------------------------------------------
    # Local fallback
    # ------------------------------------------------------------------

    @staticmethod
    def fallback_summary(document: Document, facts: FactSet) -> str:
        """Assemble a markdown summary directly from the facts (no backend)."""
        lines = [f"# {facts.class_title or document.title}", ""]

        if facts.date_or_series:
            lines += [f"**Date/Series:** {facts.date_or_series}", ""]
        if facts.audience:
            lines += [f"**Audience:** {facts.audience}", ""]

        for heading, name in FALLBACK_SECTIONS:
            lines += [f"## {heading}", ""]
            items = getattr(facts, name)
            if items:
                lines += [f"- {item}" for item in items]
            else:
                lines.append(f"No specific {heading.lower()} identified.")
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"
