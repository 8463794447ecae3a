"""
Prompt building helpers shared by the chunk processor and summary renderer.

Templates live in data/prompts/ and are loaded through
PromptTemplateManager; this module only turns pipeline objects into the
strings those templates expect.
"""

import json

from .result_types import FactSet, StyleGuide

DEFAULT_STYLE_INSTRUCTIONS = "Use a professional, clear tone."


def build_style_section(style_guide: StyleGuide) -> str:
    """Render the style guide block embedded in extraction and summary prompts."""
    tone = style_guide.tone_settings
    lines = [
        "STYLE GUIDE:",
        style_guide.instructions_md.strip() or DEFAULT_STYLE_INSTRUCTIONS,
        "",
        "Tone Settings:",
        f"- Formality: {tone.formality}/100 (0=casual, 100=formal)",
        f"- Enthusiasm: {tone.enthusiasm}/100 (0=calm, 100=energetic)",
        f"- Technical Level: {tone.technicality}/100 (0=simple, 100=technical)",
        "",
        f"Keywords to emphasize: {', '.join(style_guide.keywords) or 'None specified'}",
    ]

    phrases = style_guide.example_phrases
    if not phrases.is_empty:
        lines.append("")
        lines.append("EXAMPLE PHRASES:")
        for label, values in (
            ("Preferred openings", phrases.preferred_openings),
            ("Preferred transitions", phrases.preferred_transitions),
            ("Preferred conclusions", phrases.preferred_conclusions),
            ("Avoid", phrases.avoid_phrases),
        ):
            if values:
                lines.append(f"- {label}: {'; '.join(values)}")

    return "\n".join(lines)


def format_facts(facts: FactSet) -> str:
    """Pretty JSON of merged facts for summary prompts."""
    return json.dumps(facts.to_dict(), indent=2, ensure_ascii=False)
