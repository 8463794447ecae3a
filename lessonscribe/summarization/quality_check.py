"""
Structural quality check for generated summaries.

Used to decide whether a combined (raw + styled in one call) response is good
enough to keep. The check is purely structural: minimum length, and a
bulleted item under each required section header. A header whose body has
no bullet counts as missing.

Headers are matched by name (case-insensitive, any markdown heading level),
so a differently worded header fails the check.
"""

import re
from dataclasses import dataclass, field

from lessonscribe.config import QUALITY_MIN_RAW_SUMMARY_CHARS, QUALITY_REQUIRED_SECTIONS

_HEADER = re.compile(r"^\s*#+\s*(.+?)\s*#*\s*$")
_BULLET = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+\S")


@dataclass(frozen=True)
class QualityReport:
    passed: bool
    length: int
    missing_sections: tuple[str, ...] = field(default_factory=tuple)
    reasons: tuple[str, ...] = field(default_factory=tuple)


def section_has_bullets(summary: str, section: str) -> bool:
    """True if a header starting with section is followed by at least one bullet."""
    lines = summary.splitlines()
    target = section.lower()

    for index, line in enumerate(lines):
        match = _HEADER.match(line)
        if not match or not match.group(1).lower().startswith(target):
            continue
        for body_line in lines[index + 1:]:
            if _HEADER.match(body_line):
                break
            if _BULLET.match(body_line):
                return True
    return False


def check_summary_quality(
    summary: str,
    min_length: int = QUALITY_MIN_RAW_SUMMARY_CHARS,
    required_sections: tuple[str, ...] = QUALITY_REQUIRED_SECTIONS,
) -> QualityReport:
    """
    Check a raw summary's structure.

    Args:
        summary: Markdown summary to check
        min_length: Minimum character length
        required_sections: Section names that must each have a bulleted item

    Returns:
        QualityReport with the failures, if any
    """
    summary = summary or ""
    reasons = []

    if len(summary.strip()) < min_length:
        reasons.append(f"summary is {len(summary.strip())} chars (minimum {min_length})")

    missing = tuple(section for section in required_sections if not section_has_bullets(summary, section))
    if missing:
        reasons.append(f"sections without bulleted content: {', '.join(missing)}")

    return QualityReport(
        passed=not reasons,
        length=len(summary.strip()),
        missing_sections=missing,
        reasons=tuple(reasons),
    )
