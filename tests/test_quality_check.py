"""
Tests for the structural summary quality check.
"""

from lessonscribe.summarization.quality_check import check_summary_quality, section_has_bullets

from conftest import RAW_SUMMARY


class TestSectionHasBullets:
    """Per-section bullet detection."""

    def test_section_with_bullet(self):
        assert section_has_bullets("## Techniques\n- Box breathing\n", "Techniques")

    def test_numbered_items_count_as_bullets(self):
        assert section_has_bullets("### Key Takeaways\n1. Exhale slowly\n", "Key Takeaways")

    def test_header_match_is_case_insensitive(self):
        assert section_has_bullets("## NOTABLE QUOTES\n* \"Breath is the anchor\"\n", "Notable Quotes")

    def test_header_with_empty_body_is_absent(self):
        summary = "## Notable Quotes\n\n## Open Questions\n- Why?\n"
        assert not section_has_bullets(summary, "Notable Quotes")

    def test_prose_body_is_absent(self):
        summary = "## Notable Quotes\nNo specific notable quotes identified in this lesson.\n"
        assert not section_has_bullets(summary, "Notable Quotes")

    def test_missing_header(self):
        assert not section_has_bullets("## Topics\n- Breathing\n", "Techniques")


class TestCheckSummaryQuality:
    """Combined length and section checks."""

    def test_complete_summary_passes(self):
        report = check_summary_quality(RAW_SUMMARY)
        assert report.passed
        assert report.missing_sections == ()
        assert report.reasons == ()

    def test_short_summary_fails(self):
        summary = (
            "## Learning Objectives\n- a\n## Key Takeaways\n- b\n"
            "## Techniques\n- c\n## Notable Quotes\n- d\n"
        )
        report = check_summary_quality(summary)
        assert not report.passed
        assert report.missing_sections == ()
        assert "minimum 200" in report.reasons[0]

    def test_missing_notable_quotes_content_fails(self):
        summary = RAW_SUMMARY.replace('- "Breath is the anchor"', "")
        report = check_summary_quality(summary)

        assert not report.passed
        assert report.missing_sections == ("Notable Quotes",)

    def test_differently_worded_header_fails(self):
        summary = RAW_SUMMARY.replace("## Techniques", "## Practices")
        assert check_summary_quality(summary).missing_sections == ("Techniques",)

    def test_custom_requirements(self):
        report = check_summary_quality("## Topics\n- Breathing\n", min_length=10, required_sections=("Topics",))
        assert report.passed
