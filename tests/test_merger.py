"""
Tests for the fact merger.
"""

from lessonscribe.summarization.merger import FactMerger, dedupe_case_insensitive
from lessonscribe.summarization.result_types import ChunkFacts, FactSet


def chunk_facts(index: int, success: bool = True, **facts) -> ChunkFacts:
    return ChunkFacts(
        chunk_id=f"doc-chunk-{index}",
        chunk_index=index,
        facts=facts if success else {},
        parse_success=success,
        error=None if success else "timed out",
    )


class TestDedupe:
    """Case-insensitive dedupe helper."""

    def test_keeps_first_casing_and_order(self):
        assert dedupe_case_insensitive(["Practice", "practice", "Rest", "PRACTICE"]) == ["Practice", "Rest"]

    def test_drops_blank_entries(self):
        assert dedupe_case_insensitive(["", "  ", "Breath"]) == ["Breath"]


class TestFactMerger:
    """Merge rules across chunks."""

    def test_first_non_empty_singular_wins(self):
        merged = FactMerger().merge([
            chunk_facts(0, class_title="A"),
            chunk_facts(1, class_title="B"),
        ])
        assert merged.class_title == "A"

    def test_chunk_index_order_beats_list_order(self):
        merged = FactMerger().merge([
            chunk_facts(1, class_title="B", audience="Advanced"),
            chunk_facts(0, class_title="A"),
        ])
        assert merged.class_title == "A"
        assert merged.audience == "Advanced"

    def test_empty_singular_does_not_block_later_value(self):
        merged = FactMerger().merge([
            chunk_facts(0, date_or_series=""),
            chunk_facts(1, date_or_series="Spring series"),
        ])
        assert merged.date_or_series == "Spring series"

    def test_list_fields_dedupe_across_chunks(self):
        merged = FactMerger().merge([
            chunk_facts(0, key_takeaways=["Practice"]),
            chunk_facts(1, key_takeaways=["practice", "Rest well"]),
            chunk_facts(2, key_takeaways=["PRACTICE"]),
        ])
        assert merged.key_takeaways == ("Practice", "Rest well")

    def test_failed_chunks_are_excluded(self):
        merged = FactMerger().merge([
            chunk_facts(0, topics=["Breathing"]),
            chunk_facts(1, success=False),
            ChunkFacts(chunk_id="doc-chunk-2", chunk_index=2, facts={"topics": ["Ignored"]}, parse_success=False),
        ])
        assert merged.topics == ("Breathing",)

    def test_all_failed_yields_empty_fact_set(self):
        merged = FactMerger().merge([chunk_facts(0, success=False), chunk_facts(1, success=False)])
        assert merged == FactSet()
        assert merged.is_empty

    def test_no_chunks_yields_empty_fact_set(self):
        assert FactMerger().merge([]) == FactSet()

    def test_merge_is_idempotent(self):
        inputs = [
            chunk_facts(0, class_title="A", topics=["Breath", "Posture"]),
            chunk_facts(1, class_title="B", topics=["posture", "Focus"]),
        ]
        merger = FactMerger()
        assert merger.merge(inputs) == merger.merge(inputs)
        assert merger.merge(inputs).topics == ("Breath", "Posture", "Focus")
