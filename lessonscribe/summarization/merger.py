"""
Fact Merger for Lesson Summarization.

Combines per-chunk extraction results into one canonical FactSet. This is
the REDUCE phase of the map-reduce pipeline. Pure: no I/O, no backend calls,
same input always gives the same FactSet.

Rules:
- Only chunks with parse_success contribute, in ascending chunk_index order
- Singular fields: first non-empty value wins
- List fields: concatenated, blank entries dropped, deduplicated
  case-insensitively keeping the first casing and first-occurrence order
"""

from lessonscribe.logging_config import debug_log

from .result_types import LIST_FACT_FIELDS, SINGULAR_FACT_FIELDS, ChunkFacts, FactSet


def dedupe_case_insensitive(values: list[str]) -> list[str]:
    """Drop blanks and case-insensitive duplicates, keeping first casing and order."""
    seen = set()
    unique = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            continue
        key = value.lower()
        if key not in seen:
            seen.add(key)
            unique.append(value)
    return unique


class FactMerger:
    """
    Merges ChunkFacts into a FactSet.

    Example:
        merger = FactMerger()
        facts = merger.merge(chunk_facts)
        print(facts.class_title, len(facts.key_takeaways))
    """

    def merge(self, chunk_facts: list[ChunkFacts]) -> FactSet:
        """
        Merge chunk results.

        An input with no successful chunks yields an empty (but valid) FactSet.
        """
        contributing = sorted(
            (cf for cf in chunk_facts if cf.parse_success),
            key=lambda cf: cf.chunk_index,
        )

        singulars: dict[str, str | None] = {name: None for name in SINGULAR_FACT_FIELDS}
        for cf in contributing:
            for name in SINGULAR_FACT_FIELDS:
                value = cf.facts.get(name)
                if singulars[name] is None and isinstance(value, str) and value.strip():
                    singulars[name] = value

        lists = {}
        for name in LIST_FACT_FIELDS:
            combined = [item for cf in contributing for item in (cf.facts.get(name) or [])]
            lists[name] = tuple(dedupe_case_insensitive(combined))

        merged = FactSet(**singulars, **lists)
        debug_log(
            f"[FactMerger] Merged {len(contributing)}/{len(chunk_facts)} chunks: "
            + ", ".join(f"{name}={len(lists[name])}" for name in LIST_FACT_FIELDS)
        )
        return merged
