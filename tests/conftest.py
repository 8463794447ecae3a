"""
Shared fixtures for the LessonScribe test suite.

LESSONSCRIBE_HOME is pointed at a temporary directory before any lessonscribe
module is imported, so logs, results and user prompts never touch the real
application directory.
"""

import json
import os
import sys
import tempfile
import threading
from pathlib import Path

import pytest

os.environ.setdefault("LESSONSCRIBE_HOME", tempfile.mkdtemp(prefix="lessonscribe-test-"))

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lessonscribe.ai.base import TextBackend  # noqa: E402
from lessonscribe.processing_config import ChunkingConfig, ProcessingConfig  # noqa: E402
from lessonscribe.prompt_template_manager import PromptTemplateManager  # noqa: E402
from lessonscribe.config import PROMPTS_DIR  # noqa: E402


# Distinctive opening text of each built-in template, checked in this order
PROMPT_MARKERS = (
    ("regeneration", "REGENERATION MODE"),
    ("combined", "BOTH a raw factual summary"),
    ("extraction", "extracting structured facts"),
    ("styled", "Rewrite the lesson summary"),
    ("raw", "Generate a factual markdown summary"),
)


def prompt_kind(prompt: str) -> str:
    """Classify a rendered prompt by the template it came from."""
    for kind, marker in PROMPT_MARKERS:
        if marker in prompt:
            return kind
    return "unknown"


def make_facts_json(**overrides) -> str:
    """A valid fact-extraction response."""
    facts = {
        "class_title": "Breathwork Basics",
        "date_or_series": "Week 1",
        "audience": "Beginners",
        "learning_objectives": ["Understand diaphragmatic breathing"],
        "key_takeaways": ["Slow exhales calm the nervous system"],
        "topics": ["Breathing"],
        "techniques": ["Box breathing"],
        "action_items": ["Practice five minutes daily"],
        "notable_quotes": ["Breath is the anchor"],
        "open_questions": ["How long should each hold last?"],
        "timestamp_refs": [],
    }
    facts.update(overrides)
    return json.dumps(facts)


RAW_SUMMARY = """# Breathwork Basics

## Synopsis
The lesson introduces diaphragmatic breathing. It explains why slow exhales calm the body. Students practice box breathing together. The class closes with guidance for daily practice.

## Learning Objectives
- Understand diaphragmatic breathing

## Key Takeaways
- Slow exhales calm the nervous system

## Topics
- Breathing

## Techniques
- Box breathing

## Notable Quotes
- "Breath is the anchor"

## Open Questions
- How long should each hold last?
"""

STYLED_SUMMARY = RAW_SUMMARY.replace("The lesson introduces", "Today we dove into")


class ScriptedBackend(TextBackend):
    """
    Fake backend answering by prompt kind.

    Each kind maps to a list of responses consumed in order (the last one
    repeats) or to a callable(prompt) -> str. A response that is an
    exception instance is raised instead of returned. Thread-safe.
    """

    def __init__(self, model_name: str = "test-model", available: bool = True, **scripts):
        self.model_name = model_name
        self.available = available
        self.scripts = {
            "extraction": [make_facts_json()],
            "raw": [RAW_SUMMARY],
            "styled": [STYLED_SUMMARY],
            "regeneration": ["# Breathwork Basics\n\nA fresh take on the same lesson."],
            "combined": [json.dumps({"rawSummary": RAW_SUMMARY, "styledSummary": STYLED_SUMMARY})],
        }
        self.scripts.update(scripts)
        self.calls: list[tuple[str, str, float | None]] = []
        self._positions: dict[str, int] = {}
        self._lock = threading.Lock()

    def chat(self, messages, timeout=None):
        prompt = messages[-1]["content"]
        kind = prompt_kind(prompt)
        with self._lock:
            self.calls.append((kind, prompt, timeout))
            script = self.scripts.get(kind)
            if callable(script):
                response = script
            else:
                position = self._positions.get(kind, 0)
                response = script[min(position, len(script) - 1)]
                self._positions[kind] = position + 1

        if callable(response):
            response = response(prompt)
        if isinstance(response, Exception):
            raise response
        return response

    def is_available(self):
        return self.available

    def generate_embedding(self, text):
        return [0.0, 1.0]

    def kinds(self) -> list[str]:
        with self._lock:
            return [kind for kind, _, _ in self.calls]

    def count(self, kind: str) -> int:
        return self.kinds().count(kind)


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def prompt_manager(tmp_path):
    """Built-in prompts only, with an empty user prompt directory."""
    return PromptTemplateManager(prompts_base_dir=PROMPTS_DIR, user_prompts_dir=tmp_path / "user_prompts")


@pytest.fixture
def no_sleep():
    """Recording replacement for time.sleep."""
    calls = []
    return calls.append, calls


@pytest.fixture
def sequential_config():
    """Sequential extraction with every delay disabled."""
    return ProcessingConfig(
        chunking=ChunkingConfig(parallel_processing=False, batch_size=1),
        enable_parallel_fact_extraction=False,
        chunk_delay=0.0,
        batch_delay=0.0,
        retry_delay=0.0,
    )


@pytest.fixture
def parallel_config():
    """Parallel batches of 2 with every delay disabled."""
    return ProcessingConfig(
        chunking=ChunkingConfig(parallel_processing=True, batch_size=2),
        enable_parallel_fact_extraction=True,
        chunk_delay=0.0,
        batch_delay=0.0,
        retry_delay=0.0,
    )
