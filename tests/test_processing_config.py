"""
Tests for processing presets, model configs and style guide loading.
"""

from pathlib import Path

import pytest

from lessonscribe.config import DATA_DIR, get_model_config
from lessonscribe.processing_config import (
    PROCESSING_PRESETS,
    ChunkingConfig,
    ProcessingConfig,
    estimate_processing_time,
    get_available_presets,
    get_preset,
    load_processing_config,
)
from lessonscribe.summarization.chunker import TextChunker
from lessonscribe.summarization.result_types import StyleGuide, ToneSettings


class TestPresets:
    """Bundled processing presets."""

    def test_all_presets_load(self):
        assert set(PROCESSING_PRESETS) == {"ultra-fast", "fast", "balanced", "quality"}

    def test_balanced_values(self):
        balanced = get_preset("balanced")
        assert balanced.chunking.chunk_size == 2500
        assert balanced.chunking.batch_size == 2
        assert balanced.fact_extraction_timeout == 40
        assert not balanced.enable_fast_mode
        assert balanced.runs_in_parallel

    def test_quality_runs_sequentially(self):
        quality = get_preset("quality")
        assert not quality.runs_in_parallel
        assert quality.max_retries == 3

    def test_fast_presets_skip_raw_summary_call(self):
        assert get_preset("ultra-fast").enable_fast_mode
        assert get_preset("fast").enable_fast_mode

    def test_unknown_preset_lists_available(self):
        with pytest.raises(KeyError, match="balanced"):
            get_preset("turbo")

    def test_available_presets_for_display(self):
        presets = {p["key"]: p for p in get_available_presets()}
        assert presets["ultra-fast"]["estimated_speed"] == "~3-5x faster"
        assert presets["quality"]["chunk_size"] == 1500


class TestPresetChunking:
    """Presets drive how a document is split."""

    TEXT = " ".join(f"word{i}" for i in range(3000))  # ~26k chars

    def chunk_count(self, preset: str) -> int:
        config = get_preset(preset)
        return len(TextChunker(config.chunking).chunk(self.TEXT, "doc", "gemma3:4b"))

    def test_presets_use_their_own_chunk_size(self):
        assert {config.chunking.strategy for config in PROCESSING_PRESETS.values()} == {"fixed"}

    def test_smaller_chunk_size_means_more_chunks(self):
        counts = [self.chunk_count(name) for name in ("quality", "balanced", "fast", "ultra-fast")]
        assert counts == sorted(counts, reverse=True)
        assert len(set(counts)) == 4
        assert counts[-1] > 1

    def test_model_strategy_ignores_preset_size(self):
        """The same text fits gemma3:4b's window as one chunk."""
        config = ChunkingConfig(chunk_size=1500, strategy="model")
        assert len(TextChunker(config).chunk(self.TEXT, "doc", "gemma3:4b")) == 1

    def test_ultra_fast_caps_chunk_count(self):
        text = " ".join(f"word{i}" for i in range(12000))  # ~110k chars
        chunks = TextChunker(get_preset("ultra-fast").chunking).chunk(text, "doc")
        assert len(chunks) == 10
        assert [token for chunk in chunks for token in chunk.text.split()] == text.split()


class TestValidation:
    """Dataclass validation."""

    @pytest.mark.parametrize("kwargs", [
        {"chunk_size": 0},
        {"overlap": -1},
        {"max_chunks": 0},
        {"batch_size": 0},
        {"strategy": "semantic"},
    ])
    def test_invalid_chunking_config(self, kwargs):
        with pytest.raises(ValueError):
            ChunkingConfig(**kwargs)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            ProcessingConfig(max_retries=-1)

    def test_with_overrides_returns_copy(self):
        base = ProcessingConfig()
        changed = base.with_overrides(max_retries=0)
        assert changed.max_retries == 0
        assert base.max_retries == 2


class TestCustomConfig:
    """YAML files outside the bundled presets."""

    def test_standalone_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "chunking:\n  chunk_size: 4000\n  strategy: paragraph\nmax_retries: 1\n",
            encoding="utf-8",
        )
        config = load_processing_config(path)

        assert config.chunking.chunk_size == 4000
        assert config.chunking.strategy == "paragraph"
        assert config.max_retries == 1
        assert config.fact_extraction_timeout == 40.0

    def test_file_based_on_preset(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("base: quality\nchunking:\n  batch_size: 3\nsummary_timeout: 30\n", encoding="utf-8")
        config = load_processing_config(path)

        assert config.chunking.chunk_size == 1500
        assert config.chunking.batch_size == 3
        assert config.chunking.mode == "custom"
        assert config.summary_timeout == 30
        assert config.max_retries == 3


class TestEstimates:
    """estimate_processing_time()."""

    def test_parallel_estimate(self):
        estimate = estimate_processing_time(get_preset("balanced"), document_word_count=5000)
        # 500 words per chunk -> 10 chunks, 2 at a time, 1.5 min each
        assert estimate["estimated_chunks"] == 10
        assert estimate["estimated_time_minutes"] == 7.5

    def test_max_chunks_caps_estimate(self):
        estimate = estimate_processing_time(get_preset("ultra-fast"), document_word_count=100000)
        assert estimate["estimated_chunks"] == 10

    def test_empty_document_has_floor(self):
        estimate = estimate_processing_time(get_preset("quality"), document_word_count=0)
        assert estimate["estimated_chunks"] == 0
        assert estimate["estimated_time_minutes"] == 0.5


class TestModelConfig:
    """Context windows from data/models.yaml."""

    def test_known_model(self):
        assert get_model_config("gemma3:4b")["context_window"] == 131072

    def test_unknown_model_uses_default(self):
        assert get_model_config("someone/custom-model")["context_window"] == 4096
        assert get_model_config(None)["context_window"] == 4096


class TestStyleGuide:
    """Style guide loading and tone validation."""

    def test_bundled_style_guide(self):
        guide = StyleGuide.from_yaml(DATA_DIR / "style_guides" / "studio_voice.yaml")

        assert guide.tone_settings == ToneSettings(formality=30, enthusiasm=70, technicality=40)
        assert guide.keywords == ("breath", "alignment", "practice")
        assert guide.example_phrases.avoid_phrases == ("In conclusion",)
        assert "quick refresher" in guide.instructions_md

    def test_empty_mapping_gives_defaults(self):
        guide = StyleGuide.from_dict({})
        assert guide == StyleGuide()
        assert guide.example_phrases.is_empty

    @pytest.mark.parametrize("value", [-1, 101, 50.5, True])
    def test_tone_out_of_range(self, value):
        with pytest.raises(ValueError):
            ToneSettings(formality=value)

    def test_from_yaml_accepts_path_objects(self, tmp_path):
        path = Path(tmp_path) / "guide.yaml"
        path.write_text("keywords: [calm]\n", encoding="utf-8")
        assert StyleGuide.from_yaml(path).keywords == ("calm",)
