"""
Processing configuration and presets.

A ProcessingConfig is chosen before a run and threaded explicitly through
every orchestration call; nothing here is process-wide mutable state, so two
runs with different presets never interfere.

Usage:
    config = get_preset("fast")
    estimate = estimate_processing_time(config, document_word_count=12000)
    custom = load_processing_config(Path("my_preset.yaml"))
"""

import math
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from lessonscribe.config import DEFAULT_PRESET, PROCESSING_PRESETS_FILE
from lessonscribe.logging_config import debug_log


SPEED_DESCRIPTIONS = {
    "ultra-fast": "~3-5x faster",
    "fast": "~2x faster",
    "balanced": "Standard speed",
    "quality": "Slower, higher quality",
}


@dataclass(frozen=True)
class ChunkingConfig:
    """
    Chunk sizing and scheduling options.

    Attributes:
        chunk_size: Target chunk size in characters
        overlap: Informational overlap in characters (fixed-size mode ignores it)
        max_chunks: Optional hard cap on the number of chunks
        parallel_processing: Whether chunk extraction may run in parallel
        batch_size: Concurrent extraction calls per batch
        mode: Preset name this config came from ("custom" otherwise)
        strategy: "model" (context-window aware), "fixed" or "paragraph"
        description: Human-readable description of the preset
    """

    chunk_size: int = 2500
    overlap: int = 200
    max_chunks: int | None = None
    parallel_processing: bool = True
    batch_size: int = 2
    mode: str = "custom"
    strategy: str = "model"
    description: str = ""

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap < 0:
            raise ValueError(f"overlap cannot be negative, got {self.overlap}")
        if self.max_chunks is not None and self.max_chunks <= 0:
            raise ValueError(f"max_chunks must be positive, got {self.max_chunks}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.strategy not in ("model", "fixed", "paragraph"):
            raise ValueError(f"Unknown chunking strategy: {self.strategy}")


@dataclass(frozen=True)
class ProcessingConfig:
    """
    Full configuration for one summarization run.

    Timeouts and delays are in seconds.
    """

    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    enable_parallel_fact_extraction: bool = True
    fact_extraction_timeout: float = 40.0
    enable_fast_mode: bool = False
    max_retries: int = 2
    generate_raw_summary: bool = True
    summary_timeout: float = 180.0
    chunk_delay: float = 0.5
    batch_delay: float = 0.5
    retry_delay: float = 1.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries cannot be negative, got {self.max_retries}")
        if self.fact_extraction_timeout <= 0:
            raise ValueError("fact_extraction_timeout must be positive")

    @property
    def runs_in_parallel(self) -> bool:
        """True when chunk extraction should use batched parallel execution."""
        return (
            self.enable_parallel_fact_extraction
            and self.chunking.parallel_processing
            and self.chunking.batch_size > 1
        )

    def with_overrides(self, **changes) -> "ProcessingConfig":
        """Return a copy with top-level fields replaced."""
        return replace(self, **changes)


def _config_from_dict(data: dict) -> ProcessingConfig:
    """Build a ProcessingConfig from a parsed YAML mapping."""
    chunking = ChunkingConfig(**(data.get("chunking") or {}))
    options = {key: value for key, value in data.items() if key != "chunking"}
    return ProcessingConfig(chunking=chunking, **options)


def _load_presets(presets_file: Path = PROCESSING_PRESETS_FILE) -> dict[str, ProcessingConfig]:
    """Load the bundled presets from YAML."""
    with open(presets_file, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    presets = {name: _config_from_dict(body) for name, body in data.get("presets", {}).items()}
    debug_log(f"[ProcessingConfig] Loaded {len(presets)} presets from {presets_file}")
    return presets


PROCESSING_PRESETS: dict[str, ProcessingConfig] = _load_presets()


def get_preset(name: str = DEFAULT_PRESET) -> ProcessingConfig:
    """
    Look up a processing preset by name.

    Raises:
        KeyError: If the preset does not exist
    """
    try:
        return PROCESSING_PRESETS[name]
    except KeyError:
        available = ", ".join(sorted(PROCESSING_PRESETS))
        raise KeyError(f"Unknown preset '{name}'. Available: {available}") from None


def load_processing_config(path: Path) -> ProcessingConfig:
    """
    Load a custom processing configuration from a YAML file.

    The file uses the same shape as one entry of processing_presets.yaml.
    A top-level ``base`` key names a preset to start from.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    base_name = data.pop("base", None)
    if base_name is None:
        return _config_from_dict(data)

    base = get_preset(base_name)
    chunking = replace(base.chunking, **(data.pop("chunking", None) or {}), mode="custom")
    return replace(base, chunking=chunking, **data)


def get_available_presets() -> list[dict]:
    """Describe the bundled presets for display in a settings screen."""
    return [
        {
            "key": key,
            "name": config.chunking.mode.capitalize(),
            "description": config.chunking.description,
            "chunk_size": config.chunking.chunk_size,
            "strategy": config.chunking.strategy,
            "estimated_speed": SPEED_DESCRIPTIONS.get(config.chunking.mode, "Standard speed"),
        }
        for key, config in PROCESSING_PRESETS.items()
    ]


def estimate_processing_time(config: ProcessingConfig, document_word_count: int) -> dict:
    """
    Rough estimate of chunk count and wall-clock minutes for a document.

    Args:
        config: Processing configuration for the run
        document_word_count: Words in the document

    Returns:
        Dict with estimated_chunks, estimated_time_minutes and description
    """
    words_per_chunk = config.chunking.chunk_size / 5
    estimated_chunks = math.ceil(document_word_count / words_per_chunk) if document_word_count else 0

    if config.chunking.max_chunks:
        estimated_chunks = min(estimated_chunks, config.chunking.max_chunks)

    base_minutes_per_chunk = 0.5 if config.enable_fast_mode else 1.5
    if config.runs_in_parallel:
        effective = estimated_chunks / config.chunking.batch_size * base_minutes_per_chunk
    else:
        effective = estimated_chunks * base_minutes_per_chunk

    return {
        "estimated_chunks": estimated_chunks,
        "estimated_time_minutes": max(0.5, effective),
        "description": f"Processing {estimated_chunks} chunks with {config.chunking.mode} mode",
    }
