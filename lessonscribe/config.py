"""
LessonScribe Configuration Module
Centralized configuration for the summarization pipeline.
"""

import os
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "LessonScribe"
APPDATA_DIR = Path(
    os.environ.get('LESSONSCRIBE_HOME', Path(os.path.expanduser('~/.config')) / APP_NAME)
)
LOGS_DIR = APPDATA_DIR / "logs"
RESULTS_DIR = APPDATA_DIR / "results"
USER_PROMPTS_DIR = APPDATA_DIR / "prompts"  # User-edited prompts survive app updates

# Ensure directories exist
for directory in [APPDATA_DIR, LOGS_DIR, RESULTS_DIR, USER_PROMPTS_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# Bundled data files
DATA_DIR = Path(__file__).parent / "data"
MODEL_CONFIG_FILE = DATA_DIR / "models.yaml"
PROCESSING_PRESETS_FILE = DATA_DIR / "processing_presets.yaml"
PROMPTS_DIR = DATA_DIR / "prompts"  # Built-in prompt templates

# AI Model Configuration
OLLAMA_API_BASE = os.environ.get('OLLAMA_HOST', "http://127.0.0.1:11434")
OLLAMA_MODEL_NAME = "llama3.1:8b-instruct-q4_K_M"  # Default chat model
OLLAMA_EMBEDDING_MODEL = "nomic-embed-text"
OLLAMA_TIMEOUT_SECONDS = 600  # Default request timeout when the caller gives none
OLLAMA_HEALTH_TIMEOUT_SECONDS = 5

# Token estimation: 1 token ~ 4 characters
CHARS_PER_TOKEN = 4

# Model-aware chunking
# Documents whose estimated tokens fit under this share of the window stay whole
MODEL_SINGLE_CHUNK_UTILIZATION = 0.95
MODEL_FORCED_CHUNK_MAX_CHARS = 15000
MODEL_FORCED_CHUNK_WINDOW_FRACTION = 0.8
MODEL_FORCED_OVERLAP_FRACTION = 0.02
MODEL_FORCED_MAX_CHUNKS = 3

# Fixed-size chunking: only break at a space past this share of the window
WORD_BREAK_MIN_FRACTION = 0.7

# Paragraph-aware chunking
PARAGRAPH_MIN_CHARS = 50
PARAGRAPH_MAX_CHARS = 2000
PARAGRAPH_SANE_RATIO = 0.7

# Aggressive configuration used when the primary chunking attempt raises
FALLBACK_CHUNK_SIZE = 15000
FALLBACK_CHUNK_OVERLAP = 50
FALLBACK_MAX_CHUNKS = 3

# Chunk combination (fewer, larger extraction calls for very large documents)
COMBINE_CHUNK_THRESHOLD = 8
COMBINE_TARGET_CHARS = 10000

# Fast path is only safe on large-context models
FAST_PATH_MIN_CONTEXT_WINDOW = 32768

# Combined-summary quality gate
QUALITY_MIN_RAW_SUMMARY_CHARS = 200
QUALITY_REQUIRED_SECTIONS = (
    "Notable Quotes",
    "Learning Objectives",
    "Key Takeaways",
    "Techniques",
)

# Default processing preset
DEFAULT_PRESET = "balanced"

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
DEBUG_LOG_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# --- Model Configuration System ---
MODEL_CONFIGS = {}
DEFAULT_CONTEXT_WINDOW = 4096
DEFAULT_UTILIZATION_THRESHOLD = 0.90


def load_model_configs(config_file: Path = MODEL_CONFIG_FILE) -> dict:
    """Loads model context-window configurations from data/models.yaml."""
    global MODEL_CONFIGS
    try:
        with open(config_file, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
            MODEL_CONFIGS = data.get('models', {})
        if DEBUG_MODE and MODEL_CONFIGS:
            from lessonscribe.logging_config import debug_log
            debug_log(f"[Config] Loaded {len(MODEL_CONFIGS)} model configurations from {config_file}")
    except FileNotFoundError:
        from lessonscribe.logging_config import debug_log
        debug_log(f"[Config] WARNING: Model config file not found at {config_file}. Using fallback values.")
        MODEL_CONFIGS = {}
    except yaml.YAMLError as e:
        from lessonscribe.logging_config import debug_log
        debug_log(f"[Config] ERROR: Failed to parse model config file: {e}")
        MODEL_CONFIGS = {}
    return MODEL_CONFIGS


def get_model_config(model_name: str | None) -> dict:
    """
    Returns the configuration for a specific model, with fallbacks.

    Lookup is exact; unlisted models and variants get the 'default' entry.

    Args:
        model_name: The name of the model (e.g., 'gemma3:4b').

    Returns:
        A dictionary with at least 'context_window' and 'utilization'.
    """
    if not MODEL_CONFIGS:
        load_model_configs()

    config = MODEL_CONFIGS.get(model_name) if model_name else None
    if config is None:
        config = MODEL_CONFIGS.get('default', {})

    return {
        'context_window': int(config.get('context_window', DEFAULT_CONTEXT_WINDOW)),
        'utilization': float(config.get('utilization', DEFAULT_UTILIZATION_THRESHOLD)),
    }


# Load configs on module import
load_model_configs()
# --- End Model Configuration System ---
