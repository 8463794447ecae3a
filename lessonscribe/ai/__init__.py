"""
LessonScribe AI Module
Text-generation backends used by the summarization pipeline.

The pipeline depends only on TextBackend; OllamaClient is the production
implementation talking to a local Ollama server over REST (requests only,
no model inference inside this process).
"""

from .base import TextBackend
from .ollama_client import OllamaClient

__all__ = ['TextBackend', 'OllamaClient']
