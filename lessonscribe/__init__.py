"""
LessonScribe - lesson transcript summarization with local LLMs.
"""

__version__ = "0.1.0"
