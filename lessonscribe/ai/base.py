"""
Text Backend Interface

Defines the abstract backend the summarization pipeline talks to. The
pipeline never imports a concrete client; the orchestrator is handed any
TextBackend, which keeps tests free of network calls.

Design Principles:
- Dependency Inversion: pipeline depends on TextBackend, not OllamaClient
- Testable: a scripted fake backend can stand in for the real one
"""

from abc import ABC, abstractmethod


class TextBackend(ABC):
    """
    Abstract text-generation backend.

    Attributes:
        model_name: Model identifier used for context-window lookups and stats

    Example:
        class EchoBackend(TextBackend):
            model_name = "echo"

            def chat(self, messages, timeout=None):
                return messages[-1]["content"]

            def is_available(self):
                return True

            def generate_embedding(self, text):
                return [0.0]
    """

    model_name: str = "unknown"

    @abstractmethod
    def chat(self, messages: list[dict], timeout: float | None = None) -> str:
        """
        Send a chat conversation and return the assistant's reply text.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            timeout: Per-call timeout in seconds (None = backend default)

        Raises:
            BackendTimeoutError: The call exceeded the timeout
            BackendUnavailableError: The backend could not be reached
            BackendError: Any other backend failure
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap health check; never raises."""

    @abstractmethod
    def generate_embedding(self, text: str) -> list[float]:
        """Return an embedding vector for text."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_name={self.model_name!r})"
