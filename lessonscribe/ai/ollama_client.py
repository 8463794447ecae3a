"""
Ollama Client for LessonScribe
Talks to a local Ollama server over its REST API.

Endpoints used:
- POST /api/chat        chat completion (non-streaming)
- GET  /api/tags        health check and model listing
- POST /api/embeddings  embedding vectors

requests exceptions are translated into the LessonScribe backend error
hierarchy at this boundary, so the pipeline only ever sees BackendError
subclasses.
"""

import time

import requests

from lessonscribe.config import (
    OLLAMA_API_BASE,
    OLLAMA_EMBEDDING_MODEL,
    OLLAMA_HEALTH_TIMEOUT_SECONDS,
    OLLAMA_MODEL_NAME,
    OLLAMA_TIMEOUT_SECONDS,
)
from lessonscribe.exceptions import BackendError, BackendTimeoutError, BackendUnavailableError
from lessonscribe.logging_config import debug_log

from .base import TextBackend


class OllamaClient(TextBackend):
    """
    TextBackend backed by a local Ollama server.

    Args:
        api_base: Server URL (defaults to OLLAMA_HOST or http://127.0.0.1:11434)
        model_name: Chat model
        embedding_model: Embedding model
        timeout: Default request timeout in seconds when a call gives none
        session: Optional requests.Session (shared connection pool; injectable for tests)
    """

    def __init__(
        self,
        api_base: str = OLLAMA_API_BASE,
        model_name: str = OLLAMA_MODEL_NAME,
        embedding_model: str = OLLAMA_EMBEDDING_MODEL,
        timeout: float = OLLAMA_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.model_name = model_name
        self.embedding_model = embedding_model
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_available(self) -> bool:
        """
        Check if Ollama is running and accessible.

        Returns:
            bool: True if /api/tags answers with 200
        """
        try:
            response = self.session.get(
                f"{self.api_base}/api/tags",
                timeout=OLLAMA_HEALTH_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            debug_log(f"[OLLAMA] Connection error: Cannot reach {self.api_base}: {e}")
            return False

        if response.status_code != 200:
            debug_log(f"[OLLAMA] Health check failed: Status {response.status_code}")
            return False
        return True

    def get_available_models(self) -> list[str]:
        """
        List model names installed on the server.

        Returns an empty list if the server is unreachable.
        """
        try:
            response = self.session.get(f"{self.api_base}/api/tags", timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            debug_log(f"[OLLAMA] Error fetching models: {e}")
            return []

        models = [model['name'] for model in response.json().get('models', [])]
        debug_log(f"[OLLAMA] Found {len(models)} models: {models}")
        return models

    def chat(self, messages: list[dict], timeout: float | None = None) -> str:
        """
        Run a non-streaming chat completion.

        Args:
            messages: List of {"role", "content"} dicts
            timeout: Per-call timeout in seconds (defaults to self.timeout)

        Returns:
            str: The assistant message content

        Raises:
            BackendTimeoutError: Request exceeded the timeout
            BackendUnavailableError: Ollama not reachable
            BackendError: Non-200 status or malformed response
        """
        timeout = timeout if timeout is not None else self.timeout
        prompt_chars = sum(len(m.get('content', '')) for m in messages)
        debug_log(
            f"[OLLAMA CHAT] Model: {self.model_name}, {len(messages)} message(s), "
            f"{prompt_chars} chars, timeout {timeout}s"
        )

        payload = {
            "model": self.model_name,
            "messages": messages,
            "stream": False,
        }

        start_time = time.time()
        data = self._post("/api/chat", payload, timeout)

        try:
            content = data['message']['content']
        except (KeyError, TypeError) as e:
            raise BackendError(f"Malformed chat response from Ollama: {str(data)[:200]}") from e

        elapsed = time.time() - start_time
        debug_log(
            f"[OLLAMA CHAT] Complete: {data.get('eval_count', 0)} tokens in {elapsed:.2f}s, "
            f"{len(content)} chars"
        )
        return content

    def generate_embedding(self, text: str) -> list[float]:
        """
        Embed text with the configured embedding model.

        Raises:
            BackendError: On any failure (see chat())
        """
        payload = {"model": self.embedding_model, "prompt": text}
        data = self._post("/api/embeddings", payload, self.timeout)

        embedding = data.get('embedding') if isinstance(data, dict) else None
        if not embedding:
            raise BackendError("Ollama returned no embedding")
        return embedding

    def _post(self, path: str, payload: dict, timeout: float) -> dict:
        """POST JSON and return the decoded body, translating requests errors."""
        url = f"{self.api_base}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise BackendTimeoutError(
                f"Ollama request to {path} timed out after {timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise BackendUnavailableError(
                f"Cannot connect to Ollama at {self.api_base}. "
                "Is Ollama running? Start with: ollama serve"
            ) from e
        except requests.exceptions.RequestException as e:
            raise BackendError(f"Ollama request to {path} failed: {e}") from e

        if response.status_code != 200:
            raise BackendError(f"Ollama returned status {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Ollama returned invalid JSON for {path}") from e

    def health_check(self) -> dict:
        """
        Get health information about the Ollama connection.

        Returns:
            dict: connected, api_base, model and available_models
        """
        connected = self.is_available()
        return {
            'connected': connected,
            'api_base': self.api_base,
            'model': self.model_name,
            'available_models': self.get_available_models() if connected else [],
        }
