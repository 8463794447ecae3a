"""
Result storage for LessonScribe.

Key-value persistence of SummarizationResult objects keyed by document id.
The orchestrator only needs save(); get() and delete() serve callers that
reload a result for regeneration.

Stores:
    InMemoryResultStore - Process-local dict (tests, single-shot CLI runs)
    JsonFileResultStore - One JSON file per document under RESULTS_DIR
"""

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from lessonscribe.config import RESULTS_DIR
from lessonscribe.logging_config import debug_log, error
from lessonscribe.summarization.result_types import SummarizationResult


class ResultStore(ABC):
    """Abstract key-value store for summarization results."""

    @abstractmethod
    def save(self, document_id: str, result: SummarizationResult) -> None:
        pass

    @abstractmethod
    def get(self, document_id: str) -> SummarizationResult | None:
        """Return the stored result, or None if there is none."""
        pass

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Remove a result. Returns True if something was deleted."""
        pass


class InMemoryResultStore(ResultStore):
    """Thread-safe dict-backed store."""

    def __init__(self):
        self._results: dict[str, SummarizationResult] = {}
        self._lock = threading.Lock()

    def save(self, document_id: str, result: SummarizationResult) -> None:
        with self._lock:
            self._results[document_id] = result

    def get(self, document_id: str) -> SummarizationResult | None:
        with self._lock:
            return self._results.get(document_id)

    def delete(self, document_id: str) -> bool:
        with self._lock:
            return self._results.pop(document_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


class JsonFileResultStore(ResultStore):
    """
    Stores each result as <results_dir>/<document_id>.json.

    Example:
        store = JsonFileResultStore()
        store.save(result.document.id, result)
        reloaded = store.get(result.document.id)
    """

    def __init__(self, results_dir: Path = RESULTS_DIR):
        self.results_dir = Path(results_dir)
        self._lock = threading.Lock()

    def _path_for(self, document_id: str) -> Path:
        if not document_id or "/" in document_id or "\\" in document_id or document_id in (".", ".."):
            raise ValueError(f"Invalid document id for storage: {document_id!r}")
        return self.results_dir / f"{document_id}.json"

    def save(self, document_id: str, result: SummarizationResult) -> None:
        path = self._path_for(document_id)
        with self._lock:
            self.results_dir.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".json.tmp")
            try:
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
                temp_path.replace(path)
            except Exception as e:
                error(f"[ResultStore] Failed to save {path}: {e}")
                temp_path.unlink(missing_ok=True)
                raise
        debug_log(f"[ResultStore] Saved {path}")

    def get(self, document_id: str) -> SummarizationResult | None:
        path = self._path_for(document_id)
        with self._lock:
            if not path.exists():
                return None
            with open(path, encoding="utf-8") as f:
                data = json.load(f)

        try:
            return SummarizationResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            error(f"[ResultStore] Corrupt result file {path}: {e}")
            raise

    def delete(self, document_id: str) -> bool:
        path = self._path_for(document_id)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
        debug_log(f"[ResultStore] Deleted {path}")
        return True

    def list_ids(self) -> list[str]:
        """Ids of all stored results, sorted."""
        if not self.results_dir.exists():
            return []
        return sorted(path.stem for path in self.results_dir.glob("*.json"))
