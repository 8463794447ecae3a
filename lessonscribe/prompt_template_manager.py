"""
Prompt Template Manager for LessonScribe
Loads prompt templates by id, validates them and fills in {{variables}}.

Supports dual-directory system:
- Built-in prompts in lessonscribe/data/prompts/ (shipped with the package)
- User prompts in <app dir>/prompts/ (persist through updates)

A user file with the same id as a built-in prompt overrides it.
"""

import re
from pathlib import Path

from lessonscribe.config import PROMPTS_DIR, USER_PROMPTS_DIR
from lessonscribe.exceptions import PromptTemplateError
from lessonscribe.logging_config import debug_log

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

# Variables each built-in prompt must contain; user overrides are held to the same contract
REQUIRED_VARIABLES = {
    "fact-extraction": ("chunk_text", "chunk_number", "style_section"),
    "raw-summary": ("document_title", "source_label", "source_content"),
    "styled-summary": ("document_title", "source_label", "source_content", "style_section"),
    "summary-regeneration": (
        "document_title", "source_label", "source_content", "style_section",
        "timestamp", "regeneration_count",
    ),
    "combined-summary-generation": ("document_title", "document_text", "style_section"),
}


class PromptTemplateManager:
    """
    Manages prompt templates for the summarization pipeline.

    Each template is a .txt file named <prompt_id>.txt using {{variable}}
    placeholders.

    Example:
        manager = PromptTemplateManager()
        prompt = manager.render("fact-extraction", chunk_text=..., chunk_number=1, style_section=...)
    """

    def __init__(self, prompts_base_dir: Path = PROMPTS_DIR, user_prompts_dir: Path | None = USER_PROMPTS_DIR):
        """
        Args:
            prompts_base_dir: Directory of built-in prompts
            user_prompts_dir: Directory of user prompts. If None, only built-in prompts are used.
        """
        self.prompts_base_dir = Path(prompts_base_dir)
        self.user_prompts_dir = Path(user_prompts_dir) if user_prompts_dir else None
        self._cache = {}

    def get_available_prompts(self) -> list[dict[str, str]]:
        """
        List prompt ids from both directories.

        Returns:
            List of dicts with keys: 'id', 'file_path', 'source' ('built-in' or 'custom')
        """
        prompts_by_id = {}
        for directory, source in ((self.prompts_base_dir, "built-in"), (self.user_prompts_dir, "custom")):
            if directory is None or not directory.exists():
                continue
            for template_file in directory.glob("*.txt"):
                # Underscore-prefixed files are reserved
                if template_file.name.startswith("_"):
                    continue
                prompts_by_id[template_file.stem] = {
                    "id": template_file.stem,
                    "file_path": str(template_file),
                    "source": source,
                }
        return sorted(prompts_by_id.values(), key=lambda p: p["id"])

    def load_template(self, prompt_id: str, use_cache: bool = True) -> str:
        """
        Load a prompt template (user directory first, then built-in).

        Raises:
            PromptTemplateError: If the template doesn't exist or is invalid
        """
        if use_cache and prompt_id in self._cache:
            return self._cache[prompt_id]

        template_path = None
        if self.user_prompts_dir:
            user_path = self.user_prompts_dir / f"{prompt_id}.txt"
            if user_path.exists():
                template_path = user_path

        if template_path is None:
            builtin_path = self.prompts_base_dir / f"{prompt_id}.txt"
            if builtin_path.exists():
                template_path = builtin_path

        if template_path is None:
            raise PromptTemplateError(
                f"Prompt template '{prompt_id}' not found. Searched: {self.prompts_base_dir}, "
                f"{self.user_prompts_dir if self.user_prompts_dir else 'N/A'}"
            )

        with open(template_path, encoding="utf-8") as f:
            template = f.read()

        self.validate_template(prompt_id, template, template_path)
        debug_log(f"[PromptTemplateManager] Loaded '{prompt_id}' from {template_path}")

        self._cache[prompt_id] = template
        return template

    def validate_template(self, prompt_id: str, template: str, template_path: Path | None = None) -> None:
        """
        Check that a template contains every variable its prompt id requires.

        Raises:
            PromptTemplateError: Listing the missing variables
        """
        present = set(PLACEHOLDER_PATTERN.findall(template))
        missing = [name for name in REQUIRED_VARIABLES.get(prompt_id, ()) if name not in present]
        if missing:
            location = f" in {template_path}" if template_path else ""
            raise PromptTemplateError(
                f"Template validation failed{location}:\n"
                + "\n".join(f"  - Missing required variable: {{{{{name}}}}}" for name in missing)
            )

    @staticmethod
    def format_template(template: str, **variables) -> str:
        """
        Replace {{name}} placeholders.

        Raises:
            PromptTemplateError: If a placeholder has no value
        """
        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in variables:
                raise PromptTemplateError(f"No value supplied for template variable '{name}'")
            value = variables[name]
            return "" if value is None else str(value)

        return PLACEHOLDER_PATTERN.sub(substitute, template)

    def render(self, prompt_id: str, **variables) -> str:
        """Load and format a template in one step."""
        return self.format_template(self.load_template(prompt_id), **variables)

    def clear_cache(self):
        self._cache.clear()
