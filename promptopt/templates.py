"""Prompt templates with ``{{variable}}`` substitution.

Covers placeholder extraction, the variable map that follows the active
prompt, single-pass substitution, and the template gallery (built-in starters
plus user templates saved as YAML).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml

from .config import get_config

logger = logging.getLogger("promptopt.templates")

PLACEHOLDER_PATTERN = re.compile(r"\{\{([a-zA-Z0-9_]+)\}\}")


def extract_variables(prompt: str) -> List[str]:
    """Extract placeholder names from prompt text.

    Args:
        prompt: Text with ``{{name}}`` placeholders

    Returns:
        Unique names in order of first appearance
    """
    names = PLACEHOLDER_PATTERN.findall(prompt or "")
    return list(dict.fromkeys(names))  # Remove duplicates, preserve order


def substitute(prompt: str, values: Mapping[str, Optional[str]]) -> str:
    """Replace every placeholder that has a key in ``values``.

    Placeholders without a key are left untouched. Substitution is a single
    pass: text coming from a value is never scanned again.
    """
    if not values:
        return prompt

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in values:
            return match.group(0)
        return values[name] or ""

    return PLACEHOLDER_PATTERN.sub(_replace, prompt)


def sync_variables(prompt: str, current: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Rebuild the variable map for ``prompt``.

    Names still present keep their value, vanished names are dropped and
    new names start out empty.
    """
    current = current or {}
    return {name: current.get(name) or "" for name in extract_variables(prompt)}


def missing_variables(prompt: str, values: Mapping[str, Optional[str]]) -> List[str]:
    """Names in ``prompt`` whose value is absent or empty."""
    return [name for name in extract_variables(prompt) if not values.get(name)]


@dataclass(frozen=True)
class PromptTemplate:
    """A starter prompt from the built-in gallery."""

    category: str
    name: str
    prompt: str

    @property
    def variables(self) -> List[str]:
        return extract_variables(self.prompt)

    def render(self, values: Mapping[str, Optional[str]]) -> str:
        return substitute(self.prompt, values)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "name": self.name,
            "prompt": self.prompt,
            "variables": self.variables,
        }


PROMPT_TEMPLATES: List[PromptTemplate] = [
    PromptTemplate(
        category="Content Creation",
        name="Summarize Content",
        prompt="Summarize the key points from the following text in {{language}}:\n\n{{text}}",
    ),
    PromptTemplate(
        category="Content Creation",
        name="Blog Post Idea Generator",
        prompt="Generate 5 blog post titles about {{topic}} for an audience of {{audience}}.",
    ),
    PromptTemplate(
        category="Code Generation",
        name="Python Function",
        prompt=(
            "Write a Python function that {{task}}. The function should accept the following "
            "arguments: {{arguments}}. It should return {{return_value}}."
        ),
    ),
    PromptTemplate(
        category="Code Generation",
        name="SQL Query",
        prompt=(
            "Write a SQL query to {{objective}} from a table named `{{table_name}}`. "
            "The table has the following columns: {{columns}}."
        ),
    ),
    PromptTemplate(
        category="Marketing",
        name="Ad Copy",
        prompt=(
            "Generate 3 variations of ad copy for {{product_name}}. The target audience is "
            "{{audience}} and the key benefit is {{benefit}}. The tone should be {{tone}}."
        ),
    ),
]


class TemplateRegistry:
    """Built-in gallery plus user templates stored as YAML files."""

    def __init__(self, user_path: Optional[Path] = None):
        self.user_path = user_path or get_config().home / "templates"
        self._templates: Dict[str, PromptTemplate] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        """Lazy load templates on first access."""
        if self._loaded:
            return

        for template in PROMPT_TEMPLATES:
            self._templates[template.name.lower()] = template

        if self.user_path.exists():
            for file_path in sorted(self.user_path.glob("*.y*ml")):
                try:
                    self._load_template_file(file_path)
                except (OSError, yaml.YAMLError, KeyError, TypeError) as e:
                    logger.warning("Failed to load template %s: %s", file_path, e)

        self._loaded = True

    def _load_template_file(self, path: Path) -> None:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            return
        template = PromptTemplate(
            category=str(data.get("category") or "Custom"),
            name=str(data["name"]),
            prompt=str(data["prompt"]),
        )
        self._templates[template.name.lower()] = template

    def list_templates(self, category: Optional[str] = None) -> List[PromptTemplate]:
        self._ensure_loaded()
        templates = list(self._templates.values())
        if category:
            wanted = category.strip().lower()
            templates = [t for t in templates if t.category.lower() == wanted]
        return templates

    def get_template(self, name: str) -> Optional[PromptTemplate]:
        """Case-insensitive lookup by name."""
        self._ensure_loaded()
        return self._templates.get((name or "").strip().lower())

    def save_template(self, template: PromptTemplate) -> Path:
        """Write a user template to disk."""
        self._ensure_loaded()
        self.user_path.mkdir(parents=True, exist_ok=True)
        slug = re.sub(r"[^a-z0-9]+", "-", template.name.lower()).strip("-") or "template"
        file_path = self.user_path / f"{slug}.yaml"
        data = {"category": template.category, "name": template.name, "prompt": template.prompt}
        file_path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
        self._templates[template.name.lower()] = template
        return file_path


# Global registry instance
_registry: Optional[TemplateRegistry] = None


def get_registry() -> TemplateRegistry:
    global _registry
    if _registry is None:
        _registry = TemplateRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (mainly for testing)."""
    global _registry
    _registry = None


def list_templates(category: Optional[str] = None) -> List[PromptTemplate]:
    return get_registry().list_templates(category)


def get_template(name: str) -> Optional[PromptTemplate]:
    return get_registry().get_template(name)
