"""Data model shared by the optimizer, history and surfaces."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TargetModel(str, Enum):
    """Model family the optimized prompt is tailored for."""

    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    CHATGPT = "chatgpt"
    LLAMA = "llama"

    @classmethod
    def parse(cls, value: Union[str, "TargetModel", None]) -> Optional["TargetModel"]:
        """Return the member for ``value`` or None when it is not a known family."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


TARGET_MODEL_OPTIONS: Dict[TargetModel, str] = {
    TargetModel.GEMINI: "Gemini",
    TargetModel.ANTHROPIC: "Anthropic (Claude)",
    TargetModel.CHATGPT: "OpenAI (ChatGPT)",
    TargetModel.LLAMA: "Meta (Llama)",
}


class HistoryEntry(BaseModel):
    """One optimization result.

    Serialized with the camelCase keys of the local storage format;
    snake_case names are accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    original_prompt: str = Field(alias="originalPrompt")
    optimized_prompt: str = Field(alias="optimizedPrompt")
    target_model: TargetModel = Field(alias="targetLlm")
    is_favorite: bool = Field(default=False, alias="isFavorite")

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on either prompt text."""
        needle = term.lower()
        return needle in self.original_prompt.lower() or needle in self.optimized_prompt.lower()

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
