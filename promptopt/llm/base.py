from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Union

from pydantic import BaseModel

from ..config import DEFAULT_GEMINI_MODEL, DEFAULT_HTTP_TIMEOUT
from ..settings import GeminiSettings, OpenAICompatibleSettings

USER_MESSAGE_TEMPLATE = 'Here is the original prompt to optimize: "{prompt}"'

Settings = Union[GeminiSettings, OpenAICompatibleSettings]


def build_user_message(prompt: str) -> str:
    """Wrap the resolved prompt in the fixed request phrase."""
    return USER_MESSAGE_TEMPLATE.format(prompt=prompt)


class BackendConfig(BaseModel):
    """Process-level backend options (not user settings)."""
    timeout: float = DEFAULT_HTTP_TIMEOUT
    gemini_model: str = DEFAULT_GEMINI_MODEL
    env_api_key: Optional[str] = None


class OptimizerBackend(ABC):
    """Abstract Base Class for optimizer backends."""

    provider: str = ""

    def __init__(self, config: Optional[BackendConfig] = None):
        self.config = config or BackendConfig()

    @abstractmethod
    def complete(self, prompt: str, instruction: str, settings: Settings) -> str:
        """
        Rewrite a prompt.

        Args:
            prompt: The resolved user prompt.
            instruction: System instruction for the target model family.
            settings: Active settings for this backend's provider.

        Returns:
            The optimized prompt text.

        Raises:
            ConfigurationError: Required settings are missing.
            TransportError: The backend answered with an error or was unreachable.
        """
        pass
