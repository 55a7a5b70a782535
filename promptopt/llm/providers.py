from __future__ import annotations
import logging
from typing import Any, Callable, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..config import get_env_api_key
from ..errors import ConfigurationError, TransportError
from ..settings import GEMINI, OPENAI, GeminiSettings, OpenAICompatibleSettings
from .base import BackendConfig, OptimizerBackend, build_user_message

logger = logging.getLogger("promptopt.llm")


class OpenAICompatibleBackend(OptimizerBackend):
    """
    Any endpoint speaking the OpenAI chat-completions protocol.
    Requires api_key, base_url and model in the settings.
    """

    provider = OPENAI

    def __init__(self, config: Optional[BackendConfig] = None, client: Optional[httpx.Client] = None):
        super().__init__(config)
        self.client = client

    def complete(self, prompt: str, instruction: str, settings: OpenAICompatibleSettings) -> str:
        if not isinstance(settings, OpenAICompatibleSettings) or settings.missing_required():
            raise ConfigurationError("OpenAI settings (API Key, Base URL, Model) are incomplete.")

        url = f"{settings.base_url.strip().rstrip('/')}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.api_key}",
        }
        payload = {
            "model": settings.model,
            "messages": [
                {"role": "system", "content": instruction},
                {"role": "user", "content": build_user_message(prompt)},
            ],
            "temperature": settings.temperature,
        }

        try:
            if self.client is not None:
                resp = self.client.post(url, json=payload, headers=headers, timeout=self.config.timeout)
            else:
                resp = httpx.post(url, json=payload, headers=headers, timeout=self.config.timeout)
        except httpx.HTTPError as e:
            raise TransportError() from e

        if not resp.is_success:
            body = resp.text
            raise TransportError(
                f"API error: {resp.status_code} {resp.reason_phrase} - {body}",
                status_code=resp.status_code,
                body=body,
            )

        return _extract_content(resp.json())


def _extract_content(data: Any) -> str:
    """choices[0].message.content, or "" when any level is missing."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        # Content parts: keep the text ones
        parts = [p.get("text") for p in content if isinstance(p, dict)]
        return "".join(p for p in parts if isinstance(p, str)).strip()
    return ""


class GeminiBackend(OptimizerBackend):
    """
    Managed call through the google-genai SDK.
    Uses the key from the settings, else GEMINI_API_KEY / API_KEY.
    """

    provider = GEMINI

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        super().__init__(config)
        self.client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))

    def resolve_api_key(self, settings: GeminiSettings) -> Optional[str]:
        return settings.api_key or self.config.env_api_key or get_env_api_key()

    def complete(self, prompt: str, instruction: str, settings: GeminiSettings) -> str:
        api_key = self.resolve_api_key(settings) if isinstance(settings, GeminiSettings) else None
        if not api_key:
            raise ConfigurationError(
                "Gemini API key not found. Please provide one in the settings or ensure "
                "it's configured in the app's environment."
            )

        client = self.client_factory(api_key)
        try:
            response = client.models.generate_content(
                model=self.config.gemini_model,
                contents=build_user_message(prompt),
                config=genai_types.GenerateContentConfig(
                    system_instruction=instruction,
                    temperature=settings.temperature,
                ),
            )
        except genai_errors.APIError as e:
            raise TransportError(status_code=getattr(e, "code", None)) from e
        except httpx.HTTPError as e:
            raise TransportError() from e

        return (response.text or "").strip()
