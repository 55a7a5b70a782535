"""
Backend settings.

The active configuration is one of two variants, discriminated on
``provider``: the managed Gemini backend or any OpenAI-compatible
chat-completions endpoint. Both share ``temperature``.
"""

from __future__ import annotations

import logging
import threading
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from . import SETTINGS_KEY
from .storage import KeyValueStorage

logger = logging.getLogger("promptopt.settings")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o"

GEMINI = "gemini"
OPENAI = "openai"
PROVIDER_ALIASES = {
    "gemini": GEMINI,
    "openai": OPENAI,
    "openai-compatible": OPENAI,
    "openai_compatible": OPENAI,
}


class SettingsBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=1.0)

    def editable_fields(self) -> List[str]:
        return [name for name in type(self).model_fields if name not in ("provider", "temperature")]

    def missing_required(self) -> List[str]:
        return []

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_public_dict(self) -> dict:
        """Storage form with the API key masked."""
        data = self.to_storage()
        key = data.get("apiKey")
        if key:
            data["apiKey"] = f"...{key[-4:]}" if len(key) > 8 else "***"
        return data


class GeminiSettings(SettingsBase):
    provider: Literal["gemini"] = GEMINI
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class OpenAICompatibleSettings(SettingsBase):
    provider: Literal["openai"] = OPENAI
    api_key: str = Field(default="", alias="apiKey")
    base_url: str = Field(default=DEFAULT_OPENAI_BASE_URL, alias="baseUrl")
    model: str = DEFAULT_OPENAI_MODEL

    def missing_required(self) -> List[str]:
        return [name for name in ("api_key", "base_url", "model") if not (getattr(self, name) or "").strip()]


AppSettings = Annotated[Union[GeminiSettings, OpenAICompatibleSettings], Field(discriminator="provider")]
_settings_adapter: TypeAdapter = TypeAdapter(AppSettings)

VARIANTS = {GEMINI: GeminiSettings, OPENAI: OpenAICompatibleSettings}

FIELD_ALIASES = {
    "apikey": "api_key",
    "api-key": "api_key",
    "baseurl": "base_url",
    "base-url": "base_url",
}


def normalize_provider(value: Any) -> Optional[str]:
    return PROVIDER_ALIASES.get(str(value or "").strip().lower())


def default_settings() -> GeminiSettings:
    return GeminiSettings()


def parse_settings(data: Any) -> Optional[Union[GeminiSettings, OpenAICompatibleSettings]]:
    """Validate a stored settings record; None when it is not usable."""
    if not isinstance(data, dict):
        return None
    provider = normalize_provider(data.get("provider"))
    if provider is None:
        return None
    try:
        return _settings_adapter.validate_python({**data, "provider": provider})
    except PydanticValidationError as e:
        logger.warning("Stored settings are invalid, using defaults: %s", e.error_count())
        return None


def clamp_temperature(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


class SettingsStore:
    """Owns the current settings and persists every change."""

    def __init__(self, storage: KeyValueStorage, key: str = SETTINGS_KEY):
        self.storage = storage
        self.key = key
        self._lock = threading.RLock()
        self.current: Union[GeminiSettings, OpenAICompatibleSettings] = default_settings()
        self.load()

    def load(self) -> None:
        """Rehydrate from storage, falling back to default Gemini settings."""
        with self._lock:
            self.current = parse_settings(self.storage.get(self.key)) or default_settings()

    def _save(self) -> None:
        self.storage.set(self.key, self.current.to_storage())

    @property
    def provider(self) -> str:
        return self.current.provider

    def replace(self, settings: Union[GeminiSettings, OpenAICompatibleSettings]) -> None:
        with self._lock:
            self.current = settings
            self._save()

    def set_variant(self, variant: str) -> Union[GeminiSettings, OpenAICompatibleSettings]:
        """Switch provider. Fields reset to the variant's defaults except temperature."""
        provider = normalize_provider(variant)
        if provider is None:
            raise ValueError(f"Unknown provider '{variant}'. Available: {', '.join(VARIANTS)}")
        with self._lock:
            self.current = VARIANTS[provider](temperature=self.current.temperature)
            self._save()
            return self.current

    def update_field(self, name: str, value: Any) -> bool:
        """Set one field of the active variant.

        Returns False (and changes nothing) when the field does not belong to
        the active variant.
        """
        field = FIELD_ALIASES.get(name.strip().lower(), name.strip())
        if field == "temperature":
            self.set_temperature(float(value))
            return True
        with self._lock:
            if field not in self.current.editable_fields():
                return False
            setattr(self.current, field, value)
            self._save()
            return True

    def set_temperature(self, value: float) -> float:
        with self._lock:
            self.current.temperature = clamp_temperature(value)
            self._save()
            return self.current.temperature
