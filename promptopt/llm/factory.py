"""Factory for instantiating optimizer backends based on settings."""

from __future__ import annotations
from typing import Dict, Optional, Type

from ..config import get_config
from ..settings import GEMINI, OPENAI, normalize_provider
from .base import BackendConfig, OptimizerBackend
from .providers import GeminiBackend, OpenAICompatibleBackend

# Registry of available backends, keyed by settings provider
BACKENDS: Dict[str, Type[OptimizerBackend]] = {
    GEMINI: GeminiBackend,
    OPENAI: OpenAICompatibleBackend,
}


def default_backend_config() -> BackendConfig:
    cfg = get_config()
    return BackendConfig(
        timeout=cfg.http_timeout,
        gemini_model=cfg.gemini_model,
        env_api_key=cfg.gemini_api_key,
    )


def get_backend(provider: str, config: Optional[BackendConfig] = None) -> OptimizerBackend:
    """
    Instantiate the backend for a settings provider.

    Args:
        provider: "gemini" or "openai" (aliases such as "openai-compatible" accepted).
        config: Optional BackendConfig. If None, built from env vars.

    Raises:
        ValueError: If the provider is not registered.
    """
    name = normalize_provider(provider) or (provider or "").strip().lower()
    if name not in BACKENDS:
        available = ", ".join(BACKENDS.keys())
        raise ValueError(f"Unknown provider '{provider}'. Available: {available}")
    return BACKENDS[name](config or default_backend_config())


def register_backend(name: str, backend_class: type) -> None:
    """Register a custom backend class under a provider name."""
    if not issubclass(backend_class, OptimizerBackend):
        raise TypeError(f"{backend_class} must be a subclass of OptimizerBackend")
    BACKENDS[name.lower()] = backend_class
