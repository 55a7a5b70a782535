"""Optimizer backends: the managed Gemini SDK and OpenAI-compatible HTTP."""

from .base import BackendConfig, OptimizerBackend, build_user_message
from .factory import BACKENDS, get_backend, register_backend
from .providers import GeminiBackend, OpenAICompatibleBackend

__all__ = [
    "BackendConfig",
    "OptimizerBackend",
    "build_user_message",
    "BACKENDS",
    "get_backend",
    "register_backend",
    "GeminiBackend",
    "OpenAICompatibleBackend",
]
