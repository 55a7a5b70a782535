"""Dispatch an optimize request to the backend selected by the settings."""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Union

from .errors import OptimizationError, UnknownError, ValidationError
from .instructions import build_instruction
from .llm.base import BackendConfig, OptimizerBackend, Settings
from .llm.factory import get_backend
from .models import TargetModel

logger = logging.getLogger("promptopt.dispatcher")

EMPTY_PROMPT_MESSAGE = "Please enter a prompt."


def validate_prompt(prompt: Optional[str]) -> str:
    if not prompt or not prompt.strip():
        raise ValidationError(EMPTY_PROMPT_MESSAGE)
    return prompt


class Dispatcher:
    """Holds one backend instance per provider; instances are created lazily."""

    def __init__(
        self,
        backends: Optional[Dict[str, OptimizerBackend]] = None,
        config: Optional[BackendConfig] = None,
    ):
        self.backends: Dict[str, OptimizerBackend] = dict(backends or {})
        self.config = config

    def backend_for(self, provider: str) -> OptimizerBackend:
        backend = self.backends.get(provider)
        if backend is None:
            backend = get_backend(provider, self.config)
            self.backends[provider] = backend
        return backend

    def optimize(
        self,
        prompt: str,
        target: Union[TargetModel, str, None],
        settings: Settings,
    ) -> str:
        """Return the optimized text or raise an ``OptimizationError``.

        Nothing here touches history or settings; committing the result is up
        to the caller.
        """
        validate_prompt(prompt)
        instruction = build_instruction(target)
        backend = self.backend_for(settings.provider)

        t0 = time.time()
        try:
            text = backend.complete(prompt, instruction, settings)
        except OptimizationError as e:
            logger.warning("Optimization failed (%s, target=%s): %s", settings.provider, target, e.kind)
            raise
        except Exception as e:
            logger.exception("Unexpected error calling %s backend", settings.provider)
            raise UnknownError() from e

        elapsed_ms = int((time.time() - t0) * 1000)
        logger.info(
            "Optimized prompt via %s for %s in %d ms (%d chars)",
            settings.provider,
            target,
            elapsed_ms,
            len(text),
        )
        return text


def optimize(
    prompt: str,
    target: Union[TargetModel, str, None],
    settings: Settings,
    dispatcher: Optional[Dispatcher] = None,
) -> str:
    """Convenience wrapper around ``Dispatcher.optimize``."""
    return (dispatcher or Dispatcher()).optimize(prompt, target, settings)
