"""
Optimizer session.

Owns the editing state (active prompt, variable map, target model) together
with references to the history and settings stores, and commits successful
optimizations.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from .dispatcher import Dispatcher, validate_prompt
from .errors import StaleResultError, ValidationError
from .history import HistoryStore
from .models import HistoryEntry, TargetModel
from .settings import SettingsStore
from .storage import JsonFileStorage, KeyValueStorage
from .templates import get_template, substitute, sync_variables

logger = logging.getLogger("promptopt.session")


class OptimizerSession:
    def __init__(
        self,
        history: HistoryStore,
        settings: SettingsStore,
        dispatcher: Optional[Dispatcher] = None,
        target: TargetModel = TargetModel.GEMINI,
    ):
        self.history = history
        self.settings = settings
        self.dispatcher = dispatcher or Dispatcher()
        self.target = target
        self.prompt = ""
        self.variables: Dict[str, str] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    @classmethod
    def from_storage(
        cls,
        storage: Optional[KeyValueStorage] = None,
        root: Optional[Path] = None,
        dispatcher: Optional[Dispatcher] = None,
    ) -> "OptimizerSession":
        """Rehydrate history and settings from local storage."""
        storage = storage or JsonFileStorage(root)
        return cls(HistoryStore(storage), SettingsStore(storage), dispatcher=dispatcher)

    # -- editing state -------------------------------------------------------

    def set_prompt(self, text: str) -> Dict[str, str]:
        self.prompt = text or ""
        self.variables = sync_variables(self.prompt, self.variables)
        return self.variables

    def set_variable(self, name: str, value: str) -> bool:
        """Set a placeholder value. Names not in the prompt are ignored."""
        if name not in self.variables:
            return False
        self.variables[name] = value or ""
        return True

    def _resolve_target(self, target: Union[TargetModel, str, None]) -> TargetModel:
        if target is None:
            return self.target
        model = TargetModel.parse(target)
        if model is None:
            raise ValidationError(f"Unknown target model '{target}'")
        return model

    def set_target(self, target: Union[TargetModel, str]) -> TargetModel:
        self.target = self._resolve_target(target)
        return self.target

    def resolved_prompt(self) -> str:
        return substitute(self.prompt, self.variables)

    def load_template(self, name: str) -> Dict[str, str]:
        template = get_template(name)
        if template is None:
            raise KeyError(f"Template not found: {name}")
        return self.set_prompt(template.prompt)

    def reuse(self, entry_id: int) -> str:
        """Make a past optimized prompt the active prompt, with its target model."""
        entry = self.history.get_by_id(entry_id)
        if entry is None:
            raise KeyError(f"History entry not found: {entry_id}")
        self.prompt = entry.optimized_prompt
        self.variables = sync_variables(self.prompt)
        self.target = entry.target_model
        return self.prompt

    # -- state replacement ---------------------------------------------------

    def reset_state(
        self,
        history: Optional[HistoryStore] = None,
        settings: Optional[SettingsStore] = None,
    ) -> None:
        """Swap in (or reload) the stores. Requests already in flight will not commit."""
        with self._lock:
            self._epoch += 1
            if history is not None:
                self.history = history
            else:
                self.history.load()
            if settings is not None:
                self.settings = settings
            else:
                self.settings.load()

    # -- optimize ------------------------------------------------------------

    def optimize(self, target: Union[TargetModel, str, None] = None) -> HistoryEntry:
        """Optimize the resolved prompt and commit the result.

        On success the optimized text becomes the active prompt and the
        variable map is rebuilt for it, with every value empty. On any
        failure the prompt, variables and history are left untouched and the
        ``OptimizationError`` propagates.
        """
        model = self._resolve_target(target)
        entry = self._dispatch(self.resolved_prompt(), model)
        with self._lock:
            self.prompt = entry.optimized_prompt
            self.variables = sync_variables(self.prompt)
            self.target = model
        return entry

    def optimize_prompt(
        self,
        prompt: str,
        variables: Optional[Dict[str, str]] = None,
        target: Union[TargetModel, str, None] = None,
    ) -> HistoryEntry:
        """Optimize a prompt given by the caller; only history is updated."""
        model = self._resolve_target(target)
        values = sync_variables(prompt or "", variables)
        return self._dispatch(substitute(prompt or "", values), model)

    def preview(self, target: Union[TargetModel, str, None] = None) -> str:
        """Optimize the resolved prompt without committing anything."""
        model = self._resolve_target(target)
        with self._lock:
            settings = self.settings.current.model_copy()
        return self.dispatcher.optimize(self.resolved_prompt(), model, settings)

    def _dispatch(self, resolved: str, model: TargetModel) -> HistoryEntry:
        validate_prompt(resolved)

        with self._lock:
            epoch = self._epoch
            settings = self.settings.current.model_copy()
            history = self.history

        text = self.dispatcher.optimize(resolved, model, settings)

        with self._lock:
            if epoch != self._epoch or history is not self.history:
                logger.info("Discarding optimization result: session state was replaced")
                raise StaleResultError("Session state changed while the request was running; result discarded.")
            return history.record(resolved, text, model)
