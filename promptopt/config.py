"""Runtime configuration read from the environment.

A ``.env`` file in the working directory is loaded first (API keys usually
live there).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_GEMINI_MODEL = "gemini-2.5-pro"
DEFAULT_HTTP_TIMEOUT = 60.0
DEFAULT_HOME = Path.home() / ".promptopt"


@dataclass(frozen=True)
class AppConfig:
    home: Path
    gemini_api_key: Optional[str]
    gemini_model: str
    http_timeout: float
    log_level: str


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_env_api_key() -> Optional[str]:
    """Ambient Gemini key: GEMINI_API_KEY, then API_KEY."""
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None


def get_config() -> AppConfig:
    """Snapshot of the current environment."""
    home = os.environ.get("PROMPTOPT_HOME")
    return AppConfig(
        home=Path(home).expanduser() if home else DEFAULT_HOME,
        gemini_api_key=get_env_api_key(),
        gemini_model=os.environ.get("PROMPTOPT_GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        http_timeout=_float_env("PROMPTOPT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        log_level=(os.environ.get("PROMPTOPT_LOG_LEVEL") or "WARNING").upper(),
    )
