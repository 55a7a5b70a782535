"""Core package initializer.

Exposes a best-effort __version__ attribute so both the API and CLI can
surface the current package version without failing in editable/dev mode.
Falls back to a dev tag if distribution metadata is not present.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
	__version__ = version("promptopt")  # Distribution name as defined in pyproject
except PackageNotFoundError:
	__version__ = "0.0.0-dev"

# Storage keys shared by the CLI, API and session
HISTORY_KEY = "promptHistory"
SETTINGS_KEY = "llmAppSettings"


def get_version() -> str:
	"""Return the resolved package version (lightweight helper)."""
	return __version__


def get_build_info() -> dict:
	"""Return build info: package version and storage keys."""
	return {
		"version": get_version(),
		"history_key": HISTORY_KEY,
		"settings_key": SETTINGS_KEY,
	}


__all__ = ["__version__", "get_version", "get_build_info", "HISTORY_KEY", "SETTINGS_KEY"]
