from __future__ import annotations
import json
import logging
from typing import Any, Dict, List

import typer
from rich.console import Console
from rich.logging import RichHandler

from promptopt.config import get_config
from promptopt.session import OptimizerSession

console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else get_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def get_session() -> OptimizerSession:
    """Session backed by the local storage directory (PROMPTOPT_HOME)."""
    return OptimizerSession.from_storage()


def echo_json(data: Any) -> None:
    # Plain echo so Rich never wraps or styles machine-readable output
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def parse_assignments(pairs: List[str]) -> Dict[str, str]:
    """Turn NAME=VALUE strings into a dict."""
    values: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise typer.BadParameter(f"Expected NAME=VALUE, got '{pair}'")
        name, value = pair.split("=", 1)
        values[name.strip()] = value
    return values


def preview(text: str, width: int = 60) -> str:
    flat = text.replace("\n", " ")
    return flat if len(flat) <= width else flat[: width - 3] + "..."
