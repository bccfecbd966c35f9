"""Shared CLI helpers for configuration, database access, and output formatting."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import typer

from agentdb.core.errors import AgentDBError
from agentdb.database import AgentDB
from agentdb.utils.config import get_config, get_data_dir

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    """Send library logs to stderr; DEBUG when verbose, WARNING otherwise."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    else:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)


def resolve_path(path: Path | None) -> Path:
    """Database directory from ``--path`` or the environment default."""
    return path if path is not None else get_data_dir()


def open_db(path: Path | None) -> AgentDB:
    """Open the database, turning store errors into a clean CLI exit."""
    try:
        return AgentDB.open(resolve_path(path), get_config())
    except AgentDBError as e:
        fail(str(e))


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def output_json(data: dict[str, Any] | list[Any]) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))
