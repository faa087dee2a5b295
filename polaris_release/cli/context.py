from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from polaris_release.core.config import CONFIG_FILE_NAME, Config, load_project_config
from polaris_release.core.errors import ErrorCode
from polaris_release.core.result import Err
from polaris_release.output.console import ConsoleProtocol, RichConsole

ROOT_ENV = "POLARIS_RELEASE_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def detect_root(start: Path | None = None) -> Path:
    """Project root: ``$POLARIS_RELEASE_ROOT``, else the nearest ancestor with
    release.toml or .git, else the current directory."""
    env = os.environ.get(ROOT_ENV)
    if env:
        return Path(env).expanduser().resolve()

    cwd = (start or Path.cwd()).resolve()
    for parent in (cwd, *cwd.parents):
        if (parent / CONFIG_FILE_NAME).is_file() or (parent / ".git").exists():
            return parent
    return cwd


def build_context() -> CLIContext:
    root = detect_root()
    config_result = load_project_config(root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(root=root, config=config_result.value, console=RichConsole())
