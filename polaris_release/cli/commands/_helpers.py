"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import typer

from polaris_release.core.result import Err, Result
from polaris_release.output.errors import print_release_error, release_error_exit_code

if TYPE_CHECKING:
    from polaris_release.cli.context import CLIContext
    from polaris_release.services.release.errors import ReleaseError


T = TypeVar("T")


def exit_on_error(result: Result[T, ReleaseError], ctx: CLIContext) -> T:
    """Return the value of an Ok, or print the error and exit with its code."""
    if isinstance(result, Err):
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error.kind))
    return result.value
