from __future__ import annotations

import typer

from polaris_release.cli.commands._helpers import exit_on_error
from polaris_release.cli.context import build_context
from polaris_release.core.version import parse_semver
from polaris_release.output.console import Style
from polaris_release.services.release.manifest import read_manifest_version


def current() -> None:
    """Print the version currently recorded in the manifest."""
    ctx = build_context()
    manifest = ctx.root / ctx.config.project.manifest
    version = exit_on_error(read_manifest_version(path=manifest), ctx)

    typer.echo(version)
    if parse_semver(version) is None:
        ctx.console.print(f"note: {version} is not a semantic version", Style.DIM)
