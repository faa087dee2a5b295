from __future__ import annotations

import typer

from polaris_release.cli.context import build_context
from polaris_release.core.errors import ErrorCode
from polaris_release.output.console import Style
from polaris_release.services.release.preflight import CheckStatus, run_checks

_STYLES = {
    CheckStatus.OK: Style.SUCCESS,
    CheckStatus.WARNING: Style.WARNING,
    CheckStatus.ERROR: Style.ERROR,
}


def check() -> None:
    """Check that this machine can cut a release."""
    ctx = build_context()
    results = run_checks(root=ctx.root, config=ctx.config)

    ctx.console.print(f"root: {ctx.root}", Style.DIM)
    ctx.console.header("Release environment")
    for r in results:
        ctx.console.print(f"{r.name}: {r.message}", _STYLES[r.status])
        if r.hint and r.status != CheckStatus.OK:
            ctx.console.print(f"hint: {r.hint}", Style.DIM)

    if any(r.is_error for r in results):
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
