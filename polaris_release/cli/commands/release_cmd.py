from __future__ import annotations

from typing import NoReturn

import typer

from polaris_release.cli.commands._helpers import exit_on_error
from polaris_release.cli.context import CLIContext, build_context
from polaris_release.core.errors import ErrorCode
from polaris_release.output.console import Style
from polaris_release.output.errors import release_error_exit_code
from polaris_release.platform.detection import detect_platform
from polaris_release.services.release.model import ReleaseContext
from polaris_release.services.release.pipeline import (
    BRANCH_STAGE,
    PipelineReport,
    drop_foreign_targets,
    plan_stages,
    release_stages,
    run_pipeline,
)
from polaris_release.services.release.service import build_release_context

_STATUS_STYLE = {
    "ok": Style.SUCCESS,
    "failed": Style.ERROR,
    "blocked": Style.WARNING,
    "skipped": Style.DIM,
}


def _exit(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def _confirm_version(version: str) -> None:
    typed = typer.prompt("Type the version to confirm (tags are force-pushed)", default="")
    if typed.strip() != version:
        _exit("confirmation mismatch", code=ErrorCode.USER_ERROR)


def _select(ctx: CLIContext, *, only: list[str], platforms: list[str]) -> frozenset[str]:
    target_ids = [t.id for t in ctx.config.targets]
    unknown = sorted(p for p in set(platforms) if ctx.config.target(p) is None)
    if unknown:
        _exit(
            f"unknown platform(s): {', '.join(unknown)} (available: {', '.join(target_ids)})",
            code=ErrorCode.USER_ERROR,
        )

    requested: list[str] = list(only)
    if platforms:
        base = requested or [s.name for s in release_stages(ctx.config)]
        requested = [n for n in base if n not in target_ids or n in platforms]

    selected = exit_on_error(plan_stages(ctx.config, only=requested), ctx)
    if platforms or any(ctx.config.target(n) is not None for n in only):
        return selected
    return drop_foreign_targets(
        ctx.config, selected, host=detect_platform(), console=ctx.console
    )


def _print_plan(ctx: CLIContext, rctx: ReleaseContext, selected: frozenset[str]) -> None:
    console = ctx.console
    console.print(f"root: {rctx.root}", Style.DIM)
    console.print(f"repo: {rctx.repo_slug}", Style.DIM)
    console.print(f"release: {rctx.release_name} (tag {rctx.tag})", Style.DIM)
    console.print(f"actor: {rctx.identity.name}", Style.DIM)
    stages = [s.name for s in release_stages(ctx.config) if s.name in selected]
    console.print(f"stages: {', '.join(stages)}", Style.DIM)
    if rctx.dry_run:
        console.info("dry-run: no command will be executed")


def _print_summary(ctx: CLIContext, report: PipelineReport) -> None:
    ctx.console.header("Summary")
    for outcome in report.outcomes:
        ctx.console.print(f"{outcome.name}: {outcome.status}", _STATUS_STYLE[outcome.status])


def _finish(ctx: CLIContext, report: PipelineReport) -> None:
    _print_summary(ctx, report)
    if report.ok:
        return
    failed = report.failed
    if failed and failed[0].error is not None:
        raise typer.Exit(code=release_error_exit_code(failed[0].error.kind))
    raise typer.Exit(code=int(ErrorCode.RELEASE_ERROR))


def _execute(
    *,
    ctx: CLIContext,
    version: str,
    selected: frozenset[str],
    dry_run: bool,
    yes: bool,
) -> None:
    rctx = exit_on_error(
        build_release_context(
            root=ctx.root,
            config=ctx.config,
            version=version,
            console=ctx.console,
            dry_run=dry_run,
        ),
        ctx,
    )
    _print_plan(ctx, rctx, selected)

    if BRANCH_STAGE in selected and not dry_run and not yes:
        _confirm_version(rctx.version)

    report = run_pipeline(ctx=rctx, console=ctx.console, selected=selected)
    _finish(ctx, report)


def run(
    version: str = typer.Argument(..., help="User-facing version number (eg: 0.13.0)"),
    only: list[str] = typer.Option(
        [], "--only", help="Run only these stages (repeatable)."
    ),
    platform: list[str] = typer.Option(
        [], "--platform", help="Build only these platform targets (repeatable)."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the plan without side effects."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Merge, tag, create the draft release and upload platform artifacts."""
    ctx = build_context()
    selected = _select(ctx, only=only, platforms=platform)
    _execute(ctx=ctx, version=version, selected=selected, dry_run=dry_run, yes=yes)


def stage(
    name: str = typer.Argument(..., help="Stage to run (branch_and_tag, create_release, or a target)."),
    version: str = typer.Argument(..., help="User-facing version number (eg: 0.13.0)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the plan without side effects."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Run a single stage, reading upstream outputs from the handoff file."""
    ctx = build_context()
    selected = exit_on_error(plan_stages(ctx.config, only=[name]), ctx)
    _execute(ctx=ctx, version=version, selected=selected, dry_run=dry_run, yes=yes)
