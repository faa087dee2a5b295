"""Platform artifacts: build an installer/archive and attach it to the release."""

from __future__ import annotations

from pathlib import Path

from polaris_release.core.config import TargetConfig
from polaris_release.core.result import Err, Ok, Result
from polaris_release.output.console import ConsoleProtocol, Style
from polaris_release.platform.detection import Platform, detect_platform
from polaris_release.platform.process import run_silent
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.github import upload_release_asset
from polaris_release.services.release.handoff import read_upload_url
from polaris_release.services.release.model import ReleaseContext, UploadedAsset
from polaris_release.services.release.timeouts import BUILD_TIMEOUT_SECONDS


def can_build_on_host(target: TargetConfig, *, host: Platform | None = None) -> bool:
    current = host if host is not None else detect_platform()
    required = Platform.from_name(target.host)
    return required != Platform.UNKNOWN and required == current


def build_env(*, ctx: ReleaseContext, target: TargetConfig) -> dict[str, str]:
    """Environment handed to packaging scripts."""
    return {
        "POLARIS_VERSION": ctx.version,
        "POLARIS_OUTPUT": str(ctx.root / target.output),
        "POLARIS_RELEASE_TARGET": target.id,
    }


def build_target(
    *,
    ctx: ReleaseContext,
    target: TargetConfig,
    console: ConsoleProtocol,
) -> Result[Path, ReleaseError]:
    output = ctx.root / target.output
    console.print(f"[{target.id}] {' '.join(target.command)}", Style.DIM)
    if ctx.dry_run:
        return Ok(output)

    if not can_build_on_host(target):
        return Err(
            ReleaseError(
                kind="build_failed",
                message=f"{target.id} must be built on {target.host} (host: {detect_platform()})",
                hint=f"Run `polaris-release stage {target.id} {ctx.version}` on a {target.host} machine.",
            )
        )

    # A stale artifact from a previous run must not be uploaded by mistake.
    output.unlink(missing_ok=True)

    result = run_silent(
        list(target.command),
        cwd=ctx.root,
        env=build_env(ctx=ctx, target=target),
        timeout=BUILD_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        e = result.error
        return Err(
            ReleaseError(
                kind="build_failed",
                message=f"{target.id} packaging failed (exit {e.returncode})",
                hint=e.stderr.strip() or None,
            )
        )

    if not output.is_file():
        return Err(
            ReleaseError(
                kind="build_failed",
                message=f"{target.id} output not found: {output}",
                hint="The packaging command must write the file named by POLARIS_OUTPUT.",
            )
        )
    return Ok(output)


def publish_target(
    *,
    ctx: ReleaseContext,
    target: TargetConfig,
    console: ConsoleProtocol,
) -> Result[UploadedAsset, ReleaseError]:
    """Build ``target`` and upload it to the draft release."""
    built = build_target(ctx=ctx, target=target, console=console)
    if isinstance(built, Err):
        return built

    if ctx.dry_run:
        upload_url = "(upload url from create_release)"
    else:
        handoff = read_upload_url(state_dir=ctx.state_dir)
        if isinstance(handoff, Err):
            return handoff
        upload_url = handoff.value

    uploaded = upload_release_asset(
        root=ctx.root,
        upload_url=upload_url,
        path=built.value,
        name=ctx.asset_name(target),
        content_type=target.content_type,
        console=console,
        dry_run=ctx.dry_run,
    )
    if isinstance(uploaded, Err):
        return uploaded

    if not ctx.dry_run:
        console.success(f"[{target.id}] uploaded {uploaded.value.name}")
    return uploaded
