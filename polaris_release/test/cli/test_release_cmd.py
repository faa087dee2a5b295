from __future__ import annotations

from pathlib import Path

import pytest
import typer

from polaris_release.cli.context import CLIContext
from polaris_release.core.config import Config
from polaris_release.core.errors import ErrorCode
from polaris_release.core.result import Err, Ok
from polaris_release.git.repository import GitIdentity
from polaris_release.output.console import MockConsole
from polaris_release.platform.detection import Platform
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.model import ReleaseContext
from polaris_release.services.release.pipeline import PipelineReport, StageOutcome


def _ctx(tmp_path: Path) -> CLIContext:
    return CLIContext(root=tmp_path, config=Config(), console=MockConsole())


def _patch(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    *,
    report: PipelineReport | None = None,
    host: Platform = Platform.LINUX,
) -> tuple[CLIContext, dict[str, object]]:
    import polaris_release.cli.commands.release_cmd as release_cmd

    ctx = _ctx(tmp_path)
    seen: dict[str, object] = {}

    def fake_build_release_context(**kwargs: object):
        seen["dry_run"] = kwargs["dry_run"]
        return Ok(
            ReleaseContext(
                root=tmp_path,
                config=ctx.config,
                version=str(kwargs["version"]),
                repo_slug="agersant/polaris",
                identity=GitIdentity(name="agersant"),
                dry_run=bool(kwargs["dry_run"]),
            )
        )

    def fake_run_pipeline(*, ctx: ReleaseContext, console: object, selected: frozenset[str]):
        seen["selected"] = selected
        return report or PipelineReport(outcomes=tuple(StageOutcome(n, "ok") for n in sorted(selected)))

    monkeypatch.setattr(release_cmd, "build_context", lambda: ctx)
    monkeypatch.setattr(release_cmd, "build_release_context", fake_build_release_context)
    monkeypatch.setattr(release_cmd, "run_pipeline", fake_run_pipeline)
    monkeypatch.setattr(release_cmd, "detect_platform", lambda: host)
    return ctx, seen


def test_run_selects_every_stage_buildable_here(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    ctx, seen = _patch(monkeypatch, tmp_path)

    release_cmd.run("0.13.0", only=[], platform=[], dry_run=False, yes=True)

    assert seen["selected"] == frozenset({"branch_and_tag", "create_release", "linux"})
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("windows: skipped, requires windows (host: linux)")
    assert seen["dry_run"] is False
    assert ctx.console.find("branch_and_tag: ok")


def test_run_platform_filter(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path)

    release_cmd.run("0.13.0", only=[], platform=["linux"], dry_run=True, yes=False)

    assert seen["selected"] == frozenset({"branch_and_tag", "create_release", "linux"})


def test_run_unknown_platform(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _patch(monkeypatch, tmp_path)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.run("0.13.0", only=[], platform=["macos"], dry_run=True, yes=True)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_run_unknown_stage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    ctx, _ = _patch(monkeypatch, tmp_path)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.run("0.13.0", only=["publish"], platform=[], dry_run=True, yes=True)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.has_error()


def test_confirmation_mismatch_aborts(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path)
    monkeypatch.setattr(release_cmd.typer, "prompt", lambda *_, **__: "0.12.0")

    with pytest.raises(typer.Exit) as exc:
        release_cmd.run("0.13.0", only=[], platform=[], dry_run=False, yes=False)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert "selected" not in seen


def test_confirmation_accepted(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path)
    monkeypatch.setattr(release_cmd.typer, "prompt", lambda *_, **__: "0.13.0\n")

    release_cmd.run("0.13.0", only=[], platform=[], dry_run=False, yes=False)

    assert "selected" in seen


def test_stage_without_branch_needs_no_confirmation(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path)

    def no_prompt(*_: object, **__: object) -> str:
        raise AssertionError("prompted for a stage that does not tag")

    monkeypatch.setattr(release_cmd.typer, "prompt", no_prompt)

    release_cmd.stage("linux", "0.13.0", dry_run=False, yes=False)

    assert seen["selected"] == frozenset({"linux"})


def test_failed_stage_sets_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    report = PipelineReport(
        outcomes=(
            StageOutcome("branch_and_tag", "skipped"),
            StageOutcome("create_release", "skipped"),
            StageOutcome(
                "windows",
                "failed",
                ReleaseError(kind="upload_failed", message="failed to upload"),
            ),
            StageOutcome("linux", "ok"),
        )
    )
    ctx, _ = _patch(monkeypatch, tmp_path, report=report)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.stage("windows", "0.13.0", dry_run=False, yes=True)

    assert exc.value.exit_code == int(ErrorCode.NETWORK_ERROR)
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("windows: failed")


def test_invalid_version_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _patch(monkeypatch, tmp_path)
    monkeypatch.setattr(
        release_cmd,
        "build_release_context",
        lambda **_: Err(ReleaseError(kind="invalid_version", message="invalid version", hint="Example: 0.13.0")),
    )

    with pytest.raises(typer.Exit) as exc:
        release_cmd.run("0..13", only=[], platform=[], dry_run=False, yes=True)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_run_on_windows_skips_linux(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path, host=Platform.WINDOWS)

    release_cmd.run("0.13.0", only=[], platform=[], dry_run=False, yes=True)

    assert seen["selected"] == frozenset({"branch_and_tag", "create_release", "windows"})


def test_explicit_foreign_platform_is_kept(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path)

    release_cmd.run("0.13.0", only=[], platform=["windows"], dry_run=False, yes=True)

    assert seen["selected"] == frozenset({"branch_and_tag", "create_release", "windows"})


def test_explicit_foreign_stage_is_kept(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.release_cmd as release_cmd

    _, seen = _patch(monkeypatch, tmp_path)

    release_cmd.run("0.13.0", only=["create_release", "windows"], platform=[], dry_run=False, yes=True)

    assert seen["selected"] == frozenset({"create_release", "windows"})
