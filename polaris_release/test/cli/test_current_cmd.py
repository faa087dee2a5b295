from __future__ import annotations

from pathlib import Path

import pytest
import typer

from polaris_release.cli.context import CLIContext
from polaris_release.core.config import Config
from polaris_release.core.errors import ErrorCode
from polaris_release.output.console import MockConsole


def _ctx(tmp_path: Path) -> CLIContext:
    return CLIContext(root=tmp_path, config=Config(), console=MockConsole())


def test_current_prints_manifest_version(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    import polaris_release.cli.commands.current as current_cmd

    (tmp_path / "Cargo.toml").write_text('[package]\nversion = "0.12.3"\n', encoding="utf-8")
    ctx = _ctx(tmp_path)
    monkeypatch.setattr(current_cmd, "build_context", lambda: ctx)

    current_cmd.current()

    assert capsys.readouterr().out == "0.12.3\n"
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.messages == []


def test_current_notes_non_semver(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    import polaris_release.cli.commands.current as current_cmd

    (tmp_path / "Cargo.toml").write_text('version = "nightly"\n', encoding="utf-8")
    ctx = _ctx(tmp_path)
    monkeypatch.setattr(current_cmd, "build_context", lambda: ctx)

    current_cmd.current()

    assert capsys.readouterr().out == "nightly\n"
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("not a semantic version")


def test_current_missing_manifest(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import polaris_release.cli.commands.current as current_cmd

    monkeypatch.setattr(current_cmd, "build_context", lambda: _ctx(tmp_path))

    with pytest.raises(typer.Exit) as exc:
        current_cmd.current()

    assert exc.value.exit_code == int(ErrorCode.IO_ERROR)
