from __future__ import annotations

from pathlib import Path

import pytest

from polaris_release.core.config import Config
from polaris_release.core.result import Err, Ok
from polaris_release.git import repository as repo_mod
from polaris_release.platform.detection import Platform
from polaris_release.services.release import preflight as preflight_mod
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.preflight import CheckStatus, run_checks


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (tmp_path / ".git").mkdir()
    (tmp_path / "Cargo.toml").write_text('[package]\nversion = "0.12.3"\n', encoding="utf-8")
    monkeypatch.setattr(preflight_mod, "ensure_gh_available", lambda: Ok(None))
    monkeypatch.setattr(preflight_mod, "ensure_gh_auth", lambda **_: Ok(None))
    monkeypatch.setattr(preflight_mod, "detect_platform", lambda: Platform.LINUX)
    return tmp_path


def _git(status: str = ""):
    def run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd
        del timeout
        if cmd[3] == "rev-parse":
            return Ok("master\n")
        return Ok(status)

    return run


def _by_name(results: list[preflight_mod.CheckResult]) -> dict[str, preflight_mod.CheckResult]:
    return {r.name: r for r in results}


def test_all_green_on_linux(monkeypatch: pytest.MonkeyPatch, project: Path) -> None:
    monkeypatch.setattr(repo_mod, "run_process", _git())

    results = _by_name(run_checks(root=project, config=Config()))

    assert results["gh"].status == CheckStatus.OK
    assert results["git"].message == "clean (master)"
    assert results["manifest"].message == "Cargo.toml = 0.12.3"
    assert results["target linux"].status == CheckStatus.OK
    # Windows installers cannot be built here, but that is not fatal.
    assert results["target windows"].status == CheckStatus.WARNING
    assert not any(r.is_error for r in results.values())


def test_dirty_tree(monkeypatch: pytest.MonkeyPatch, project: Path) -> None:
    monkeypatch.setattr(repo_mod, "run_process", _git(" M Cargo.toml\n"))
    results = _by_name(run_checks(root=project, config=Config()))
    assert results["git"].is_error


def test_gh_not_authenticated(monkeypatch: pytest.MonkeyPatch, project: Path) -> None:
    monkeypatch.setattr(repo_mod, "run_process", _git())
    monkeypatch.setattr(
        preflight_mod,
        "ensure_gh_auth",
        lambda **_: Err(ReleaseError(kind="gh_auth_required", message="gh auth required")),
    )
    results = _by_name(run_checks(root=project, config=Config()))
    assert results["gh auth"].is_error


def test_missing_repo_and_manifest(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(preflight_mod, "ensure_gh_available", lambda: Ok(None))
    monkeypatch.setattr(preflight_mod, "ensure_gh_auth", lambda **_: Ok(None))

    results = _by_name(run_checks(root=tmp_path, config=Config()))

    assert results["git"].is_error
    assert results["manifest"].is_error
