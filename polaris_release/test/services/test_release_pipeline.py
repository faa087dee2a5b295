from __future__ import annotations

import threading
from pathlib import Path

import pytest

from polaris_release.core.config import DEFAULT_TARGETS, Config
from polaris_release.core.result import Err, Ok
from polaris_release.git.repository import GitIdentity
from polaris_release.output.console import MockConsole
from polaris_release.platform.detection import Platform
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.model import ReleaseContext
from polaris_release.services.release.pipeline import (
    BRANCH_STAGE,
    RELEASE_STAGE,
    StageSpec,
    _levels,
    default_runners,
    drop_foreign_targets,
    plan_stages,
    release_stages,
    run_pipeline,
)

ALL = frozenset({BRANCH_STAGE, RELEASE_STAGE, "windows", "linux"})


def _ctx(tmp_path: Path) -> ReleaseContext:
    return ReleaseContext(
        root=tmp_path,
        config=Config(),
        version="0.13.0",
        repo_slug="agersant/polaris",
        identity=GitIdentity(name="agersant"),
    )


class Tracker:
    """Fake stage runners recording call order."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.failing = failing or set()
        self._lock = threading.Lock()

    def runner(self, name: str):
        def run(**_: object):
            with self._lock:
                self.calls.append(name)
            if name in self.failing:
                return Err(ReleaseError(kind="build_failed", message=f"{name} broke", hint="see log"))
            return Ok(None)

        return run

    def runners(self) -> dict[str, object]:
        return {name: self.runner(name) for name in sorted(ALL)}


def test_release_stages_graph() -> None:
    stages = {s.name: s for s in release_stages(Config())}
    assert list(stages) == [BRANCH_STAGE, RELEASE_STAGE, "windows", "linux"]
    assert stages[RELEASE_STAGE].needs == (BRANCH_STAGE,)
    assert stages["linux"].needs == (RELEASE_STAGE,)
    assert stages["linux"].on_release_branch
    assert not stages[BRANCH_STAGE].on_release_branch


def test_default_runners_cover_every_stage() -> None:
    assert set(default_runners(Config())) == ALL


def test_plan_stages() -> None:
    assert plan_stages(Config()) == Ok(ALL)
    assert plan_stages(Config(), only=["linux"]) == Ok(frozenset({"linux"}))

    result = plan_stages(Config(), only=["linux", "macos"])
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_input"
    assert "macos" in result.error.message


def test_levels_group_targets() -> None:
    levels = _levels(release_stages(Config()))
    assert [[s.name for s in level] for level in levels] == [
        [BRANCH_STAGE],
        [RELEASE_STAGE],
        [t.id for t in DEFAULT_TARGETS],
    ]


def test_levels_reject_cycles() -> None:
    stages = (StageSpec("a", needs=("b",)), StageSpec("b", needs=("a",)))
    with pytest.raises(ValueError, match="cycle"):
        _levels(stages)


def test_full_run_in_order(tmp_path: Path) -> None:
    tracker = Tracker()
    checkouts: list[str] = []

    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=MockConsole(),
        selected=ALL,
        runners=tracker.runners(),
        checkout=lambda **_: checkouts.append("x") or Ok(None),
    )

    assert report.ok
    assert tracker.calls[:2] == [BRANCH_STAGE, RELEASE_STAGE]
    assert sorted(tracker.calls[2:]) == ["linux", "windows"]
    # branch_and_tag already left the release branch checked out.
    assert checkouts == []


def test_targets_run_concurrently(tmp_path: Path) -> None:
    barrier = threading.Barrier(2, timeout=5)
    runners = Tracker().runners()

    def waiting(**_: object):
        barrier.wait()
        return Ok(None)

    runners["windows"] = waiting
    runners["linux"] = waiting

    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=MockConsole(),
        selected=ALL,
        runners=runners,
        checkout=lambda **_: Ok(None),
    )

    assert report.ok


def test_failure_blocks_dependents(tmp_path: Path) -> None:
    tracker = Tracker(failing={BRANCH_STAGE})
    console = MockConsole()

    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=console,
        selected=ALL,
        runners=tracker.runners(),
        checkout=lambda **_: Ok(None),
    )

    assert not report.ok
    assert tracker.calls == [BRANCH_STAGE]
    assert [o.name for o in report.failed] == [BRANCH_STAGE]
    for name in (RELEASE_STAGE, "windows", "linux"):
        outcome = report.outcome(name)
        assert outcome is not None
        assert outcome.status == "blocked"
    assert console.find("branch_and_tag broke")
    assert console.find("hint: see log")


def test_one_target_failure_does_not_stop_the_other(tmp_path: Path) -> None:
    tracker = Tracker(failing={"windows"})

    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=MockConsole(),
        selected=ALL,
        runners=tracker.runners(),
        checkout=lambda **_: Ok(None),
    )

    assert not report.ok
    assert "linux" in tracker.calls
    linux = report.outcome("linux")
    windows = report.outcome("windows")
    assert linux is not None and linux.status == "ok"
    assert windows is not None and windows.status == "failed"
    assert windows.error is not None and windows.error.kind == "build_failed"


def test_unselected_stages_are_skipped_without_blocking(tmp_path: Path) -> None:
    tracker = Tracker()
    checkouts: list[str] = []

    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=MockConsole(),
        selected=frozenset({"linux"}),
        runners=tracker.runners(),
        checkout=lambda **_: checkouts.append("x") or Ok(None),
    )

    assert report.ok
    assert tracker.calls == ["linux"]
    assert checkouts == ["x"]
    skipped = [o.name for o in report.outcomes if o.status == "skipped"]
    assert skipped == [BRANCH_STAGE, RELEASE_STAGE, "windows"]


def test_checkout_failure_fails_target_stages(tmp_path: Path) -> None:
    tracker = Tracker()
    error = ReleaseError(kind="invalid_input", message="working tree is dirty (1 path(s))")

    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=MockConsole(),
        selected=frozenset({"windows", "linux"}),
        runners=tracker.runners(),
        checkout=lambda **_: Err(error),
    )

    assert tracker.calls == []
    assert [o.name for o in report.failed] == ["windows", "linux"]
    assert all(o.error == error for o in report.failed)


def test_drop_foreign_targets_marks_them_skipped(tmp_path: Path) -> None:
    console = MockConsole()
    selected = drop_foreign_targets(Config(), ALL, host=Platform.LINUX, console=console)

    assert selected == frozenset({BRANCH_STAGE, RELEASE_STAGE, "linux"})
    assert console.find("windows: skipped")

    tracker = Tracker()
    report = run_pipeline(
        ctx=_ctx(tmp_path),
        console=console,
        selected=selected,
        runners=tracker.runners(),
        checkout=lambda **_: Ok(None),
    )

    assert report.ok
    windows = report.outcome("windows")
    assert windows is not None and windows.status == "skipped"
    assert "windows" not in tracker.calls


def test_drop_foreign_targets_on_unknown_host() -> None:
    selected = drop_foreign_targets(Config(), ALL, host=Platform.UNKNOWN, console=MockConsole())
    assert selected == frozenset({BRANCH_STAGE, RELEASE_STAGE})
