"""Release stage graph.

The graph is fixed::

    branch_and_tag -> create_release -> {windows, linux, ...}

with one platform stage per configured target. Stages run level by level;
platform stages of the same level run concurrently. A stage whose dependency
failed (or was itself blocked) is reported as ``blocked`` and not run. A
stage left out of the selection is ``skipped`` and does not block its
dependents: they read their inputs from the handoff file instead, as when
each stage is run by a separate invocation.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial

from polaris_release.core.config import Config, TargetConfig
from polaris_release.core.result import Err, Ok, Result
from polaris_release.output.console import ConsoleProtocol, Style
from polaris_release.platform.detection import Platform
from polaris_release.services.release.branch import (
    prepare_release_checkout,
    update_release_branch,
)
from polaris_release.services.release.draft import create_release_record
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.model import ReleaseContext, StageStatus
from polaris_release.services.release.packaging import can_build_on_host, publish_target

BRANCH_STAGE = "branch_and_tag"
RELEASE_STAGE = "create_release"

StageRunner = Callable[..., Result[object, ReleaseError]]


@dataclass(frozen=True, slots=True)
class StageSpec:
    """A node of the release graph.

    Attributes:
        name: Stage identifier
        needs: Stages that must succeed (or be skipped) first
        on_release_branch: Requires the release branch to be checked out
    """

    name: str
    needs: tuple[str, ...] = ()
    on_release_branch: bool = False


@dataclass(frozen=True, slots=True)
class StageOutcome:
    name: str
    status: StageStatus
    error: ReleaseError | None = None


@dataclass(frozen=True, slots=True)
class PipelineReport:
    outcomes: tuple[StageOutcome, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return all(o.status in ("ok", "skipped") for o in self.outcomes)

    def outcome(self, name: str) -> StageOutcome | None:
        for o in self.outcomes:
            if o.name == name:
                return o
        return None

    @property
    def failed(self) -> list[StageOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]


def release_stages(config: Config) -> tuple[StageSpec, ...]:
    stages = [
        StageSpec(BRANCH_STAGE),
        StageSpec(RELEASE_STAGE, needs=(BRANCH_STAGE,)),
    ]
    stages.extend(
        StageSpec(t.id, needs=(RELEASE_STAGE,), on_release_branch=True) for t in config.targets
    )
    return tuple(stages)


def _publish(target: TargetConfig, *, ctx: ReleaseContext, console: ConsoleProtocol):
    return publish_target(ctx=ctx, target=target, console=console)


def default_runners(config: Config) -> dict[str, StageRunner]:
    """Stage name -> callable taking ``ctx=`` and ``console=``."""
    runners: dict[str, StageRunner] = {
        BRANCH_STAGE: update_release_branch,
        RELEASE_STAGE: create_release_record,
    }
    for target in config.targets:
        runners[target.id] = partial(_publish, target)
    return runners


def plan_stages(
    config: Config,
    *,
    only: Collection[str] | None = None,
) -> Result[frozenset[str], ReleaseError]:
    """Resolve the stage selection; ``None`` or empty means every stage."""
    names = [s.name for s in release_stages(config)]
    if not only:
        return Ok(frozenset(names))

    unknown = sorted(set(only) - set(names))
    if unknown:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"unknown stage(s): {', '.join(unknown)}",
                hint=f"Available: {', '.join(names)}",
            )
        )
    return Ok(frozenset(only))


def drop_foreign_targets(
    config: Config,
    selected: frozenset[str],
    *,
    host: Platform,
    console: ConsoleProtocol,
) -> frozenset[str]:
    """Remove targets that cannot be built on ``host`` from ``selected``.

    They are then reported as ``skipped``. Only applied when no target was
    requested by name; an explicit request for a foreign target still fails.
    """
    kept = set(selected)
    for target in config.targets:
        if target.id in kept and not can_build_on_host(target, host=host):
            console.warning(f"{target.id}: skipped, requires {target.host} (host: {host})")
            kept.discard(target.id)
    return frozenset(kept)


def _levels(stages: tuple[StageSpec, ...]) -> list[list[StageSpec]]:
    """Group stages by dependency depth; raises ValueError on a cycle."""
    by_name = {s.name: s for s in stages}
    depth: dict[str, int] = {}

    def visit(name: str, trail: tuple[str, ...]) -> int:
        if name in trail:
            raise ValueError(f"stage cycle: {' -> '.join((*trail, name))}")
        if name in depth:
            return depth[name]
        spec = by_name[name]
        d = 1 + max((visit(n, (*trail, name)) for n in spec.needs), default=-1)
        depth[name] = d
        return d

    for s in stages:
        visit(s.name, ())

    levels: list[list[StageSpec]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
    for s in stages:
        levels[depth[s.name]].append(s)
    return levels


def run_pipeline(
    *,
    ctx: ReleaseContext,
    console: ConsoleProtocol,
    selected: frozenset[str],
    runners: Mapping[str, StageRunner] | None = None,
    checkout: StageRunner | None = None,
) -> PipelineReport:
    stages = release_stages(ctx.config)
    stage_runners = runners if runners is not None else default_runners(ctx.config)
    prepare = checkout if checkout is not None else prepare_release_checkout

    outcomes: dict[str, StageOutcome] = {}
    on_release_branch = False

    def run_one(spec: StageSpec) -> StageOutcome:
        console.header(spec.name)
        result = stage_runners[spec.name](ctx=ctx, console=console)
        if isinstance(result, Err):
            console.error(f"{spec.name}: {result.error.message}")
            if result.error.hint:
                console.print(f"hint: {result.error.hint}", Style.DIM)
            return StageOutcome(spec.name, "failed", result.error)
        return StageOutcome(spec.name, "ok")

    for level in _levels(stages):
        to_run: list[StageSpec] = []
        for spec in level:
            if spec.name not in selected:
                outcomes[spec.name] = StageOutcome(spec.name, "skipped")
                continue
            upstream = [outcomes[n] for n in spec.needs if n in outcomes]
            if any(o.status in ("failed", "blocked") for o in upstream):
                console.warning(f"{spec.name}: blocked by failed dependency")
                outcomes[spec.name] = StageOutcome(spec.name, "blocked")
                continue
            to_run.append(spec)

        if not on_release_branch and any(s.on_release_branch for s in to_run):
            # branch_and_tag leaves the checkout on the release branch.
            if outcomes.get(BRANCH_STAGE, StageOutcome(BRANCH_STAGE, "skipped")).status == "ok":
                on_release_branch = True
            else:
                prepared = prepare(ctx=ctx, console=console)
                if isinstance(prepared, Err):
                    console.error(prepared.error.message)
                    for spec in [s for s in to_run if s.on_release_branch]:
                        outcomes[spec.name] = StageOutcome(spec.name, "failed", prepared.error)
                    to_run = [s for s in to_run if not s.on_release_branch]
                else:
                    on_release_branch = True

        if len(to_run) == 1:
            outcomes[to_run[0].name] = run_one(to_run[0])
        elif to_run:
            with ThreadPoolExecutor(max_workers=len(to_run)) as pool:
                for outcome in pool.map(run_one, to_run):
                    outcomes[outcome.name] = outcome

    return PipelineReport(outcomes=tuple(outcomes[s.name] for s in stages))
