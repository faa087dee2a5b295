"""Release branch update: merge, version bump, commit, tag."""

from __future__ import annotations

from polaris_release.core.result import Err, Ok, Result
from polaris_release.git.repository import GitError, Repository
from polaris_release.output.console import ConsoleProtocol, Style
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.github import merge_branch
from polaris_release.services.release.manifest import set_manifest_version
from polaris_release.services.release.model import ReleaseContext


def _git_error(e: GitError, *, message: str) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=message, hint=e.message or None)


def check_local_checkout(*, ctx: ReleaseContext) -> Result[None, ReleaseError]:
    """The root must be a git checkout with a clean working tree."""
    repo = Repository(ctx.root)
    if not repo.exists():
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"not a git repository: {ctx.root}",
                hint="Run from the project checkout or pass --root.",
            )
        )

    dirty = repo.dirty_paths()
    if dirty is None:
        return Err(ReleaseError(kind="git_failed", message="failed to check git status"))
    if dirty:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"working tree is dirty ({len(dirty)} path(s))",
                hint="Commit or stash local changes, then retry.",
            )
        )
    return Ok(None)


def _sync_release_branch(
    *,
    ctx: ReleaseContext,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    remote = ctx.config.git.remote
    release = ctx.config.branches.release
    repo = Repository(ctx.root)

    console.print(f"git fetch --tags --force {remote}", Style.DIM)
    console.print(f"git checkout {release}", Style.DIM)
    console.print(f"git pull --ff-only {remote} {release}", Style.DIM)
    if ctx.dry_run:
        return Ok(None)

    steps = (
        (lambda: repo.fetch(remote), f"git fetch {remote} failed"),
        (lambda: repo.checkout(release), f"failed to check out {release}"),
        (lambda: repo.pull_ff(remote, release), f"failed to fast-forward {release}"),
    )
    for step, message in steps:
        result = step()
        if isinstance(result, Err):
            return Err(_git_error(result.error, message=message))
    return Ok(None)


def prepare_release_checkout(
    *,
    ctx: ReleaseContext,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Check out the release branch and fast-forward it to the remote."""
    if not ctx.dry_run:
        checked = check_local_checkout(ctx=ctx)
        if isinstance(checked, Err):
            return checked
    return _sync_release_branch(ctx=ctx, console=console)


def update_release_branch(
    *,
    ctx: ReleaseContext,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Merge source into release, stamp the version and force-tag it.

    The tag is forced so a failed release can be rerun with the same
    version; it then points at the new release head.
    """
    cfg = ctx.config
    remote = cfg.git.remote
    release = cfg.branches.release

    # The merge changes the remote; refuse a bad checkout before it.
    if not ctx.dry_run:
        checked = check_local_checkout(ctx=ctx)
        if isinstance(checked, Err):
            return checked

    merged = merge_branch(
        root=ctx.root,
        repo=ctx.repo_slug,
        base=release,
        head=cfg.branches.source,
        console=console,
        dry_run=ctx.dry_run,
    )
    if isinstance(merged, Err):
        return merged
    if merged.value == "up_to_date":
        console.print(f"{release} already contains {cfg.branches.source}", Style.DIM)

    checkout = _sync_release_branch(ctx=ctx, console=console)
    if isinstance(checkout, Err):
        return checkout

    repo = Repository(ctx.root)
    manifest = ctx.manifest_path

    console.print(f"set {cfg.project.manifest} version = \"{ctx.version}\"", Style.DIM)
    changed = True
    if not ctx.dry_run:
        bumped = set_manifest_version(path=manifest, version=ctx.version)
        if isinstance(bumped, Err):
            return bumped
        changed = bumped.value

    if changed:
        console.print(f"git commit -m {cfg.git.commit_message!r}", Style.DIM)
        console.print(f"git push {remote} {release}", Style.DIM)
        if not ctx.dry_run:
            for step, message in (
                (lambda: repo.add([manifest]), "git add failed"),
                (
                    lambda: repo.commit(cfg.git.commit_message, identity=ctx.identity),
                    "git commit failed",
                ),
                (lambda: repo.push(remote, release), f"git push {release} failed"),
            ):
                outcome = step()
                if isinstance(outcome, Err):
                    return Err(_git_error(outcome.error, message=message))
    else:
        console.print(f"{cfg.project.manifest} already at {ctx.version}", Style.DIM)

    console.print(f"git tag -f -a {ctx.tag} -m {cfg.git.tag_message!r}", Style.DIM)
    console.print(f"git push --force {remote} --tags", Style.DIM)
    if ctx.dry_run:
        return Ok(None)

    tagged = repo.tag_annotated(
        ctx.tag,
        message=cfg.git.tag_message,
        force=True,
        identity=ctx.identity,
    )
    if isinstance(tagged, Err):
        return Err(_git_error(tagged.error, message=f"failed to tag {ctx.tag}"))

    pushed = repo.push_tags(remote, force=True)
    if isinstance(pushed, Err):
        return Err(_git_error(pushed.error, message="failed to push tags"))

    head = repo.head_sha()
    at = f" at {head.value[:7]}" if isinstance(head, Ok) else ""
    console.success(f"{release} tagged {ctx.tag}{at}")
    return Ok(None)
