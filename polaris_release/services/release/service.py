"""Assemble a ReleaseContext from user input and the environment."""

from __future__ import annotations

import os
from pathlib import Path

from polaris_release.core.config import Config
from polaris_release.core.result import Err, Ok, Result
from polaris_release.core.version import validate_version
from polaris_release.git.repository import GitIdentity
from polaris_release.output.console import ConsoleProtocol
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.github import (
    current_user,
    ensure_gh_auth,
    ensure_gh_available,
    resolve_repo_slug,
)
from polaris_release.services.release.model import ReleaseContext

ACTOR_ENV = "GITHUB_ACTOR"
_DRY_RUN_REPO = "OWNER/REPO"
_DRY_RUN_ACTOR = "polaris-release"


def resolve_identity(*, root: Path) -> Result[GitIdentity, ReleaseError]:
    """Commit/tag author: ``$GITHUB_ACTOR``, else the gh user, with an empty e-mail."""
    actor = os.environ.get(ACTOR_ENV, "").strip()
    if actor:
        return Ok(GitIdentity(name=actor))

    login = current_user(root=root)
    if isinstance(login, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="cannot determine release actor",
                hint=f"Set {ACTOR_ENV} or authenticate gh.",
            )
        )
    return Ok(GitIdentity(name=login.value))


def build_release_context(
    *,
    root: Path,
    config: Config,
    version: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[ReleaseContext, ReleaseError]:
    """Validate the version and resolve repository and actor.

    Nothing is modified here; a bad version is rejected before any stage
    touches git or GitHub. In dry-run mode gh failures degrade to
    placeholders so the plan can still be printed.
    """
    checked = validate_version(version)
    if isinstance(checked, Err):
        return Err(
            ReleaseError(
                kind="invalid_version",
                message=f"invalid version {version!r}: {checked.error.message}",
                hint="Example: 0.13.0",
            )
        )

    if not dry_run:
        for check in (ensure_gh_available(), ensure_gh_auth(root=root)):
            if isinstance(check, Err):
                return check

    slug = config.project.repo
    if slug is None:
        resolved = resolve_repo_slug(root=root)
        if isinstance(resolved, Err):
            if not dry_run:
                return resolved
            console.warning(f"{resolved.error.message}; using {_DRY_RUN_REPO}")
            slug = _DRY_RUN_REPO
        else:
            slug = resolved.value

    identity_result = resolve_identity(root=root)
    if isinstance(identity_result, Err):
        if not dry_run:
            return identity_result
        identity = GitIdentity(name=_DRY_RUN_ACTOR)
    else:
        identity = identity_result.value

    return Ok(
        ReleaseContext(
            root=root,
            config=config,
            version=checked.value,
            repo_slug=slug,
            identity=identity,
            dry_run=dry_run,
        )
    )
