"""Git repository abstraction.

``Repository`` wraps the handful of git operations a release needs. Every
method returns a Result; the caller decides whether a failure aborts the
stage.

Usage:
    repo = Repository(root)
    match repo.tag_annotated("0.13.0", message="Version number", force=True):
        case Ok(_):
            ...
        case Err(e):
            console.error(e.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from polaris_release.core.result import Err, Ok, Result
from polaris_release.platform.process import ProcessError
from polaris_release.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone"})

__all__ = ["GitError", "GitIdentity", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "push --tags")
        message: Error message (stderr, or a fallback)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class GitIdentity:
    """Author/committer identity applied to a single git invocation."""

    name: str
    email: str = "<>"

    def config_args(self) -> list[str]:
        return ["-c", f"user.name={self.name}", "-c", f"user.email={self.email}"]


class Repository:
    """A local git checkout.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git repository (``.git`` dir or worktree file)."""
        return (self.path / ".git").exists()

    def current_branch(self) -> str | None:
        """Current branch name, or None when detached or on error."""
        match self._run(["rev-parse", "--abbrev-ref", "HEAD"]):
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def is_clean(self) -> bool:
        """True when the working tree has no changes (False if unknown)."""
        return self.dirty_paths() == []

    def dirty_paths(self) -> list[str] | None:
        """Paths with uncommitted changes, or None if status failed."""
        match self._run(["status", "--porcelain=v1"]):
            case Ok(stdout):
                return [ln[3:] for ln in stdout.splitlines() if len(ln) > 3]
            case Err(_):
                return None

    def head_sha(self) -> Result[str, GitError]:
        result = self._checked(["rev-parse", "HEAD"], label="rev-parse HEAD")
        if isinstance(result, Err):
            return result
        sha = result.value.strip()
        if len(sha) != 40:
            return Err(GitError(command="rev-parse HEAD", message=f"invalid sha: {sha!r}"))
        return Ok(sha)

    def fetch(self, remote: str) -> Result[str, GitError]:
        return self._checked(["fetch", "--tags", "--force", remote], label="fetch")

    def checkout(self, branch: str) -> Result[str, GitError]:
        return self._checked(["checkout", branch], label=f"checkout {branch}")

    def pull_ff(self, remote: str, branch: str) -> Result[str, GitError]:
        """Pull ``remote/branch`` with fast-forward only."""
        return self._checked(["pull", "--ff-only", remote, branch], label="pull --ff-only")

    def add(self, paths: list[Path]) -> Result[str, GitError]:
        rels = [str(p.relative_to(self.path)) if p.is_absolute() else str(p) for p in paths]
        return self._checked(["add", "--", *rels], label="add")

    def commit(self, message: str, *, identity: GitIdentity | None = None) -> Result[str, GitError]:
        return self._checked(["commit", "-m", message], label="commit", identity=identity)

    def tag_annotated(
        self,
        name: str,
        *,
        message: str,
        force: bool,
        identity: GitIdentity | None = None,
    ) -> Result[str, GitError]:
        """Create an annotated tag at HEAD; ``force`` moves an existing tag."""
        args = ["tag"]
        if force:
            args.append("-f")
        args.extend(["-a", name, "-m", message])
        return self._checked(args, label=f"tag {name}", identity=identity)

    def push(self, remote: str, branch: str) -> Result[str, GitError]:
        return self._checked(["push", remote, branch], label=f"push {branch}")

    def push_tags(self, remote: str, *, force: bool) -> Result[str, GitError]:
        args = ["push"]
        if force:
            args.append("--force")
        args.extend([remote, "--tags"])
        return self._checked(args, label="push --tags")

    def _checked(
        self,
        args: list[str],
        *,
        label: str,
        identity: GitIdentity | None = None,
    ) -> Result[str, GitError]:
        match self._run(args, identity=identity):
            case Err(e):
                return Err(
                    GitError(
                        command=label,
                        message=e.stderr.strip() or e.stdout.strip() or f"git {label} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout)

    def _run(
        self,
        args: list[str],
        *,
        identity: GitIdentity | None = None,
    ) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        prefix = identity.config_args() if identity is not None else []
        return run_process(
            ["git", "-C", str(self.path), *prefix, *args],
            cwd=self.path,
            timeout=timeout,
        )
