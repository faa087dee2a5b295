"""Environment checks run before a release (``polaris-release check``)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from polaris_release.core.config import Config
from polaris_release.core.result import Err
from polaris_release.git.repository import Repository
from polaris_release.platform.detection import detect_platform
from polaris_release.services.release.github import ensure_gh_auth, ensure_gh_available
from polaris_release.services.release.manifest import read_manifest_version
from polaris_release.services.release.packaging import can_build_on_host


class CheckStatus(Enum):
    OK = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a single check.

    Attributes:
        name: What was checked (e.g. "gh", "manifest")
        status: Whether the check passed, warned, or failed
        message: Human-readable result
        hint: Optional fix
    """

    name: str
    status: CheckStatus
    message: str
    hint: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == CheckStatus.ERROR

    @classmethod
    def success(cls, name: str, message: str) -> CheckResult:
        return cls(name=name, status=CheckStatus.OK, message=message)

    @classmethod
    def warning(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.WARNING, message=message, hint=hint)

    @classmethod
    def error(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.ERROR, message=message, hint=hint)


def run_checks(*, root: Path, config: Config) -> list[CheckResult]:
    results: list[CheckResult] = []

    gh = ensure_gh_available()
    if isinstance(gh, Err):
        results.append(CheckResult.error("gh", gh.error.message, gh.error.hint))
    else:
        auth = ensure_gh_auth(root=root)
        if isinstance(auth, Err):
            results.append(CheckResult.error("gh auth", auth.error.message, auth.error.hint))
        else:
            results.append(CheckResult.success("gh", "installed and authenticated"))

    repo = Repository(root)
    if not repo.exists():
        results.append(
            CheckResult.error("git", f"not a git repository: {root}", "Pass --root <checkout>.")
        )
    else:
        branch = repo.current_branch() or "(detached)"
        if repo.is_clean():
            results.append(CheckResult.success("git", f"clean ({branch})"))
        else:
            results.append(
                CheckResult.error("git", f"working tree is dirty ({branch})", "Commit or stash changes.")
            )

    manifest = root / config.project.manifest
    version = read_manifest_version(path=manifest)
    if isinstance(version, Err):
        results.append(CheckResult.error("manifest", version.error.message, version.error.hint))
    else:
        results.append(CheckResult.success("manifest", f"{config.project.manifest} = {version.value}"))

    host = detect_platform()
    for target in config.targets:
        if can_build_on_host(target, host=host):
            results.append(CheckResult.success(f"target {target.id}", f"buildable on {host}"))
        else:
            results.append(
                CheckResult.warning(
                    f"target {target.id}",
                    f"requires {target.host} (host: {host})",
                    f"Run `polaris-release stage {target.id} <version>` on {target.host}.",
                )
            )

    return results
