from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from polaris_release.core.config import Config, TargetConfig
from polaris_release.git.repository import GitIdentity

StageStatus = Literal["ok", "failed", "blocked", "skipped"]
MergeOutcome = Literal["merged", "up_to_date"]


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    """Everything a release stage needs besides the console.

    Attributes:
        root: Local checkout of the project being released
        config: Parsed release.toml (or defaults)
        version: Validated version string; also the tag name
        repo_slug: GitHub owner/name
        identity: Author identity for the version commit and the tag
        dry_run: Print commands instead of running them
    """

    root: Path
    config: Config
    version: str
    repo_slug: str
    identity: GitIdentity
    dry_run: bool = False

    @property
    def tag(self) -> str:
        return self.version

    @property
    def release_name(self) -> str:
        return f"{self.config.project.name} {self.version}"

    @property
    def manifest_path(self) -> Path:
        return self.root / self.config.project.manifest

    @property
    def state_dir(self) -> Path:
        return self.root / self.config.state_dir

    def asset_name(self, target: TargetConfig) -> str:
        return target.asset_name(product=self.config.project.name, version=self.version)


@dataclass(frozen=True, slots=True)
class DraftRelease:
    """A release record on GitHub.

    ``upload_url`` is the URI template GitHub returns, e.g.
    ``https://uploads.github.com/repos/o/r/releases/1/assets{?name,label}``.
    """

    id: int
    tag: str
    name: str
    html_url: str
    upload_url: str
    draft: bool = True


@dataclass(frozen=True, slots=True)
class UploadedAsset:
    name: str
    url: str
    size: int | None = None
