"""Typed release configuration.

The tool reads an optional ``release.toml`` at the project root. Every value
has a default matching the historical Polaris release workflow, so a checkout
without the file releases exactly as before.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list, get_table

__all__ = [
    "BranchesConfig",
    "Config",
    "ConfigError",
    "GitConfig",
    "ProjectConfig",
    "TargetConfig",
    "CONFIG_FILE_NAME",
    "TARGET_HOSTS",
    "DEFAULT_TARGETS",
    "load_config",
    "load_project_config",
]

CONFIG_FILE_NAME = "release.toml"
TARGET_HOSTS = ("linux", "macos", "windows")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """What is being released.

    Attributes:
        name: Product name, used in the release title and asset names
        repo: GitHub slug (owner/name); None means "ask gh for origin"
        manifest: Manifest file holding the version, relative to the root
    """

    name: str = "Polaris"
    repo: str | None = None
    manifest: str = "Cargo.toml"


@dataclass(frozen=True, slots=True)
class BranchesConfig:
    source: str = "master"
    release: str = "release"


@dataclass(frozen=True, slots=True)
class GitConfig:
    remote: str = "origin"
    commit_message: str = "Updated version number"
    tag_message: str = "Version number"


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """A platform artifact built and attached to the release.

    Attributes:
        id: Target identifier (also the pipeline stage name)
        output: File produced by the command, relative to the root
        suffix: Asset name suffix (asset = <name>_<version><suffix>)
        content_type: MIME type sent with the upload
        command: Packaging command, run from the project root
        host: Platform the command has to run on
    """

    id: str
    output: str
    suffix: str
    content_type: str
    command: tuple[str, ...]
    host: str

    def asset_name(self, *, product: str, version: str) -> str:
        return f"{product}_{version}{self.suffix}"


DEFAULT_TARGETS: tuple[TargetConfig, ...] = (
    TargetConfig(
        id="windows",
        output="polaris.msi",
        suffix=".msi",
        content_type="application/x-msi",
        command=(
            "powershell",
            "-ExecutionPolicy",
            "Bypass",
            "-File",
            "res/windows/release_script.ps1",
        ),
        host="windows",
    ),
    TargetConfig(
        id="linux",
        output="polaris.tar.gz",
        suffix=".tar.gz",
        content_type="application/gzip",
        command=("sh", "res/unix/release_script.sh"),
        host="linux",
    ),
)


def _default_targets() -> tuple[TargetConfig, ...]:
    return DEFAULT_TARGETS


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    branches: BranchesConfig = field(default_factory=BranchesConfig)
    git: GitConfig = field(default_factory=GitConfig)
    targets: tuple[TargetConfig, ...] = field(default_factory=_default_targets)
    state_dir: str = ".polaris-release"

    def target(self, target_id: str) -> TargetConfig | None:
        for t in self.targets:
            if t.id == target_id:
                return t
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from parsed TOML.

        Raises:
            ValueError: A target table is malformed.
        """
        project: StrDict = get_table(data, "project") or {}
        branches: StrDict = get_table(data, "branches") or {}
        git: StrDict = get_table(data, "git") or {}
        targets_tbl = get_table(data, "targets")

        targets = DEFAULT_TARGETS
        if targets_tbl is not None:
            targets = tuple(_parse_target(k, v) for k, v in targets_tbl.items())

        defaults = cls()
        return cls(
            project=ProjectConfig(
                name=get_str(project, "name") or defaults.project.name,
                repo=get_str(project, "repo"),
                manifest=get_str(project, "manifest") or defaults.project.manifest,
            ),
            branches=BranchesConfig(
                source=get_str(branches, "source") or defaults.branches.source,
                release=get_str(branches, "release") or defaults.branches.release,
            ),
            git=GitConfig(
                remote=get_str(git, "remote") or defaults.git.remote,
                commit_message=get_str(git, "commit_message") or defaults.git.commit_message,
                tag_message=get_str(git, "tag_message") or defaults.git.tag_message,
            ),
            targets=targets,
            state_dir=get_str(data, "state_dir") or defaults.state_dir,
        )


def _parse_target(target_id: str, raw: object) -> TargetConfig:
    tbl = as_str_dict(raw)
    if tbl is None:
        raise ValueError(f"[targets.{target_id}] must be a table")

    # Known targets inherit their defaults so a table can override one key.
    base = next((t for t in DEFAULT_TARGETS if t.id == target_id), None)

    command = get_str_list(tbl, "command")
    if "command" in tbl and command is None:
        raise ValueError(f"[targets.{target_id}].command must be a list of strings")

    output = get_str(tbl, "output") or (base.output if base else None)
    suffix = get_str(tbl, "suffix") or (base.suffix if base else None)
    content_type = get_str(tbl, "content_type") or (base.content_type if base else None)
    host = get_str(tbl, "host") or (base.host if base else None)
    if host is not None and host.lower() not in TARGET_HOSTS:
        raise ValueError(
            f"[targets.{target_id}].host must be one of {', '.join(TARGET_HOSTS)} (got {host!r})"
        )
    resolved_command = tuple(command) if command else (base.command if base else ())

    missing = [
        name
        for name, value in (
            ("output", output),
            ("suffix", suffix),
            ("content_type", content_type),
            ("host", host),
            ("command", resolved_command),
        )
        if not value
    ]
    if missing:
        raise ValueError(f"[targets.{target_id}] missing: {', '.join(missing)}")

    assert output and suffix and content_type and host
    return TargetConfig(
        id=target_id,
        output=output,
        suffix=suffix,
        content_type=content_type,
        command=resolved_command,
        host=host.lower(),
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to release.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_project_config(root: Path) -> Result[Config, ConfigError]:
    """Load ``release.toml`` from ``root``, or defaults when there is none.

    A file that exists but does not parse is still an error.
    """
    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
