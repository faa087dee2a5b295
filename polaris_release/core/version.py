"""Release version strings.

A version is a user-facing token such as ``0.13.0``. It becomes a git tag
name and part of asset file names, so the only hard requirement is that git
accepts it as a ref component. SemVer parsing is offered for display and
ordering; it is not enforced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .result import Err, Ok, Result

__all__ = ["SemVer", "VersionError", "parse_semver", "validate_version"]

_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-([0-9A-Za-z.-]+))?$"
)
# '"' is not a git rule: the version is written as a quoted manifest value.
_FORBIDDEN_CHARS = frozenset("~^:?*[\\\"")


@dataclass(frozen=True, slots=True)
class VersionError:
    version: str
    message: str


@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    pre: str = ""

    def sort_key(self) -> tuple[int, int, int, int, tuple[tuple[int, int | str], ...]]:
        """Precedence key: numeric pre-release identifiers compare as numbers
        and sort before alphanumeric ones."""
        if not self.pre:
            # A release sorts after any of its pre-releases.
            return (self.major, self.minor, self.patch, 1, ())
        parts = tuple(
            (0, int(part)) if part.isdigit() else (1, part) for part in self.pre.split(".")
        )
        return (self.major, self.minor, self.patch, 0, parts)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.pre}" if self.pre else base

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)


def parse_semver(text: str) -> SemVer | None:
    """Parse ``MAJOR.MINOR.PATCH[-PRE]`` (optional leading ``v``)."""
    m = _SEMVER_RE.match(text.strip())
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4) or "")


def validate_version(text: str) -> Result[str, VersionError]:
    """Check that ``text`` can be used as a tag name and asset suffix.

    Follows the ``git check-ref-format`` rules that apply to a single
    component, so the tag push cannot be rejected later in the pipeline.
    """
    version = text.strip()

    def bad(message: str) -> Err[VersionError]:
        return Err(VersionError(version=text, message=message))

    if not version:
        return bad("version is empty")
    if version != text or any(c.isspace() for c in version):
        return bad("version must not contain whitespace")
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in version):
        return bad("version must not contain control characters")
    if any(c in _FORBIDDEN_CHARS for c in version):
        return bad('version must not contain any of ~ ^ : ? * [ \\ "')
    if "/" in version:
        return bad("version must not contain '/'")
    if ".." in version:
        return bad("version must not contain '..'")
    if "@{" in version or version == "@":
        return bad("version must not contain '@{'")
    if version.startswith(("-", ".")):
        return bad("version must not start with '-' or '.'")
    if version.endswith(".") or version.endswith(".lock"):
        return bad("version must not end with '.' or '.lock'")
    return Ok(version)
