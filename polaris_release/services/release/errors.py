from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "gh_missing",
    "gh_auth_required",
    "invalid_input",
    "invalid_version",
    "git_failed",
    "merge_conflict",
    "manifest_failed",
    "release_failed",
    "handoff_missing",
    "build_failed",
    "upload_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
