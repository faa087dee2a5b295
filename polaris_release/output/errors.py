"""Error presentation utilities.

Centralized release error formatting and exit code mapping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from polaris_release.core.errors import ErrorCode
from polaris_release.output.console import Style

if TYPE_CHECKING:
    from polaris_release.output.console import ConsoleProtocol
    from polaris_release.services.release.errors import ReleaseError, ReleaseErrorKind

__all__ = ["print_release_error", "release_error_exit_code"]

_EXIT_CODES: dict[str, ErrorCode] = {
    "invalid_input": ErrorCode.USER_ERROR,
    "invalid_version": ErrorCode.USER_ERROR,
    "gh_missing": ErrorCode.ENV_ERROR,
    "gh_auth_required": ErrorCode.ENV_ERROR,
    "build_failed": ErrorCode.BUILD_ERROR,
    "upload_failed": ErrorCode.NETWORK_ERROR,
    "manifest_failed": ErrorCode.IO_ERROR,
    "handoff_missing": ErrorCode.IO_ERROR,
    "git_failed": ErrorCode.RELEASE_ERROR,
    "merge_conflict": ErrorCode.RELEASE_ERROR,
    "release_failed": ErrorCode.RELEASE_ERROR,
}


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(kind: ReleaseErrorKind) -> int:
    return int(_EXIT_CODES.get(kind, ErrorCode.RELEASE_ERROR))
