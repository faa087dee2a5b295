"""Error codes for CLI exit status.

Each failure category maps to a stable shell exit code so CI jobs wrapping
the tool can branch on the kind of failure.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (bad version string, invalid arguments)
    - 2: Environment error (gh missing, not authenticated, no repo)
    - 3: Build error (packaging command failed, output missing)
    - 4: Network error (GitHub API unreachable, upload failed)
    - 5: I/O error (manifest or handoff file unreadable)
    - 6: Release error (merge conflict, release creation rejected)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    RELEASE_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
