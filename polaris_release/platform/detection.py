"""Host platform detection.

Packaging targets are tied to a host OS (the MSI installer needs Windows);
``run`` uses this to skip targets the current machine cannot build unless
they are requested by name.
"""

from __future__ import annotations

import platform as _platform
from enum import Enum, auto
from functools import lru_cache

__all__ = ["Platform", "detect_platform"]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> Platform:
        """Map a config host name ("windows", "linux", "macos") to a Platform."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return cls.UNKNOWN


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    system = _platform.system().lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith("windows") or system.startswith(("cygwin", "msys", "mingw")):
        return Platform.WINDOWS
    return Platform.UNKNOWN
