"""Platform abstraction: processes, files and host detection."""

from .detection import Platform, detect_platform
from .files import atomic_write_text
from .process import ProcessError, run, run_silent

__all__ = [
    "Platform",
    "ProcessError",
    "atomic_write_text",
    "detect_platform",
    "run",
    "run_silent",
]
