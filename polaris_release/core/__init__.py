"""Core domain types and logic."""

from .config import Config, ConfigError, load_config, load_project_config
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .version import SemVer, VersionError, parse_semver, validate_version

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    "load_project_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # version
    "SemVer",
    "VersionError",
    "parse_semver",
    "validate_version",
]
