"""Version field of the project manifest.

Only the first line starting with a ``version =`` assignment is considered.
In a Cargo manifest that is the ``[package]`` version; dependency versions further down
(``version = "1"`` inside ``[dependencies.foo]``) are never touched.
"""

from __future__ import annotations

import re
from pathlib import Path

from polaris_release.core.result import Err, Ok, Result
from polaris_release.platform.files import atomic_write_text
from polaris_release.services.release.errors import ReleaseError

_VERSION_KEY_RE = re.compile(r"^version\s*=")
_VERSION_LINE_RE = re.compile(r'^(version\s*=\s*)"([^"]*)"(.*)$', re.DOTALL)


def _find_version_line(lines: list[str], *, path: Path) -> Result[tuple[int, re.Match[str]], ReleaseError]:
    for idx, line in enumerate(lines):
        if _VERSION_KEY_RE.match(line) is None:
            continue
        m = _VERSION_LINE_RE.match(line)
        if m is None:
            return Err(
                ReleaseError(
                    kind="manifest_failed",
                    message=f"unsupported version line in {path.name}: {line.strip()}",
                    hint='Expected: version = "X.Y.Z"',
                )
            )
        return Ok((idx, m))

    return Err(
        ReleaseError(
            kind="manifest_failed",
            message=f"no version field in {path.name}",
            hint=str(path),
        )
    )


def _read_lines(path: Path) -> Result[list[str], ReleaseError]:
    try:
        # newline="" preserves CRLF manifests byte for byte.
        with path.open("r", encoding="utf-8", newline="") as f:
            return Ok(f.read().splitlines(keepends=True))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="manifest_failed",
                message=f"failed to read {path.name}: {e}",
                hint=str(path),
            )
        )
    except UnicodeDecodeError as e:
        return Err(
            ReleaseError(
                kind="manifest_failed",
                message=f"invalid UTF-8 in {path.name}: {e}",
                hint=str(path),
            )
        )


def read_manifest_version(*, path: Path) -> Result[str, ReleaseError]:
    lines = _read_lines(path)
    if isinstance(lines, Err):
        return lines

    found = _find_version_line(lines.value, path=path)
    if isinstance(found, Err):
        return found
    _, m = found.value
    return Ok(m.group(2))


def set_manifest_version(*, path: Path, version: str) -> Result[bool, ReleaseError]:
    """Rewrite the manifest version; returns False when it already matches."""
    lines = _read_lines(path)
    if isinstance(lines, Err):
        return lines

    found = _find_version_line(lines.value, path=path)
    if isinstance(found, Err):
        return found
    idx, m = found.value

    if m.group(2) == version:
        return Ok(False)

    out = list(lines.value)
    out[idx] = f'{m.group(1)}"{version}"{m.group(3)}'

    try:
        atomic_write_text(path, "".join(out), encoding="utf-8")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="manifest_failed",
                message=f"failed to write {path.name}: {e}",
                hint=str(path),
            )
        )
    return Ok(True)
