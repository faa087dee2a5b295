"""Upload endpoint handoff between stages.

``create_release`` records the draft release's upload URL in a small file;
platform stages read it back. This lets each stage run as a separate
invocation (or on a separate machine sharing the state directory), the same
way CI jobs pass artifacts.
"""

from __future__ import annotations

from pathlib import Path

from polaris_release.core.result import Err, Ok, Result
from polaris_release.platform.files import atomic_write_text
from polaris_release.services.release.errors import ReleaseError

HANDOFF_DIR = "release"
UPLOAD_URL_FILE = "upload-url"


def upload_url_path(state_dir: Path) -> Path:
    return state_dir / HANDOFF_DIR / UPLOAD_URL_FILE


def write_upload_url(*, state_dir: Path, upload_url: str) -> Result[Path, ReleaseError]:
    url = upload_url.strip()
    if not url:
        return Err(ReleaseError(kind="invalid_input", message="empty upload URL"))

    path = upload_url_path(state_dir)
    try:
        atomic_write_text(path, url + "\n")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="handoff_missing",
                message=f"failed to write upload URL: {e}",
                hint=str(path),
            )
        )
    return Ok(path)


def read_upload_url(*, state_dir: Path) -> Result[str, ReleaseError]:
    path = upload_url_path(state_dir)
    hint = "Run the create_release stage first."
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ReleaseError(kind="handoff_missing", message=f"no upload URL at {path}", hint=hint))
    except OSError as e:
        return Err(
            ReleaseError(kind="handoff_missing", message=f"failed to read {path}: {e}", hint=hint)
        )

    url = text.strip()
    if not url:
        return Err(ReleaseError(kind="handoff_missing", message=f"upload URL file is empty: {path}", hint=hint))
    return Ok(url)
