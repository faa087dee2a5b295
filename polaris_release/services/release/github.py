from __future__ import annotations

import json
import shutil
from pathlib import Path
from time import sleep
from urllib.parse import quote

from polaris_release.core.result import Err, Ok, Result
from polaris_release.core.structured import as_obj_list, as_str_dict, get_int, get_str
from polaris_release.output.console import ConsoleProtocol, Style
from polaris_release.platform.process import ProcessError
from polaris_release.platform.process import run as run_process
from polaris_release.services.release.errors import ReleaseError, ReleaseErrorKind
from polaris_release.services.release.model import DraftRelease, MergeOutcome, UploadedAsset
from polaris_release.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)

_DRY_RUN_UPLOAD_URL = "https://uploads.github.com/repos/{repo}/releases/0/assets{{?name,label}}"


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "tls handshake timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def _http_status(error: ProcessError) -> int | None:
    """Extract the HTTP status gh reports on stderr ("... (HTTP 409)")."""
    text = error.stderr
    idx = text.rfind("HTTP ")
    if idx < 0:
        return None
    digits = text[idx + 5 : idx + 8]
    return int(digits) if digits.isdigit() else None


def run_gh_read(
    *,
    root: Path,
    cmd: list[str],
    kind: ReleaseErrorKind,
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run an idempotent gh command, retrying transient network failures."""
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=root, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(ReleaseError(kind=kind, message=message, hint=error.stderr.strip() or hint))

    return Err(ReleaseError(kind=kind, message=message, hint=hint))


def _parse_json(payload: str, *, what: str, kind: ReleaseErrorKind) -> Result[object, ReleaseError]:
    try:
        obj: object = json.loads(payload)
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind=kind, message=f"invalid JSON from {what}: {e}"))
    return Ok(obj)


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, root: Path) -> Result[None, ReleaseError]:
    # gh honours GH_TOKEN / GITHUB_TOKEN, so CI runners pass without a login.
    result = run_process(["gh", "auth", "status"], cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="gh auth required",
                hint="Run: gh auth login (or export GH_TOKEN)",
            )
        )
    return Ok(None)


def gh_api_json(*, root: Path, endpoint: str) -> Result[object, ReleaseError]:
    result = run_gh_read(
        root=root,
        cmd=["gh", "api", endpoint],
        kind="invalid_input",
        message=f"gh api failed: {endpoint}",
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result
    return _parse_json(result.value, what=f"gh api {endpoint}", kind="invalid_input")


def resolve_repo_slug(*, root: Path) -> Result[str, ReleaseError]:
    """Ask gh which GitHub repository the local checkout points at."""
    result = run_gh_read(
        root=root,
        cmd=["gh", "repo", "view", "--json", "nameWithOwner"],
        kind="invalid_input",
        message="failed to resolve GitHub repository",
        hint="Set [project].repo in release.toml or run from a GitHub checkout.",
    )
    if isinstance(result, Err):
        return result

    parsed = _parse_json(result.value, what="gh repo view", kind="invalid_input")
    if isinstance(parsed, Err):
        return parsed

    data = as_str_dict(parsed.value)
    slug = get_str(data, "nameWithOwner") if data is not None else None
    if slug is None or "/" not in slug:
        return Err(ReleaseError(kind="invalid_input", message="missing nameWithOwner"))
    return Ok(slug)


def current_user(*, root: Path) -> Result[str, ReleaseError]:
    """Login of the authenticated gh user."""
    result = gh_api_json(root=root, endpoint="user")
    if isinstance(result, Err):
        return result

    data = as_str_dict(result.value)
    login = get_str(data, "login") if data is not None else None
    if login is None:
        return Err(ReleaseError(kind="invalid_input", message="missing user.login"))
    return Ok(login)


def merge_branch(
    *,
    root: Path,
    repo: str,
    base: str,
    head: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[MergeOutcome, ReleaseError]:
    """Merge ``head`` into ``base`` server-side (``POST /repos/{repo}/merges``).

    GitHub answers 201 with the merge commit, 204 with an empty body when
    ``base`` already contains ``head``, and 409 on conflict.
    """
    cmd = [
        "gh",
        "api",
        "--method",
        "POST",
        f"repos/{repo}/merges",
        "-f",
        f"base={base}",
        "-f",
        f"head={head}",
        "-f",
        f"commit_message=Merge {head} into {base}",
    ]
    console.print(f"gh api --method POST repos/{repo}/merges ({head} -> {base})", Style.DIM)
    if dry_run:
        return Ok("merged")

    result = run_process(cmd, cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        status = _http_status(e)
        if status == 409:
            return Err(
                ReleaseError(
                    kind="merge_conflict",
                    message=f"merge conflict: {head} -> {base}",
                    hint=f"Merge {head} into {base} manually, then rerun.",
                )
            )
        if status == 404:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"branch not found: {base} or {head} in {repo}",
                    hint=e.stderr.strip() or None,
                )
            )
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"failed to merge {head} into {base}",
                hint=e.stderr.strip() or None,
            )
        )

    if not result.value.strip():
        return Ok("up_to_date")
    return Ok("merged")


def _parse_release(obj: object) -> DraftRelease | None:
    d = as_str_dict(obj)
    if d is None:
        return None

    release_id = get_int(d, "id")
    tag = get_str(d, "tag_name")
    upload_url = get_str(d, "upload_url")
    if release_id is None or tag is None or upload_url is None:
        return None

    draft = d.get("draft")
    return DraftRelease(
        id=release_id,
        tag=tag,
        name=get_str(d, "name") or tag,
        html_url=get_str(d, "html_url") or "",
        upload_url=upload_url,
        draft=draft if isinstance(draft, bool) else False,
    )


def find_draft_release(*, root: Path, repo: str, tag: str) -> Result[DraftRelease | None, ReleaseError]:
    """Find an existing draft release for ``tag``.

    Drafts are invisible to ``/releases/tags/{tag}``, so scan the list.
    """
    obj = gh_api_json(root=root, endpoint=f"repos/{repo}/releases?per_page=100")
    if isinstance(obj, Err):
        return obj

    raw = as_obj_list(obj.value)
    if raw is None:
        return Err(ReleaseError(kind="invalid_input", message=f"unexpected releases payload: {repo}"))

    for item in raw:
        release = _parse_release(item)
        if release is not None and release.draft and release.tag == tag:
            return Ok(release)
    return Ok(None)


def create_draft_release(
    *,
    root: Path,
    repo: str,
    tag: str,
    name: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[DraftRelease, ReleaseError]:
    cmd = [
        "gh",
        "api",
        "--method",
        "POST",
        f"repos/{repo}/releases",
        "-f",
        f"tag_name={tag}",
        "-f",
        f"name={name}",
        "-F",
        "draft=true",
        "-F",
        "prerelease=false",
    ]
    console.print(f"gh api --method POST repos/{repo}/releases (draft: {name})", Style.DIM)
    if dry_run:
        return Ok(
            DraftRelease(
                id=0,
                tag=tag,
                name=name,
                html_url="(dry-run)",
                upload_url=_DRY_RUN_UPLOAD_URL.format(repo=repo),
            )
        )

    result = run_process(cmd, cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        return Err(
            ReleaseError(
                kind="release_failed",
                message=f"failed to create draft release: {name}",
                hint=e.stderr.strip() or None,
            )
        )

    parsed = _parse_json(result.value, what="release creation", kind="release_failed")
    if isinstance(parsed, Err):
        return parsed

    release = _parse_release(parsed.value)
    if release is None:
        return Err(ReleaseError(kind="release_failed", message="unexpected release payload"))
    return Ok(release)


def expand_upload_url(template: str, *, name: str, label: str | None = None) -> str:
    """Expand GitHub's ``{?name,label}`` upload URI template."""
    base = template.split("{", 1)[0]
    query = f"name={quote(name, safe='')}"
    if label:
        query += f"&label={quote(label, safe='')}"
    return f"{base}?{query}"


def upload_release_asset(
    *,
    root: Path,
    upload_url: str,
    path: Path,
    name: str,
    content_type: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[UploadedAsset, ReleaseError]:
    url = expand_upload_url(upload_url, name=name)
    console.print(f"gh api --method POST {url} ({content_type})", Style.DIM)
    if dry_run:
        return Ok(UploadedAsset(name=name, url="(dry-run)"))

    if not path.is_file():
        return Err(
            ReleaseError(
                kind="upload_failed",
                message=f"asset file not found: {path}",
                hint="Build the target before uploading.",
            )
        )

    cmd = [
        "gh",
        "api",
        "--method",
        "POST",
        "-H",
        f"Content-Type: {content_type}",
        "--input",
        str(path),
        url,
    ]
    # Uploads are not idempotent; a retry could attach a duplicate asset.
    result = run_process(cmd, cwd=root, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        hint = e.stderr.strip() or None
        if _http_status(e) == 422:
            hint = f"An asset named {name} already exists on the release; delete it and retry."
        return Err(ReleaseError(kind="upload_failed", message=f"failed to upload {name}", hint=hint))

    parsed = _parse_json(result.value, what="asset upload", kind="upload_failed")
    if isinstance(parsed, Err):
        return parsed

    data = as_str_dict(parsed.value)
    if data is None:
        return Err(ReleaseError(kind="upload_failed", message="unexpected asset payload"))
    return Ok(
        UploadedAsset(
            name=get_str(data, "name") or name,
            url=get_str(data, "browser_download_url") or "",
            size=get_int(data, "size"),
        )
    )
