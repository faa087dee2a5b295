"""Draft release creation."""

from __future__ import annotations

from polaris_release.core.result import Err, Ok, Result
from polaris_release.output.console import ConsoleProtocol, Style
from polaris_release.services.release.errors import ReleaseError
from polaris_release.services.release.github import create_draft_release, find_draft_release
from polaris_release.services.release.handoff import write_upload_url
from polaris_release.services.release.model import DraftRelease, ReleaseContext


def create_release_record(
    *,
    ctx: ReleaseContext,
    console: ConsoleProtocol,
) -> Result[DraftRelease, ReleaseError]:
    """Create the draft release for the tag and hand off its upload URL.

    A draft already open for the same tag (from an earlier, partially failed
    run) is reused instead of creating a second one.
    """
    release: DraftRelease | None = None
    if not ctx.dry_run:
        existing = find_draft_release(root=ctx.root, repo=ctx.repo_slug, tag=ctx.tag)
        if isinstance(existing, Err):
            return existing
        release = existing.value
        if release is not None:
            console.info(f"reusing draft release {release.name} ({release.html_url})")

    if release is None:
        created = create_draft_release(
            root=ctx.root,
            repo=ctx.repo_slug,
            tag=ctx.tag,
            name=ctx.release_name,
            console=console,
            dry_run=ctx.dry_run,
        )
        if isinstance(created, Err):
            return created
        release = created.value

    console.print(f"upload url: {release.upload_url}", Style.DIM)
    if not ctx.dry_run:
        written = write_upload_url(state_dir=ctx.state_dir, upload_url=release.upload_url)
        if isinstance(written, Err):
            return written
        console.success(f"draft release {release.name}: {release.html_url}")
    return Ok(release)
