"""Git operations.

Usage:
    from polaris_release.git import Repository

    repo = Repository(root)
    if not repo.is_clean():
        ...
"""

from polaris_release.git.repository import GitError, GitIdentity, Repository

__all__ = ["GitError", "GitIdentity", "Repository"]
