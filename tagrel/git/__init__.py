"""Git operations module.

Usage:
    from tagrel.git import Repository

    repo = Repository(Path("/path/to/project"))
    tags = repo.tags("v*")
"""

from .repository import Commit, GitError, Repository, parse_remote_slug

__all__ = [
    "Commit",
    "GitError",
    "Repository",
    "parse_remote_slug",
]
