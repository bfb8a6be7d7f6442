"""Process exit codes for CLI commands.

The numeric values are part of the CLI contract (CI jobs branch on them) and
must stay stable:
- 0: Success (including a pipeline skipped by the template gate)
- 1: User error (bad tag, bad arguments)
- 2: Environment error (missing gh/cibuildwheel, unsupported host)
- 3: Build error (a platform build failed or produced no wheels)
- 4: Network error (GitHub API / gh failures)
- 5: I/O error (run directory, artifact store)
- 6: Release conflict (a release already exists for the tag)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    RELEASE_CONFLICT = 6
