"""Error codes for CLI exit status.

Each release outcome maps to one of these process exit codes. The
"nothing to commit" outcome is a success.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (including "nothing to commit")
    - 1: User error (invalid config, bad input, missing identity)
    - 3: Repository error (index, tree, commit or tag creation failed)
    - 4: Network error (clone or push failed, authentication refused)
    - 5: I/O error (file copy or manifest rewrite failed)
    """

    OK = 0
    USER_ERROR = 1
    VCS_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
