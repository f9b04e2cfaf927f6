"""Error codes for CLI exit status.

These values are used as process exit codes and should remain stable.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for helmtree commands.

    - 0: Success
    - 1: User error (bad option values)
    - 2: Environment error (helm/kubectl missing, invalid config file)
    - 3: Cluster error (releases could not be listed)
    - 4: Partial failure (some releases could not be decoded, with --strict)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    CLUSTER_ERROR = 3
    PARTIAL = 4

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
