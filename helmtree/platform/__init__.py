"""Platform abstraction layer."""

from .paths import (
    default_config_path,
    home,
    user_config_dir,
)
from .process import (
    ProcessError,
    run,
    which,
)

__all__ = [
    # paths
    "default_config_path",
    "home",
    "user_config_dir",
    # process
    "ProcessError",
    "run",
    "which",
]
