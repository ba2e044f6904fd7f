"""
Exit Codes - Process exit statuses for the reffy CLI.
"""

from enum import IntEnum

from reffy.core.exceptions import ConfigError


class ExitCode(IntEnum):
    """
    Exit codes returned by `reffy`.

    PARTIAL means the run finished but some items failed; scripts can treat
    it as success-with-warnings.
    """

    SUCCESS = 0
    ERROR = 1
    PARTIAL = 2
    CONFIG_ERROR = 3
    SIGINT = 130

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ExitCode":
        """Pick the exit code for an exception that escaped a command."""
        if isinstance(exc, KeyboardInterrupt):
            return cls.SIGINT
        if isinstance(exc, ConfigError):
            return cls.CONFIG_ERROR
        return cls.ERROR
