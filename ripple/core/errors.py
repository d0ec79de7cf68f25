"""Process exit codes.

ripple only distinguishes success from failure: every validation failure,
manifest read/write failure and reported command error exits with 1.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands. Values are part of the CLI contract."""

    OK = 0
    USER_ERROR = 1
