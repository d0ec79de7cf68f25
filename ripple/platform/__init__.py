"""Platform abstraction layer: subprocesses, files and shell text."""

from .files import atomic_write_text
from .process import (
    CommandOutput,
    CommandRunner,
    Outcome,
    ProcessError,
    ShellRunner,
)
from .shell import (
    join_command,
    quote,
)

__all__ = [
    # files
    "atomic_write_text",
    # process
    "CommandOutput",
    "CommandRunner",
    "Outcome",
    "ProcessError",
    "ShellRunner",
    # shell
    "join_command",
    "quote",
]
