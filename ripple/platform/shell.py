"""Shell command-line construction.

Commands run through a shell (the executor needs `&&`), so every value
that comes from the repository or the user (branch names, versions, paths,
commit messages) is quoted before it is placed into command text.
"""

from __future__ import annotations

import shlex
from os import PathLike

__all__ = ["join_command", "quote"]


def quote(value: str | PathLike[str]) -> str:
    """Quote a single argument for a POSIX shell."""
    return shlex.quote(str(value))


def join_command(*args: str | PathLike[str]) -> str:
    """Build one shell command line from separate arguments.

    Example:
        join_command("git", "commit", "-m", "bump version to 1.2.0")
        # -> "git commit -m 'bump version to 1.2.0'"
    """
    return " ".join(quote(a) for a in args)
