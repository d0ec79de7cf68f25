"""Git command lines used by the workflow.

Each function returns the shell text for one executor job. Queries use
porcelain / machine-readable output so the controller never scrapes
human-oriented messages.
"""

from __future__ import annotations

from pathlib import Path

from ripple.platform.shell import join_command

INSIDE_WORK_TREE = "git rev-parse --is-inside-work-tree"
PORCELAIN_STATUS = "git status --porcelain"
CURRENT_BRANCH = "git branch --show-current"
HEAD_COMMIT = "git rev-parse --verify --quiet HEAD"


def list_branches(prefix: str) -> str:
    """Local branches whose name starts with prefix, one per line."""
    return join_command("git", "for-each-ref", "--format=%(refname:short)", f"refs/heads/{prefix}*")


def branch_exists(name: str) -> str:
    """Exits 0 only if the local branch exists."""
    return join_command("git", "show-ref", "--verify", "--quiet", f"refs/heads/{name}")


def checkout(branch: str) -> str:
    return join_command("git", "checkout", branch)


def create_branch(name: str, start_point: str) -> str:
    """Create name from start_point and check it out."""
    return join_command("git", "checkout", "-b", name, start_point)


def create_branch_here(name: str) -> str:
    """Create name at HEAD without checking it out."""
    return join_command("git", "branch", name)


def merge(branch: str, *, theirs: bool = False) -> str:
    """Merge branch into HEAD with a merge commit.

    With theirs=True conflicting hunks resolve in favor of branch.
    """
    if theirs:
        return join_command("git", "merge", "--no-ff", "-s", "recursive", "-Xtheirs", branch)
    return join_command("git", "merge", "--no-ff", branch)


def tag(version: str) -> str:
    return join_command("git", "tag", "-a", version, "-m", f"version {version}")


def delete_branch(name: str) -> str:
    return join_command("git", "branch", "-d", name)


def rename_branch(new_name: str) -> str:
    """Rename the checked out branch."""
    return join_command("git", "branch", "-m", new_name)


def commit_file(path: Path, message: str) -> str:
    return join_command("git", "add", path) + " && " + join_command("git", "commit", "-m", message)


def stage_file(path: Path) -> str:
    """Stage path and show the resulting status."""
    return join_command("git", "add", path) + " && git status"
