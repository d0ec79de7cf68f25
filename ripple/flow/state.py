from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, get_args

BranchKind = Literal["feature", "release", "hotfix"]
BRANCH_KINDS: tuple[BranchKind, ...] = get_args(BranchKind)

Phase = Literal["uninitialized", "preloading", "ready", "running", "terminal"]


@dataclass(slots=True)
class WorkflowState:
    """What the preload chain learned about the repository.

    Attributes:
        current: Checked out branch ("" on a detached HEAD)
        dirty: True if `git status --porcelain` reported anything
        is_release: Current branch is a release branch
        is_hotfix: Current branch is a hotfix branch
        release: Name of the release branch, if one exists
        hotfix: Name of the hotfix branch, if one exists
    """

    current: str = ""
    dirty: bool = False
    is_release: bool = False
    is_hotfix: bool = False
    release: str | None = None
    hotfix: str | None = None

    @property
    def release_exists(self) -> bool:
        return self.release is not None

    @property
    def hotfix_exists(self) -> bool:
        return self.hotfix is not None


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Per-invocation switches from the command line."""

    manifest: Path
    commit: bool = True
    verbose: bool = False
