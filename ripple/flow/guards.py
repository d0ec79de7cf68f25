"""Git-flow rules checked before an operation enqueues any command.

Every check is a pure function of the operation, the preloaded
`WorkflowState` and the configured branch names.
"""

from __future__ import annotations

from ripple.core.config import BranchesConfig
from ripple.core.result import Err, Ok, Result
from ripple.flow.errors import WorkflowError
from ripple.flow.operations import Bump, Finish, Init, Operation, Start, Status
from ripple.flow.state import WorkflowState

__all__ = ["check_operation"]

_DIRTY = WorkflowError(
    kind="dirty_tree",
    message="Can't start on a dirty working tree. Stash or commit your changes, then try again.",
)


def _check_start(op: Start, state: WorkflowState, branches: BranchesConfig) -> Result[None, WorkflowError]:
    if state.dirty and op.kind != "feature":
        return Err(_DIRTY)

    match op.kind:
        case "feature":
            if not op.name or not op.name.strip():
                return Err(
                    WorkflowError(
                        kind="missing_argument",
                        message="When starting a new feature, include a name.",
                        hint='i.e. "ripple start feature my_feature"',
                    )
                )
            if state.is_release or state.is_hotfix or state.current in ("", branches.trunk):
                return Err(
                    WorkflowError(
                        kind="wrong_branch",
                        message="The new feature will be started relative to the current HEAD.",
                        hint=f'Check out a feature branch or "{branches.develop}" first.',
                    )
                )
        case "release":
            if state.release_exists:
                return Err(WorkflowError(kind="branch_exists", message="You already have a release branch!"))
        case "hotfix":
            if state.hotfix_exists:
                return Err(WorkflowError(kind="branch_exists", message="You already have a hotfix branch!"))
    return Ok(None)


def _check_bump(state: WorkflowState) -> Result[None, WorkflowError]:
    if not state.is_release:
        return Err(
            WorkflowError(
                kind="wrong_branch",
                message="You can only manually bump versions on a release branch.",
            )
        )
    return Ok(None)


def _check_finish(op: Finish, state: WorkflowState, branches: BranchesConfig) -> Result[None, WorkflowError]:
    if state.dirty:
        return Err(_DIRTY)

    match op.kind:
        case "feature":
            long_lived = (branches.trunk, branches.develop, "")
            if state.is_release or state.is_hotfix or state.current in long_lived:
                return Err(
                    WorkflowError(
                        kind="wrong_branch",
                        message="Finishing a feature requires that you have its branch already checked out.",
                    )
                )
        case "release":
            if not state.release_exists:
                return Err(WorkflowError(kind="branch_missing", message="There is no release branch to finish."))
            if state.hotfix_exists:
                return Err(
                    WorkflowError(
                        kind="wrong_branch",
                        message="You must finish your hotfix before finishing your release.",
                    )
                )
        case "hotfix":
            if not state.hotfix_exists:
                return Err(WorkflowError(kind="branch_missing", message="There is no hotfix branch to finish."))
    return Ok(None)


def check_operation(
    operation: Operation, state: WorkflowState, branches: BranchesConfig
) -> Result[None, WorkflowError]:
    """Return Err if the operation may not run against this repository state."""
    match operation:
        case Status() | Init():
            return Ok(None)
        case Start():
            return _check_start(operation, state, branches)
        case Bump():
            return _check_bump(state)
        case Finish():
            return _check_finish(operation, state, branches)
