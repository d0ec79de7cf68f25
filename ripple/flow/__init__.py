"""Git-flow workflow built on the sequential executor."""

from .controller import WorkflowController
from .errors import WorkflowError
from .operations import (
    Bump,
    Finish,
    Init,
    Operation,
    Start,
    Status,
    parse_bump,
    parse_finish,
    parse_init,
    parse_start,
)
from .state import BranchKind, RunOptions, WorkflowState

__all__ = [
    "BranchKind",
    "Bump",
    "Finish",
    "Init",
    "Operation",
    "RunOptions",
    "Start",
    "Status",
    "WorkflowController",
    "WorkflowError",
    "WorkflowState",
    "parse_bump",
    "parse_finish",
    "parse_init",
    "parse_start",
]
