from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class WorkflowError:
    kind: Literal[
        "invalid_input",
        "missing_argument",
        "dirty_tree",
        "wrong_branch",
        "branch_exists",
        "branch_missing",
    ]
    message: str
    hint: str | None = None
