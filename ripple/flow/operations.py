"""The operations a single ripple invocation can perform.

Command-line arguments arrive as plain strings; the `parse_*` helpers turn
them into typed operations or a `WorkflowError` (exit 1) so that bad input
is reported the same way as any other validation failure.
"""

from __future__ import annotations

from dataclasses import dataclass

from ripple.core.result import Err, Ok, Result
from ripple.flow.errors import WorkflowError
from ripple.flow.state import BRANCH_KINDS, BranchKind
from ripple.manifest.semver import BUMP_PARTS, BumpPart, Version

DEFAULT_INIT_VERSION = "0.1.0"


@dataclass(frozen=True, slots=True)
class Status:
    pass


@dataclass(frozen=True, slots=True)
class Start:
    kind: BranchKind
    name: str | None = None
    bump: BumpPart = "revision"


@dataclass(frozen=True, slots=True)
class Bump:
    part: BumpPart


@dataclass(frozen=True, slots=True)
class Finish:
    kind: BranchKind


@dataclass(frozen=True, slots=True)
class Init:
    name: str
    version: Version


type Operation = Status | Start | Bump | Finish | Init


def describe(operation: Operation) -> str:
    """Title printed when an operation begins."""
    match operation:
        case Status():
            return "Status"
        case Start(kind=kind):
            return f"Starting {kind} branch"
        case Bump():
            return "Bumping version number"
        case Finish(kind=kind):
            return f"Finishing {kind} branch"
        case Init(name=name):
            return f"Initializing {name}"


def _parse_kind(kind: str) -> Result[BranchKind, WorkflowError]:
    for candidate in BRANCH_KINDS:
        if kind == candidate:
            return Ok(candidate)
    return Err(
        WorkflowError(
            kind="invalid_input",
            message=f'unknown branch type "{kind}"',
            hint='use "feature", "release", or "hotfix"',
        )
    )


def _parse_part(part: str) -> Result[BumpPart, WorkflowError]:
    for candidate in BUMP_PARTS:
        if part == candidate:
            return Ok(candidate)
    return Err(
        WorkflowError(
            kind="invalid_input",
            message=f'unknown version part "{part}"',
            hint='use "major", "minor", or "revision"',
        )
    )


def parse_start(kind: str, name: str | None, bump: str = "revision") -> Result[Start, WorkflowError]:
    parsed_kind = _parse_kind(kind)
    if isinstance(parsed_kind, Err):
        return parsed_kind
    parsed_part = _parse_part(bump)
    if isinstance(parsed_part, Err):
        return parsed_part
    return Ok(Start(kind=parsed_kind.value, name=name, bump=parsed_part.value))


def parse_bump(part: str) -> Result[Bump, WorkflowError]:
    return _parse_part(part).map(lambda p: Bump(part=p))


def parse_finish(kind: str) -> Result[Finish, WorkflowError]:
    return _parse_kind(kind).map(lambda k: Finish(kind=k))


def parse_init(name: str, version: str | None) -> Result[Init, WorkflowError]:
    if not name.strip():
        return Err(WorkflowError(kind="missing_argument", message="a project name is required"))
    text = version if version is not None else DEFAULT_INIT_VERSION
    parsed = Version.parse(text)
    if parsed is None:
        return Err(
            WorkflowError(
                kind="invalid_input",
                message=f'invalid version "{text}"',
                hint="versions look like major.minor.revision, e.g. 1.0.0",
            )
        )
    return Ok(Init(name=name.strip(), version=parsed))
