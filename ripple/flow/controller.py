"""Workflow controller: git-flow operations as executor command chains.

A run goes through these phases:

    uninitialized -> preloading -> ready -> running -> terminal

Preloading enqueues the repository queries that fill `WorkflowState`.
Once that chain has run, the requested operation is checked against the
state and, if allowed, builds its own chain of git commands and manifest
reads/writes. Any handler may end the run early: it reports the problem,
records exit code 1 and does not call its continuation, so the rest of the
chain never executes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from ripple.core.config import Config
from ripple.core.errors import ErrorCode
from ripple.core.logging import get_logger
from ripple.core.result import Err, Ok
from ripple.core.structured import StrDict
from ripple.exec.executor import Continuation, Handler, SequentialExecutor
from ripple.flow import git
from ripple.flow.errors import WorkflowError
from ripple.flow.guards import check_operation
from ripple.flow.operations import Bump, Finish, Init, Operation, Start, Status, describe
from ripple.flow.state import Phase, RunOptions, WorkflowState
from ripple.manifest.document import Document
from ripple.manifest.semver import BumpPart, Version
from ripple.manifest.store import read_manifest, write_manifest
from ripple.output.console import ConsoleProtocol, Style
from ripple.platform.process import CommandOutput, Outcome, ProcessError

__all__ = ["WorkflowController"]

_log = get_logger("flow")


class WorkflowController:
    """Drives one ripple invocation on top of a `SequentialExecutor`.

    Args:
        executor: Queue every git command goes through.
        console: Where user-facing messages go.
        options: Manifest path and command-line switches.
        config: Branch names and prefixes.
        state: Pre-filled state; normally left None and preloaded.
    """

    def __init__(
        self,
        executor: SequentialExecutor,
        console: ConsoleProtocol,
        options: RunOptions,
        *,
        config: Config,
        state: WorkflowState | None = None,
    ) -> None:
        self._exec = executor
        self._console = console
        self._options = options
        self._branches = config.branches
        self.state = state if state is not None else WorkflowState()
        self.phase: Phase = "uninitialized"
        self.document: Document | None = None
        self._halted = False
        self._ready: asyncio.Future[None] | None = None
        self._done: asyncio.Future[int] | None = None

    async def run(self, operation: Operation) -> int:
        """Preload repository state, then perform operation. Returns the exit code."""
        loop = asyncio.get_running_loop()
        self._ready = loop.create_future()
        self._done = loop.create_future()

        self.phase = "preloading"
        self._preload()
        await self._settle(self._ready)
        if self._done.done():
            return self._done.result()

        self.phase = "ready"
        _log.debug("state", **_state_fields(self.state))
        self._console.header(describe(operation))
        self.phase = "running"
        self._dispatch(operation)
        await self._settle(self._done)
        return self._done.result()

    async def _settle(self, future: asyncio.Future[Any]) -> None:
        """Wait for future, an early end of the run, or a crashed handler."""
        assert self._done is not None
        drained = asyncio.ensure_future(self._exec.join())
        await asyncio.wait({future, self._done, drained}, return_when=asyncio.FIRST_COMPLETED)
        if drained.done():
            drained.result()
        else:
            drained.cancel()
        if not (future.done() or self._done.done()):
            raise RuntimeError("command chain drained before the operation finished")

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    def _finish(self, code: ErrorCode) -> None:
        self.phase = "terminal"
        if self._done is not None and not self._done.done():
            self._done.set_result(int(code))

    def _complete(self) -> None:
        self._console.success("ok.")
        self._finish(ErrorCode.OK)

    def _halt(self, message: str, *, hint: str | None = None, output: str = "") -> None:
        self._halted = True
        self._console.error(message)
        if hint:
            self._console.print(f"hint: {hint}", Style.DIM)
        if output.strip():
            self._console.print(output.rstrip())
        self._finish(ErrorCode.USER_ERROR)

    def _reject(self, error: WorkflowError) -> None:
        self._halt(error.message, hint=error.hint)

    def _command_failed(self, error: ProcessError) -> None:
        self._halt(str(error), output="\n".join(s for s in (error.stdout, error.stderr) if s.strip()))

    def _show(self, output: CommandOutput) -> None:
        if self._options.verbose and output.stdout.strip():
            self._console.print(output.stdout.rstrip(), Style.DIM)

    def _step(
        self,
        then: Callable[[CommandOutput], None] | None = None,
        *,
        verbose: bool = False,
    ) -> Handler:
        """Handler that stops the run on failure, otherwise calls then and continues."""

        def handler(outcome: Outcome, proceed: Continuation) -> None:
            match outcome:
                case Err(error):
                    self._command_failed(error)
                case Ok(output):
                    if verbose:
                        self._show(output)
                    if then is not None:
                        then(output)
                    if not self._halted:
                        proceed()

        return handler

    # -------------------------------------------------------------------------
    # Preload
    # -------------------------------------------------------------------------

    def _preload(self) -> None:
        (
            self._exec.enqueue(git.INSIDE_WORK_TREE, self._on_repository)
            .enqueue(git.PORCELAIN_STATUS, self._step(self._on_status))
            .enqueue(git.CURRENT_BRANCH, self._step(self._on_current_branch))
            .enqueue(git.list_branches(self._branches.release_prefix), self._step(self._on_release))
            .enqueue(git.list_branches(self._branches.hotfix_prefix), self._step(self._on_hotfix))
        )

    def _on_repository(self, outcome: Outcome, proceed: Continuation) -> None:
        if isinstance(outcome, Err):
            self._halt("git says this isn't a repository. Are you in the right folder?")
            return
        proceed()

    def _on_status(self, output: CommandOutput) -> None:
        self.state.dirty = output.stdout.strip() != ""

    def _on_current_branch(self, output: CommandOutput) -> None:
        current = output.stdout.strip()
        self.state.current = current
        self.state.is_release = current.startswith(self._branches.release_prefix)
        self.state.is_hotfix = current.startswith(self._branches.hotfix_prefix)

    def _on_release(self, output: CommandOutput) -> None:
        self.state.release = _first_line(output.stdout)

    def _on_hotfix(self, output: CommandOutput) -> None:
        self.state.hotfix = _first_line(output.stdout)
        assert self._ready is not None
        self._ready.set_result(None)

    # -------------------------------------------------------------------------
    # Manifest steps
    # -------------------------------------------------------------------------

    def _load_document(self) -> bool:
        path = self._options.manifest
        loaded = read_manifest(path)
        if isinstance(loaded, Err):
            self._halt(loaded.error.message)
            return False
        document = Document.from_manifest(loaded.value)
        if isinstance(document, Err):
            self._halt(f"{path}: {document.error.message}")
            return False
        self.document = document.value
        return True

    def _read_document(self, branch: str, then: Callable[[], None]) -> None:
        """Check out branch, load the manifest from it, then call then."""

        def loaded(_: CommandOutput) -> None:
            if self._load_document():
                then()

        self._exec.enqueue(git.checkout(branch), self._step(loaded))

    def _increment(self, part: BumpPart) -> Document:
        document = self._require_document()
        document.increment(part)
        self._console.info(f"updating version: {document.origin} -> {document.to}")
        return document

    def _write_document(
        self,
        then: Callable[[], None],
        *,
        rename_to: str | None = None,
        message: str | None = None,
    ) -> None:
        """Write the manifest, then commit it (optionally renaming the branch) or stage it."""
        document = self._require_document()
        path = self._options.manifest
        written = write_manifest(path, document.data)
        if isinstance(written, Err):
            self._halt(written.error.message)
            return

        if not self._options.commit:

            def staged(output: CommandOutput) -> None:
                self._console.print(output.stdout.rstrip())
                then()

            self._exec.enqueue(git.stage_file(path), self._step(staged))
            return

        self._console.info("committing changes")

        def committed(output: CommandOutput) -> None:
            self._console.print(output.stdout.rstrip(), Style.DIM)
            if rename_to is None:
                then()

        self._exec.enqueue(
            git.commit_file(path, message or f"bump version to {document.version}"),
            self._step(committed),
        )
        if rename_to is not None:

            def renamed(_: CommandOutput) -> None:
                self.state.current = rename_to
                if rename_to.startswith(self._branches.release_prefix):
                    self.state.release = rename_to
                then()

            self._exec.enqueue(git.rename_branch(rename_to), self._step(renamed))

    def _require_document(self) -> Document:
        if self.document is None:
            raise RuntimeError("manifest has not been loaded")
        return self.document

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _dispatch(self, operation: Operation) -> None:
        checked = check_operation(operation, self.state, self._branches)
        if isinstance(checked, Err):
            self._reject(checked.error)
            return

        match operation:
            case Status():
                self._status()
            case Start(kind="feature", name=name):
                assert name is not None
                self._start_feature(name.strip())
            case Start(kind="release", bump=part):
                self._start_release(part)
            case Start(kind="hotfix"):
                self._start_hotfix()
            case Bump(part=part):
                self._bump(part)
            case Finish(kind="feature"):
                self._finish_feature()
            case Finish(kind="release"):
                self._finish_release()
            case Finish(kind="hotfix"):
                self._finish_hotfix()
            case Init(name=name, version=version):
                self._init(name, str(version))

    def _status(self) -> None:
        if not self._load_document():
            return
        document = self._require_document()
        state = self.state
        prefix = self._branches.release_prefix

        self._console.print(f"  Current release: {document.name} {document.version}")
        self._console.print(f"  With a package located at: {self._options.manifest}")
        self._console.print(
            f"  Working tree is {'dirty' if state.dirty else 'clean'}, "
            f"current branch is {state.current or '(detached HEAD)'}."
        )
        if not state.dirty:
            if state.release_exists:
                self._console.print(f"  You cannot create a release branch, {state.release} already exists.")
            else:
                self._console.print(
                    f'  You may create a release branch ({prefix}*) with '
                    f'"ripple start release --bump <major/minor/revision>"'
                )
            if state.hotfix_exists:
                self._console.print(f"  You cannot create a hotfix branch, {state.hotfix} already exists.")
            else:
                self._console.print('  You may create a hotfix branch with "ripple start hotfix"')
        self._complete()

    def _start_feature(self, name: str) -> None:
        base = self.state.current

        def branch_off() -> None:
            self._console.info(f'creating new {name} branch from "{base}"')
            self._exec.enqueue(git.create_branch(name, base), self._step(lambda _: self._complete()))

        self._read_document(base, branch_off)

    def _start_release(self, part: BumpPart) -> None:
        develop = self._branches.develop

        def branch_off() -> None:
            self._console.info(f'creating new release branch from "{develop}"')
            document = self._increment(part)
            if self.state.hotfix_exists:
                self._console.warning(
                    "A hotfix branch exists. You must finish the hotfix before finalizing the release."
                )
            branch = f"{self._branches.release_prefix}{document.version}"
            self._exec.enqueue(
                git.create_branch(branch, develop),
                self._step(lambda _: self._write_document(self._complete)),
            )

        self._read_document(develop, branch_off)

    def _start_hotfix(self) -> None:
        trunk = self._branches.trunk

        def branch_off() -> None:
            # hotfixes always bump the revision
            self._console.info(f'creating new hotfix branch from "{trunk}"')
            document = self._increment("revision")
            if self.state.release_exists:
                self._console.warning(
                    "A release branch exists. You must finish the hotfix before finalizing the release."
                )
            branch = f"{self._branches.hotfix_prefix}{document.version}"
            self._exec.enqueue(
                git.create_branch(branch, trunk),
                self._step(lambda _: self._write_document(self._complete)),
            )

        self._read_document(trunk, branch_off)

    def _bump(self, part: BumpPart) -> None:
        release = self.state.current

        def bump() -> None:
            document = self._increment(part)
            self._write_document(
                self._complete,
                rename_to=f"{self._branches.release_prefix}{document.version}",
            )

        self._read_document(release, bump)

    def _finish_feature(self) -> None:
        feature = self.state.current
        develop = self._branches.develop
        info = self._console.info
        (
            self._exec.enqueue(git.checkout(develop), self._step(lambda _: info(f"merging {feature} into {develop}")))
            .enqueue(git.merge(feature), self._step(lambda _: info(f"removing {feature} branch"), verbose=True))
            .enqueue(git.delete_branch(feature), self._step(lambda _: self._complete(), verbose=True))
        )

    def _finish_release(self) -> None:
        release = self.state.release
        assert release is not None
        trunk = self._branches.trunk
        develop = self._branches.develop
        info = self._console.info

        def integrate() -> None:
            version = self._require_document().version
            (
                self._exec.enqueue(git.checkout(trunk), self._step(lambda _: info(f"merging {release} into {trunk}")))
                .enqueue(
                    git.merge(release, theirs=True),
                    self._step(lambda _: info(f"tagging version {version} on {trunk}"), verbose=True),
                )
                .enqueue(git.tag(version), self._step())
                .enqueue(git.checkout(develop), self._step(lambda _: info(f"merging {release} into {develop}")))
                .enqueue(git.merge(release), self._step(lambda _: info(f"removing {release} branch"), verbose=True))
                .enqueue(git.delete_branch(release), self._step(lambda _: self._complete(), verbose=True))
            )

        self._read_document(release, integrate)

    def _finish_hotfix(self) -> None:
        hotfix = self.state.hotfix
        assert hotfix is not None
        trunk = self._branches.trunk
        info = self._console.info

        def integrate() -> None:
            version = self._require_document().version
            (
                self._exec.enqueue(git.checkout(trunk), self._step(lambda _: info(f"merging {hotfix} into {trunk}")))
                .enqueue(
                    git.merge(hotfix, theirs=True),
                    self._step(lambda _: info(f"tagging version {version} on {trunk}"), verbose=True),
                )
                .enqueue(git.tag(version), self._step(lambda _: self._merge_hotfix_back(hotfix)))
            )

        self._read_document(hotfix, integrate)

    def _merge_hotfix_back(self, hotfix: str) -> None:
        """Bring a finished hotfix into the release branch if there is one, else develop."""
        release = self.state.release
        info = self._console.info

        if release is None:
            develop = self._branches.develop
            (
                self._exec.enqueue(git.checkout(develop), self._step(lambda _: info(f"merging {hotfix} into {develop}")))
                .enqueue(git.merge(hotfix), self._step(lambda _: info(f"removing {hotfix} branch"), verbose=True))
                .enqueue(git.delete_branch(hotfix), self._step(lambda _: self._complete(), verbose=True))
            )
            return

        def merged(_: CommandOutput) -> None:
            self._console.warning(
                "Check the results of this merge carefully! Conflicts may be auto-resolved using hotfix."
            )
            info(f"removing {hotfix} branch")

        def removed(_: CommandOutput) -> None:
            info("auto-incrementing release branch")
            self._console.print(
                'note: if you would prefer a different release version, run "ripple bump <major/minor/revision>".',
                Style.DIM,
            )
            # the merged release manifest, not the hotfix one, is what gets bumped
            if not self._load_document():
                return
            # never move the release below the version its branch already carries
            named = Version.parse(release.removeprefix(self._branches.release_prefix))
            loaded = self._require_document()
            if named is not None and named > loaded.to:
                loaded.rebase(named)
            document = self._increment("revision")
            self._write_document(
                self._complete,
                rename_to=f"{self._branches.release_prefix}{document.version}",
            )

        (
            self._exec.enqueue(git.checkout(release), self._step(lambda _: info(f"merging {hotfix} into {release}")))
            .enqueue(git.merge(hotfix, theirs=True), self._step(merged, verbose=True))
            .enqueue(git.delete_branch(hotfix), self._step(removed, verbose=True))
        )

    def _init(self, name: str, version: str) -> None:
        path = self._options.manifest
        data: StrDict = {}
        if path.exists():
            loaded = read_manifest(path)
            if isinstance(loaded, Err):
                self._halt(loaded.error.message)
                return
            data = loaded.value
        data["name"] = name
        data["version"] = version

        document = Document.from_manifest(data)
        if isinstance(document, Err):
            self._halt(document.error.message)
            return
        self.document = document.value
        self._console.info(f"writing {name} {version} to {path}")
        self._write_document(self._ensure_develop, message=f"initialize {name} at {version}")

    def _ensure_develop(self) -> None:
        develop = self._branches.develop

        def checked(outcome: Outcome, proceed: Continuation) -> None:
            # show-ref failing only means the branch is missing
            if isinstance(outcome, Ok):
                self._complete()
            else:
                self._exec.enqueue(git.HEAD_COMMIT, create)
            proceed()

        def create(outcome: Outcome, proceed: Continuation) -> None:
            # a branch needs a commit to point at
            if isinstance(outcome, Err):
                self._console.warning(
                    f'not creating "{develop}": the repository has no commits yet. '
                    f'Commit, then run "git branch {develop}".'
                )
                self._complete()
            else:
                self._console.info(f'creating "{develop}" branch')
                self._exec.enqueue(git.create_branch_here(develop), self._step(lambda _: self._complete()))
            proceed()

        self._exec.enqueue(git.branch_exists(develop), checked)


def _first_line(text: str) -> str | None:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return None


def _state_fields(state: WorkflowState) -> dict[str, object]:
    return {
        "current": state.current,
        "dirty": state.dirty,
        "release": state.release,
        "hotfix": state.hotfix,
    }
