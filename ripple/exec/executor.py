"""Sequential command executor.

Runs shell commands strictly one at a time, in the order they were
enqueued, and lets each command's handler decide when the next one may
start. A chain is built up front and starts on the next event-loop
iteration:

    async def main() -> None:
        executor = SequentialExecutor(cwd=repo)

        def on_status(outcome: Outcome, proceed: Continuation) -> None:
            match outcome:
                case Ok(output):
                    print(output.stdout)
                    proceed()
                case Err(error):
                    print(error.message)  # no proceed(): the chain stops here

        executor.enqueue("git status --porcelain", on_status).enqueue(
            "git rev-parse --abbrev-ref HEAD", on_branch
        )
        await executor.join()

Handlers may enqueue more commands before calling `proceed`; those are
appended to the tail of the queue like any other command.

Usage with await instead of callbacks:

    outcome = await executor.submit("git rev-parse --abbrev-ref HEAD")
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Self

from ripple.core.logging import get_logger
from ripple.platform.process import CommandRunner, Outcome, ShellRunner

__all__ = ["Continuation", "ContinuationError", "Handler", "SequentialExecutor"]

_log = get_logger("exec")


class ContinuationError(RuntimeError):
    """A continuation was invoked twice, or for a job that is not in flight."""


type Handler = Callable[[Outcome, Continuation], Awaitable[None] | None]


@dataclass(slots=True)
class _Job:
    seq: int
    command: str
    handler: Handler


class Continuation:
    """Single-use permission for the executor to move past one job.

    Handed to every handler as its second argument. Calling it is the only
    way to start the next queued command.
    """

    __slots__ = ("_executor", "_job", "_used")

    def __init__(self, executor: SequentialExecutor, job: _Job) -> None:
        self._executor = executor
        self._job = job
        self._used = False

    @property
    def used(self) -> bool:
        return self._used

    def __call__(self) -> None:
        if self._used:
            raise ContinuationError(
                f"continuation for job #{self._job.seq} ({self._job.command!r}) invoked twice"
            )
        self._used = True
        self._executor._advance(self._job)

    def __repr__(self) -> str:
        return f"Continuation(job={self._job.seq}, used={self._used})"


class SequentialExecutor:
    """Single-slot command queue with explicit continuations.

    Guarantees:
    - commands run in `enqueue` order (FIFO), including commands enqueued
      by a handler while its own job is in flight;
    - at most one command is in flight;
    - command N+1 never starts before command N's handler called its
      continuation. A handler that never calls it stalls the queue for good.

    Failed commands are not special: the handler receives an `Err` outcome
    and decides whether to continue.

    Args:
        runner: Async callable running one command line. Defaults to a
            `ShellRunner` built from `cwd` and `timeout`.
        cwd: Working directory for the default runner.
        timeout: Per-command timeout in seconds for the default runner.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> None:
        self._runner: CommandRunner = runner if runner is not None else ShellRunner(cwd, timeout=timeout)
        self._queue: deque[_Job] = deque()
        self._current: _Job | None = None
        self._scheduled = False
        self._submitted = 0
        self._task: asyncio.Task[None] | None = None
        self._failure: Exception | None = None
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def pending(self) -> int:
        """Number of queued commands not yet started."""
        return len(self._queue)

    @property
    def in_flight(self) -> bool:
        """True while a command runs or its handler has not continued yet."""
        return self._current is not None

    @property
    def idle(self) -> bool:
        return self._current is None and not self._queue

    def enqueue(self, command: str, handler: Handler) -> Self:
        """Append a command and its completion handler to the queue.

        Must be called with a running event loop. The first command of an
        idle queue starts on the next loop iteration, never inside this call.

        Raises:
            ValueError: If command is empty.
            TypeError: If handler is not callable.
        """
        if not isinstance(command, str) or not command.strip():
            raise ValueError("command must be a non-empty string")
        if not callable(handler):
            raise TypeError("handler must be callable")
        loop = asyncio.get_running_loop()

        self._submitted += 1
        job = _Job(seq=self._submitted, command=command, handler=handler)
        self._queue.append(job)
        if self._failure is None:
            self._settled.clear()
        _log.debug("enqueue", job=job.seq, command=command, pending=len(self._queue))

        if self._current is None and not self._scheduled:
            self._scheduled = True
            loop.call_soon(self._start_next)
        return self

    async def submit(self, command: str) -> Outcome:
        """Enqueue a command and wait for its outcome.

        The queue continues automatically once the outcome is delivered.
        """
        future: asyncio.Future[Outcome] = asyncio.get_running_loop().create_future()

        def resolve(outcome: Outcome, proceed: Continuation) -> None:
            if not future.done():
                future.set_result(outcome)
            proceed()

        self.enqueue(command, resolve)
        return await future

    async def join(self) -> None:
        """Wait until the queue is drained.

        A stalled queue never drains, so this waits forever in that case.

        Raises:
            Exception: The first exception raised by a handler (or runner).
        """
        await self._settled.wait()
        if self._failure is not None:
            raise self._failure

    def _start_next(self) -> None:
        self._scheduled = False
        if not self._queue:
            _log.debug("drained", submitted=self._submitted)
            self._settled.set()
            return

        job = self._queue.popleft()
        self._current = job
        _log.debug("exec", job=job.seq, command=job.command, remaining=len(self._queue))
        self._task = asyncio.ensure_future(self._run(job))

    async def _run(self, job: _Job) -> None:
        try:
            outcome = await self._runner(job.command)
            _log.debug("done", job=job.seq, ok=outcome.is_ok())
            result = job.handler(outcome, Continuation(self, job))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            _log.debug("handler failed", job=job.seq, error=repr(e))
            if self._failure is None:
                self._failure = e
            self._settled.set()

    def _advance(self, job: _Job) -> None:
        if self._current is not job:
            raise ContinuationError(f"job #{job.seq} ({job.command!r}) is not in flight")
        self._current = None
        _log.debug("continue", job=job.seq, pending=len(self._queue))
        if not self._scheduled:
            self._scheduled = True
            asyncio.get_running_loop().call_soon(self._start_next)
