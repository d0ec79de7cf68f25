"""Asynchronous shell command execution with Result-based error handling.

Each command line is handed verbatim to the system shell, so it may use
`&&` and pipes. Output is captured as text and returned as a Result:

    outcome = await ShellRunner(cwd=repo)("git status --porcelain")
    match outcome:
        case Ok(output):
            print(output.stdout)
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ripple.core.result import Err, Ok, Result

__all__ = ["CommandOutput", "CommandRunner", "Outcome", "ProcessError", "ShellRunner"]


@dataclass(frozen=True, slots=True)
class CommandOutput:
    """Captured output of a command that exited 0."""

    command: str
    stdout: str
    stderr: str = ""


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed command.

    Attributes:
        command: The shell command line that was executed.
        returncode: Exit code, or -1 when the process could not be spawned
            or was killed after a timeout.
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def message(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or str(self)

    def __str__(self) -> str:
        cmd_str = self.command if len(self.command) <= 60 else self.command[:57] + "..."
        return f"{cmd_str} failed (exit {self.returncode})"


type Outcome = Result[CommandOutput, ProcessError]


class CommandRunner(Protocol):
    """Anything that can run one shell command line to completion."""

    async def __call__(self, command: str) -> Outcome: ...


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class ShellRunner:
    """Runs command lines through the system shell.

    Args:
        cwd: Working directory for every command (current directory if None).
        timeout: Maximum seconds per command (None for no limit).
    """

    def __init__(self, cwd: Path | None = None, *, timeout: float | None = None) -> None:
        self.cwd = cwd
        self.timeout = timeout

    async def __call__(self, command: str) -> Outcome:
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=str(self.cwd) if self.cwd is not None else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            return Err(
                ProcessError(
                    command=command,
                    returncode=-1,
                    stdout="",
                    stderr=f"Command timed out after {self.timeout}s",
                )
            )

        if proc.returncode != 0:
            return Err(
                ProcessError(
                    command=command,
                    returncode=proc.returncode if proc.returncode is not None else -1,
                    stdout=_decode(stdout),
                    stderr=_decode(stderr),
                )
            )

        return Ok(CommandOutput(command=command, stdout=_decode(stdout), stderr=_decode(stderr)))
