from __future__ import annotations

import asyncio
from pathlib import Path
from typing import NoReturn

import typer

from ripple import __version__
from ripple.cli.context import CLIContext, GlobalOptions, build_context
from ripple.core.errors import ErrorCode
from ripple.core.logging import setup_logging
from ripple.core.result import Err, Ok, Result
from ripple.exec.executor import SequentialExecutor
from ripple.flow.controller import WorkflowController
from ripple.flow.errors import WorkflowError
from ripple.flow.operations import Operation, Status, parse_bump, parse_finish, parse_init, parse_start

NO_OPERATION_MESSAGE = "Use --help for command line options."

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    rich_markup_mode="rich",
    help="Git-flow branches and manifest version bumps.",
)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    package: Path | None = typer.Option(
        None,
        "--package",
        "-p",
        help="Relative path of the JSON manifest to modify [./package.json]",
    ),
    no_commit: bool = typer.Option(False, "--no-commit", "-x", help="Do not commit version changes automatically"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show verbose git output"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Show debug output"),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    setup_logging("debug" if debug else "warning")
    ctx.obj = GlobalOptions(package=package, commit=not no_commit, verbose=verbose, debug=debug)

    if ctx.invoked_subcommand is None:
        typer.echo(NO_OPERATION_MESSAGE)
        raise typer.Exit(code=int(ErrorCode.OK))


async def _execute(cli: CLIContext, operation: Operation) -> int:
    executor = SequentialExecutor(cwd=cli.cwd, timeout=cli.config.command_timeout)
    controller = WorkflowController(executor, cli.console, cli.options, config=cli.config)
    return await controller.run(operation)


def _run(ctx: typer.Context, parsed: Result[Operation, WorkflowError]) -> NoReturn:
    cli = build_context(ctx.obj)
    if isinstance(parsed, Err):
        cli.console.error(parsed.error.message)
        if parsed.error.hint:
            cli.console.print(f"hint: {parsed.error.hint}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    code = asyncio.run(_execute(cli, parsed.value))
    raise typer.Exit(code=code)


@app.command()
def status(ctx: typer.Context) -> None:
    """Output current status of the active project."""
    _run(ctx, Ok(Status()))


@app.command()
def start(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Branch type: feature, release, or hotfix"),
    name: str | None = typer.Argument(None, help="Name of the new feature branch"),
    bump_part: str = typer.Option("revision", "--bump", "-b", help="Release only: major, minor, or revision"),
) -> None:
    """Create a new branch of type "feature", "release", or "hotfix".

    If it's a feature branch, provide a name.
    """
    _run(ctx, parse_start(kind, name, bump_part))


@app.command()
def bump(
    ctx: typer.Context,
    part: str = typer.Argument(..., help="major, minor, or revision"),
) -> None:
    """Bump version number while on a release branch."""
    _run(ctx, parse_bump(part))


@app.command()
def finish(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Branch type: feature, release, or hotfix"),
) -> None:
    """Finish and merge the current feature, release or hotfix branch. [u]Always commits![/u]"""
    _run(ctx, parse_finish(kind))


@app.command()
def init(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Project name written to the manifest"),
    version: str | None = typer.Argument(None, help="Initial version [0.1.0]"),
) -> None:
    """Write name and version to the manifest and make sure a develop branch exists."""
    _run(ctx, parse_init(name, version))


def main() -> None:
    app()
