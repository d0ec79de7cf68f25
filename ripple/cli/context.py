from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from ripple.core.config import Config, load_config_or_default
from ripple.core.errors import ErrorCode
from ripple.core.result import Err
from ripple.flow.state import RunOptions
from ripple.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options given before the subcommand."""

    package: Path | None = None
    commit: bool = True
    verbose: bool = False
    debug: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    config: Config
    options: RunOptions
    console: ConsoleProtocol


def build_context(global_options: GlobalOptions | None, *, cwd: Path | None = None) -> CLIContext:
    root = cwd if cwd is not None else Path.cwd()
    opts = global_options if global_options is not None else GlobalOptions()

    config_result = load_config_or_default(root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    config = config_result.value

    manifest = opts.package if opts.package is not None else Path(config.manifest)
    if not manifest.is_absolute():
        manifest = root / manifest

    return CLIContext(
        cwd=root,
        config=config,
        options=RunOptions(manifest=manifest.resolve(), commit=opts.commit, verbose=opts.verbose),
        console=RichConsole(),
    )
