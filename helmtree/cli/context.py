from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from helmtree.core.config import Config, load_config, load_config_or_default
from helmtree.core.errors import ErrorCode
from helmtree.core.result import Err
from helmtree.output.console import ConsoleProtocol, RichConsole
from helmtree.platform.paths import default_config_path


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol


def build_context(config_path: Path | None = None, *, stderr: bool = False) -> CLIContext:
    """Load configuration and create the console.

    An explicit ``config_path`` must exist; the default location is optional.
    """
    if config_path is not None:
        config_result = load_config(config_path.expanduser())
    else:
        config_result = load_config_or_default(default_config_path())

    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(config=config_result.value, console=RichConsole(stderr=stderr))
