"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import typer

from helmtree.core.errors import ErrorCode
from helmtree.core.result import Err, Result
from helmtree.output.console import Style

if TYPE_CHECKING:
    from helmtree.cli.context import CLIContext

T = TypeVar("T")
E = TypeVar("E")


def exit_on_error(
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode,
) -> None:
    """Print the error and exit if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))
