"""Subprocess execution with Result-based error handling.

All helm and kubectl invocations go through ``run``: output is captured,
a timeout is always applicable, and failures come back as ``ProcessError``
values instead of exceptions.

Usage:
    match run(["helm", "version", "--short"], timeout=10):
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(f"helm failed: {error.stderr}")
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from helmtree.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "which"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, -1 when the process could not run or timed out.
        stdout: Standard output (may be empty).
        stderr: Standard error, or a synthesized reason.
        timed_out: True when the timeout expired.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        if self.timed_out:
            return f"{cmd_str} timed out"
        return f"{cmd_str} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """First non-empty stderr line, for one-line reports."""
        for line in self.stderr.splitlines():
            if line.strip():
                return line.strip()
        return str(self)


def run(
    cmd: list[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory (current directory if None).
        env: Environment variables (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd is not None else None,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=stdout,
                stderr=f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def which(name: str) -> Path | None:
    """Locate an executable on PATH (or accept an explicit path)."""
    found = shutil.which(name)
    return Path(found) if found else None
