"""
zerohatch.runner - External Process Execution
=============================================

Every package manager, linter, test runner and git invocation made by the
pipeline goes through :class:`CommandRunner`. Commands are always argument
vectors handed to :func:`subprocess.run` without a shell, so project names
and descriptions typed by users can never be interpreted as shell syntax.

The runner is injected into each component's constructor. Tests pass a fake
implementation with the same two methods (``run`` and ``available``) instead
of patching ``subprocess``.

Usage Example
-------------
>>> runner = CommandRunner()
>>> result = runner.run(["git", "--version"])
>>> result.ok
True
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)

# Conventional shell exit code for "command not found"
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one external command.

    Attributes
    ----------
    argv : tuple[str, ...]
        The argument vector that was executed.

    returncode : int
        Process exit status. ``127`` if the executable could not be found.

    stdout : str
        Captured standard output (decoded as UTF-8, errors replaced).

    stderr : str
        Captured standard error.
    """

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True when the command exited with status 0."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr joined, for parsers that don't care which stream."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    def describe(self) -> str:
        """Short human-readable summary used in error messages."""
        command = " ".join(self.argv)
        if self.returncode == COMMAND_NOT_FOUND:
            return f"'{command}' could not be run (command not found)"
        tail = self.output.strip().splitlines()[-1:] if self.output.strip() else []
        suffix = f": {tail[0]}" if tail else ""
        return f"'{command}' exited with status {self.returncode}{suffix}"


class CommandRunner:
    """
    Run external commands as argument vectors.

    Parameters
    ----------
    base_env : Mapping[str, str] | None
        Extra environment variables merged into every invocation on top of
        ``os.environ``.
    """

    def __init__(self, base_env: Mapping[str, str] | None = None) -> None:
        self.base_env = dict(base_env or {})

    def available(self, tool: str) -> bool:
        """Whether ``tool`` can be found on PATH."""
        return shutil.which(tool) is not None

    def run(
        self,
        argv: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """
        Execute ``argv`` and capture its output.

        Parameters
        ----------
        argv : Sequence[str]
            Program and arguments. The program is resolved with
            :func:`shutil.which` so Windows ``.cmd`` shims work too.

        cwd : Path | None
            Working directory for the process.

        env : Mapping[str, str] | None
            Additional environment variables for this call only.

        Returns
        -------
        CommandResult
            Never raises for a failing or missing program; inspect
            ``returncode`` instead.
        """
        argv = tuple(str(part) for part in argv)
        if not argv:
            raise ValueError("Cannot run an empty command")

        executable = shutil.which(argv[0]) or argv[0]
        merged_env = {**os.environ, **self.base_env, **(env or {})}

        logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
        try:
            completed = subprocess.run(
                [executable, *argv[1:]],
                cwd=cwd,
                env=merged_env,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError:
            logger.debug("Executable not found: %s", argv[0])
            return CommandResult(argv, COMMAND_NOT_FOUND, "", f"{argv[0]}: command not found")

        result = CommandResult(
            argv,
            completed.returncode,
            completed.stdout.decode("utf-8", errors="replace"),
            completed.stderr.decode("utf-8", errors="replace"),
        )
        if not result.ok:
            logger.debug("%s", result.describe())
        return result
