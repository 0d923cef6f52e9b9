"""
zerohatch.toolchains - Per-Runtime Tool Commands and Output Parsers
===================================================================

A :class:`Toolchain` knows how to install, format, lint, type-check, test,
build and audit a project of one runtime, and how to turn each tool's output
into a :class:`CheckOutcome`. The quality enforcer and the post-generation
verifier share these definitions, so both phases count errors the same way.

Architecture
------------
::

    Toolchain (base: runner + shared helpers)
    ├── NodeToolchain     npm | yarn, eslint, tsc, prettier, jest
    └── PythonToolchain   uv | venv+pip, ruff, mypy, pytest

Node checks run through the project's ``package.json`` scripts; a check
whose script is missing is reported as skipped. Python checks run the tools
as modules through ``uv run``, the project virtualenv, or ``python3``.

Usage Example
-------------
>>> from zerohatch.runner import CommandRunner
>>> toolchain = toolchain_for(Runtime.PYTHON, CommandRunner())
>>> outcome = toolchain.typecheck(Path("/tmp/out/my-api"))
>>> outcome.errors
0
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from zerohatch.errors import QualityError
from zerohatch.models import Runtime
from zerohatch.runner import CommandResult, CommandRunner


logger = logging.getLogger(__name__)

# pytest exit status when no tests were collected
PYTEST_NO_TESTS = 5

TS_ERROR_LINE = re.compile(r"error TS\d+:")
TSC_FOUND_ERRORS = re.compile(r"Found (\d+) errors?")
MYPY_ERROR_LINE = re.compile(r": error:")
MYPY_FOUND_ERRORS = re.compile(r"Found (\d+) errors? in")

MAX_MESSAGES = 50


# =============================================================================
# Outcome Data Class
# =============================================================================


@dataclass(frozen=True)
class CheckOutcome:
    """
    Parsed result of one check.

    Attributes
    ----------
    name : str
        Check name: ``format``, ``lint``, ``typecheck``, ``test`` or ``build``.

    ok : bool
        The tool succeeded (or was skipped).

    errors : int
        Number of errors the tool reported.

    warnings : int
        Number of warnings the tool reported.

    messages : tuple[str, ...]
        Individual problems, one line each (capped).

    skipped : bool
        The project doesn't define this check.
    """

    name: str
    ok: bool
    errors: int = 0
    warnings: int = 0
    messages: tuple[str, ...] = field(default_factory=tuple)
    skipped: bool = False

    @classmethod
    def skip(cls, name: str) -> CheckOutcome:
        return cls(name=name, ok=True, skipped=True)


def _tail(result: CommandResult, lines: int = 5) -> tuple[str, ...]:
    """Last few non-empty output lines, for failures without structured output."""
    output = [line for line in result.output.splitlines() if line.strip()]
    return tuple(output[-lines:]) or (result.describe(),)


def _extract_json(text: str) -> Any:
    """
    Parse the first JSON document in ``text``.

    Package managers sometimes print banner lines around a tool's JSON
    output, so parsing starts at the first ``[`` or ``{``.

    Raises
    ------
    ValueError
        If no JSON document is found.
    """
    starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
    if not starts:
        raise ValueError("no JSON document in output")
    value, _ = json.JSONDecoder().raw_decode(text[min(starts):])
    return value


# =============================================================================
# Base Toolchain
# =============================================================================


class Toolchain:
    """
    Commands for one runtime.

    Parameters
    ----------
    runner : CommandRunner
        Executes every external command.
    """

    runtime: Runtime

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def install(self, project_dir: Path) -> str:
        """Install dependencies; return the name of the installer used."""
        raise NotImplementedError

    def format(self, project_dir: Path) -> CommandResult | None:
        """Apply the formatter in place."""
        raise NotImplementedError

    def check_format(self, project_dir: Path) -> CheckOutcome:
        raise NotImplementedError

    def lint(self, project_dir: Path, fix: bool = False) -> CheckOutcome:
        raise NotImplementedError

    def typecheck(self, project_dir: Path) -> CheckOutcome:
        raise NotImplementedError

    def test(self, project_dir: Path) -> CheckOutcome:
        raise NotImplementedError

    def build(self, project_dir: Path) -> CheckOutcome:
        raise NotImplementedError

    def audit(self, project_dir: Path) -> int:
        """Number of known-vulnerable dependencies (informational)."""
        return 0

    @staticmethod
    def _count_type_errors(
        name: str,
        result: CommandResult,
        line_pattern: re.Pattern[str],
        summary_pattern: re.Pattern[str],
    ) -> CheckOutcome:
        """Count error lines, falling back to the tool's "Found N errors" summary."""
        error_lines = [
            line.strip() for line in result.output.splitlines()
            if line_pattern.search(line)
        ]
        count = len(error_lines)
        if count == 0:
            match = summary_pattern.search(result.output)
            if match:
                count = int(match.group(1))
        if count == 0 and not result.ok:
            # Failed without parseable output: still one error
            return CheckOutcome(name, ok=False, errors=1, messages=_tail(result))
        return CheckOutcome(
            name,
            ok=result.ok and count == 0,
            errors=count,
            messages=tuple(error_lines[:MAX_MESSAGES]),
        )


# =============================================================================
# Node Toolchain
# =============================================================================


class NodeToolchain(Toolchain):
    """npm (falling back to yarn), eslint, tsc, prettier and jest via scripts."""

    runtime = Runtime.NODE

    def install(self, project_dir: Path) -> str:
        failures: list[str] = []
        for client in ("npm", "yarn"):
            if not self.runner.available(client):
                failures.append(f"{client} is not installed")
                continue
            result = self.runner.run([client, "install"], cwd=project_dir)
            if result.ok:
                logger.info("Installed dependencies with %s", client)
                return client
            failures.append(result.describe())
            logger.warning("%s install failed, trying next installer", client)

        raise QualityError("Dependency installation failed", failures)

    def format(self, project_dir: Path) -> CommandResult | None:
        if not self._has_script(project_dir, "format"):
            return None
        return self.runner.run(self._script(project_dir, "format"), cwd=project_dir)

    def check_format(self, project_dir: Path) -> CheckOutcome:
        if not self._has_script(project_dir, "format:check"):
            return CheckOutcome.skip("format")
        result = self.runner.run(self._script(project_dir, "format:check"), cwd=project_dir)
        # prettier --check prints "[warn] <file>" per file plus a summary line
        files = [
            line.removeprefix("[warn]").strip()
            for line in result.output.splitlines()
            if line.startswith("[warn]") and "Code style issues" not in line
        ]
        count = len(files)
        if count == 0 and not result.ok:
            count = 1
            files = list(_tail(result))
        return CheckOutcome(
            "format",
            ok=count == 0,
            errors=count,
            messages=tuple(f"Needs formatting: {f}" for f in files[:MAX_MESSAGES]),
        )

    def lint(self, project_dir: Path, fix: bool = False) -> CheckOutcome:
        if not self._has_script(project_dir, "lint"):
            return CheckOutcome.skip("lint")
        if fix:
            self.runner.run(self._script(project_dir, "lint", "--fix"), cwd=project_dir)

        result = self.runner.run(
            self._script(project_dir, "lint", "--format", "json"), cwd=project_dir
        )
        try:
            reports = _extract_json(result.stdout)
        except ValueError:
            if result.ok:
                return CheckOutcome("lint", ok=True)
            return CheckOutcome("lint", ok=False, errors=1, messages=_tail(result))

        errors = warnings = 0
        messages: list[str] = []
        for report in reports:
            errors += report.get("errorCount", 0)
            warnings += report.get("warningCount", 0)
            for message in report.get("messages", []):
                messages.append(
                    f"{report.get('filePath', '?')}:{message.get('line', 0)}: "
                    f"{message.get('message', '')} ({message.get('ruleId') or 'eslint'})"
                )
        return CheckOutcome(
            "lint",
            ok=errors == 0,
            errors=errors,
            warnings=warnings,
            messages=tuple(messages[:MAX_MESSAGES]),
        )

    def typecheck(self, project_dir: Path) -> CheckOutcome:
        if not self._has_script(project_dir, "typecheck"):
            return CheckOutcome.skip("typecheck")
        result = self.runner.run(self._script(project_dir, "typecheck"), cwd=project_dir)
        return self._count_type_errors("typecheck", result, TS_ERROR_LINE, TSC_FOUND_ERRORS)

    def test(self, project_dir: Path) -> CheckOutcome:
        if not self._has_script(project_dir, "test"):
            return CheckOutcome.skip("test")
        client = self._client(project_dir)
        argv = [client, "test"]
        if client == "npm":
            argv.append("--")
        argv += ["--watchAll=false", "--passWithNoTests"]
        result = self.runner.run(argv, cwd=project_dir, env={"CI": "true"})
        if result.ok:
            return CheckOutcome("test", ok=True)
        return CheckOutcome("test", ok=False, errors=1, messages=_tail(result))

    def build(self, project_dir: Path) -> CheckOutcome:
        if not self._has_script(project_dir, "build"):
            return CheckOutcome.skip("build")
        result = self.runner.run(
            [self._client(project_dir), "run", "build"], cwd=project_dir, env={"CI": "true"}
        )
        if result.ok:
            return CheckOutcome("build", ok=True)
        return CheckOutcome("build", ok=False, errors=1, messages=_tail(result))

    def audit(self, project_dir: Path) -> int:
        if self._client(project_dir) != "npm":
            return 0
        result = self.runner.run(["npm", "audit", "--json"], cwd=project_dir)
        try:
            data = _extract_json(result.stdout)
            counts = data.get("metadata", {}).get("vulnerabilities", {})
            return int(counts.get("total", sum(
                v for k, v in counts.items() if k != "info" and isinstance(v, int)
            )))
        except (ValueError, AttributeError, TypeError):
            logger.debug("Could not parse npm audit output")
            return 0

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _client(project_dir: Path) -> str:
        return "yarn" if (project_dir / "yarn.lock").exists() else "npm"

    @staticmethod
    def scripts(project_dir: Path) -> dict[str, str]:
        """The ``scripts`` map of ``package.json`` (empty if unreadable)."""
        try:
            manifest = json.loads((project_dir / "package.json").read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        scripts = manifest.get("scripts", {}) if isinstance(manifest, dict) else {}
        return scripts if isinstance(scripts, dict) else {}

    def _has_script(self, project_dir: Path, name: str) -> bool:
        return name in self.scripts(project_dir)

    def _script(self, project_dir: Path, name: str, *args: str) -> list[str]:
        if self._client(project_dir) == "yarn":
            return ["yarn", "--silent", "run", name, *args]
        argv = ["npm", "run", "--silent", name]
        if args:
            argv += ["--", *args]
        return argv


# =============================================================================
# Python Toolchain
# =============================================================================


class PythonToolchain(Toolchain):
    """uv (falling back to venv + pip), ruff, mypy and pytest."""

    runtime = Runtime.PYTHON

    def install(self, project_dir: Path) -> str:
        failures: list[str] = []
        if self.runner.available("uv"):
            result = self.runner.run(["uv", "sync", "--extra", "dev"], cwd=project_dir)
            if result.ok:
                logger.info("Installed dependencies with uv")
                return "uv"
            failures.append(result.describe())
            logger.warning("uv sync failed, falling back to venv + pip")
        else:
            failures.append("uv is not installed")

        venv = self.runner.run(["python3", "-m", "venv", ".venv"], cwd=project_dir)
        if not venv.ok:
            failures.append(venv.describe())
            raise QualityError("Dependency installation failed", failures)

        pip = self.runner.run(
            [str(self._venv_python(project_dir)), "-m", "pip", "install", "-e", ".[dev]"],
            cwd=project_dir,
        )
        if not pip.ok:
            failures.append(pip.describe())
            raise QualityError("Dependency installation failed", failures)

        logger.info("Installed dependencies with pip into .venv")
        return "pip"

    def format(self, project_dir: Path) -> CommandResult | None:
        return self.runner.run(self._module(project_dir, "ruff", "format", "."), cwd=project_dir)

    def check_format(self, project_dir: Path) -> CheckOutcome:
        result = self.runner.run(
            self._module(project_dir, "ruff", "format", "--check", "."), cwd=project_dir
        )
        files = [
            line.removeprefix("Would reformat:").strip()
            for line in result.output.splitlines()
            if line.startswith("Would reformat")
        ]
        count = len(files)
        if count == 0 and not result.ok:
            count = 1
            files = list(_tail(result))
        return CheckOutcome(
            "format",
            ok=count == 0,
            errors=count,
            messages=tuple(f"Needs formatting: {f}" for f in files[:MAX_MESSAGES]),
        )

    def lint(self, project_dir: Path, fix: bool = False) -> CheckOutcome:
        if fix:
            self.runner.run(self._module(project_dir, "ruff", "check", "--fix", "."), cwd=project_dir)

        result = self.runner.run(
            self._module(project_dir, "ruff", "check", "--output-format", "json", "."),
            cwd=project_dir,
        )
        try:
            diagnostics = _extract_json(result.stdout)
        except ValueError:
            if result.ok:
                return CheckOutcome("lint", ok=True)
            return CheckOutcome("lint", ok=False, errors=1, messages=_tail(result))

        messages = [
            f"{d.get('filename', '?')}:{(d.get('location') or {}).get('row', 0)}: "
            f"{d.get('code') or 'ruff'} {d.get('message', '')}"
            for d in diagnostics
        ]
        return CheckOutcome(
            "lint",
            ok=not diagnostics,
            errors=len(diagnostics),
            messages=tuple(messages[:MAX_MESSAGES]),
        )

    def typecheck(self, project_dir: Path) -> CheckOutcome:
        result = self.runner.run(self._module(project_dir, "mypy", "src"), cwd=project_dir)
        return self._count_type_errors("typecheck", result, MYPY_ERROR_LINE, MYPY_FOUND_ERRORS)

    def test(self, project_dir: Path) -> CheckOutcome:
        result = self.runner.run(self._module(project_dir, "pytest", "-q"), cwd=project_dir)
        if result.ok:
            return CheckOutcome("test", ok=True)
        if result.returncode == PYTEST_NO_TESTS:
            return CheckOutcome("test", ok=True, messages=("No tests were collected",))
        return CheckOutcome("test", ok=False, errors=1, messages=_tail(result))

    def build(self, project_dir: Path) -> CheckOutcome:
        # Python stacks have no build step; the verifier compiles sources itself
        return CheckOutcome.skip("build")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _venv_python(project_dir: Path) -> Path:
        posix = project_dir / ".venv" / "bin" / "python"
        windows = project_dir / ".venv" / "Scripts" / "python.exe"
        return windows if windows.exists() and not posix.exists() else posix

    def _module(self, project_dir: Path, *argv: str) -> list[str]:
        """Run ``python -m <argv>`` in the project's environment."""
        if (project_dir / "uv.lock").exists() and self.runner.available("uv"):
            return ["uv", "run", "python", "-m", *argv]
        venv_python = self._venv_python(project_dir)
        if venv_python.exists():
            return [str(venv_python), "-m", *argv]
        return ["python3", "-m", *argv]


# =============================================================================
# Factory
# =============================================================================

TOOLCHAINS: dict[Runtime, type[Toolchain]] = {
    Runtime.NODE: NodeToolchain,
    Runtime.PYTHON: PythonToolchain,
}


def toolchain_for(runtime: Runtime, runner: CommandRunner) -> Toolchain:
    """Instantiate the toolchain for ``runtime``."""
    return TOOLCHAINS[runtime](runner)
