"""
zerohatch.verifier - Post-Generation Verification
=================================================

The verifier is the last line of defense before a staged project is
promoted. It does not trust the earlier phases: every check re-reads the
filesystem or re-runs the toolchain itself.

Checks Performed
----------------
1. Every file the generator reported exists
2. Stack essentials exist (missing files are errors, missing directories
   warnings)
3. The manifest parses and names the project
4. The project builds (``npm run build``, or compiling every Python source)
5. Tests pass (having no tests is only a warning)
6. ``.git`` and ``.gitignore`` exist
7. Type-check, lint and format checks report zero errors
"""

from __future__ import annotations

import json
import logging
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from zerohatch.models import ProjectConfig, ProjectType, Runtime
from zerohatch.runner import CommandRunner
from zerohatch.toolchains import Toolchain, toolchain_for


logger = logging.getLogger(__name__)

ESSENTIAL_FILES: dict[Runtime, tuple[str, ...]] = {
    Runtime.NODE: ("README.md", ".gitignore", "package.json", "tsconfig.json"),
    Runtime.PYTHON: ("README.md", ".gitignore", "pyproject.toml", "requirements.txt"),
}

ESSENTIAL_DIRS: dict[ProjectType, tuple[str, ...]] = {
    ProjectType.REACT_TYPESCRIPT: ("src", "public"),
    ProjectType.NEXTJS: ("src", "public"),
    ProjectType.EXPRESS_TYPESCRIPT: ("src",),
    ProjectType.PYTHON_FASTAPI: ("src", "tests"),
    ProjectType.PYTHON_CLI: ("src", "tests"),
}

# Directories never scanned for sources
IGNORED_DIRS = frozenset({".venv", "venv", "node_modules", ".git", "build", "dist"})


@dataclass
class VerificationResult:
    """
    Result of verifying a staged project.

    Attributes
    ----------
    success : bool
        True iff ``errors`` is empty.

    errors : list[str]
        Problems that block promotion.

    warnings : list[str]
        Observations that don't.
    """

    success: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class PostGenerationVerifier:
    """
    Independently verify a generated project.

    Parameters
    ----------
    runner : CommandRunner | None
        Executes the toolchain for the build, test and static checks.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def verify(
        self,
        project_dir: Path,
        config: ProjectConfig,
        generated_files: Iterable[str],
    ) -> VerificationResult:
        """
        Run every check against ``project_dir``.

        Parameters
        ----------
        project_dir : Path
            Staged project root.

        config : ProjectConfig
            Configuration the project was generated from.

        generated_files : Iterable[str]
            Relative paths reported by the code generator.

        Returns
        -------
        VerificationResult
            Unexpected exceptions are reported as an error entry, never
            raised.
        """
        result = VerificationResult()
        try:
            toolchain = toolchain_for(config.type.runtime, self.runner)
            self._check_generated_files(project_dir, generated_files, result)
            self._check_essentials(project_dir, config.type, result)
            self._check_manifest(project_dir, config, result)
            self._check_build(project_dir, config.type, toolchain, result)
            self._check_tests(project_dir, toolchain, result)
            self._check_git(project_dir, result)
            self._check_static(project_dir, toolchain, result)
        except Exception as e:
            logger.exception("Verification raised unexpectedly")
            result.errors.append(f"Verification error: {e}")

        result.success = not result.errors
        if result.success:
            logger.info("Verification passed for %s", project_dir)
        else:
            logger.info("Verification found %d error(s)", len(result.errors))
        return result

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_generated_files(
        project_dir: Path, files: Iterable[str], result: VerificationResult
    ) -> None:
        for relative in files:
            if not (project_dir / relative).is_file():
                result.errors.append(f"Generated file missing: {relative}")

    @staticmethod
    def _check_essentials(
        project_dir: Path, project_type: ProjectType, result: VerificationResult
    ) -> None:
        for name in ESSENTIAL_FILES[project_type.runtime]:
            if not (project_dir / name).is_file():
                result.errors.append(f"Missing essential file: {name}")
        for name in ESSENTIAL_DIRS[project_type]:
            if not (project_dir / name).is_dir():
                result.warnings.append(f"Missing directory: {name}")

    @staticmethod
    def _check_manifest(
        project_dir: Path, config: ProjectConfig, result: VerificationResult
    ) -> None:
        if config.type.runtime is Runtime.NODE:
            path = project_dir / "package.json"
            if not path.exists():
                return
            try:
                manifest = json.loads(path.read_text(encoding="utf-8"))
            except ValueError as e:
                result.errors.append(f"Invalid package.json: {e}")
                return
            if not manifest.get("name") or not manifest.get("version"):
                result.errors.append("package.json must declare name and version")
            elif manifest["name"] != config.name:
                result.errors.append(
                    f"package.json name '{manifest['name']}' does not match '{config.name}'"
                )
            return

        path = project_dir / "pyproject.toml"
        if not path.exists():
            return
        try:
            with path.open("rb") as f:
                project = tomllib.load(f).get("project", {})
        except tomllib.TOMLDecodeError as e:
            result.errors.append(f"Invalid pyproject.toml: {e}")
            return
        if not project.get("name") or not project.get("version"):
            result.errors.append("pyproject.toml must declare project name and version")

    @staticmethod
    def _check_build(
        project_dir: Path,
        project_type: ProjectType,
        toolchain: Toolchain,
        result: VerificationResult,
    ) -> None:
        if project_type.runtime is Runtime.NODE:
            build = toolchain.build(project_dir)
            if not build.ok:
                result.errors.append("Build failed")
                result.errors.extend(build.messages)
            return

        for source in _python_sources(project_dir):
            try:
                compile(source.read_text(encoding="utf-8"), str(source), "exec")
            except SyntaxError as e:
                result.errors.append(
                    f"Syntax error in {source.relative_to(project_dir)}: {e.msg} (line {e.lineno})"
                )

    @staticmethod
    def _check_tests(
        project_dir: Path, toolchain: Toolchain, result: VerificationResult
    ) -> None:
        tests = toolchain.test(project_dir)
        if tests.skipped:
            result.warnings.append("No test command configured")
        elif not tests.ok:
            result.errors.append("Tests failed")
            result.errors.extend(tests.messages)
        elif tests.messages:
            # Passed with a note, e.g. no tests collected
            result.warnings.extend(tests.messages)

    @staticmethod
    def _check_git(project_dir: Path, result: VerificationResult) -> None:
        if not (project_dir / ".git").is_dir():
            result.errors.append("Git repository not initialized")
        if not (project_dir / ".gitignore").is_file():
            result.errors.append("Missing .gitignore")

    @staticmethod
    def _check_static(
        project_dir: Path, toolchain: Toolchain, result: VerificationResult
    ) -> None:
        for outcome in (
            toolchain.typecheck(project_dir),
            toolchain.lint(project_dir),
            toolchain.check_format(project_dir),
        ):
            if outcome.errors or not outcome.ok:
                result.errors.append(
                    f"{outcome.name} reported {max(outcome.errors, 1)} error(s)"
                )
                result.errors.extend(outcome.messages[:10])
            elif outcome.warnings:
                result.warnings.append(f"{outcome.name} reported {outcome.warnings} warning(s)")


def _python_sources(project_dir: Path) -> list[Path]:
    return sorted(
        path for path in project_dir.rglob("*.py")
        if not IGNORED_DIRS.intersection(path.relative_to(project_dir).parts)
    )
