"""
zerohatch.quality - Quality Enforcement and Reporting
=====================================================

This module drives a staged project's toolchain to a zero-error state and
measures the result.

Enforcement Steps
-----------------
1. **Install** dependencies (npm, then yarn; uv, then venv + pip)
2. **Format** the sources in place (auto-fix)
3. **Lint** with auto-fix, then count what remains
4. **Type-check**: any error is fatal, strict mode or not
5. **Test**: a failure is fatal in strict mode, an issue otherwise
6. **Hooks**: husky + lint-staged (Node) or ``.pre-commit-config.yaml``
   (Python)
7. **Report**: in strict mode a report that doesn't pass aborts the run

Zero-Error Rule
---------------
``QualityReport.passed`` is a pure function of the metrics:

    type_errors == lint_errors == formatting_issues == 0
    and tests_passing and build_successful

Lint warnings and dependency vulnerabilities are informational.

Usage
-----
>>> from zerohatch.quality import QualityEnforcer
>>> enforcer = QualityEnforcer()
>>> result = enforcer.enforce(Path("/tmp/staging/my-app"), ProjectType.NEXTJS)
>>> result.report.passed
True

See Also
--------
- toolchains.py: Commands and output parsers per runtime
- verifier.py: Re-runs the same checks independently
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from zerohatch.errors import QualityError
from zerohatch.hooks import PRE_COMMIT_CONFIG, husky_hooks, lint_staged
from zerohatch.models import ProjectType, Runtime
from zerohatch.runner import CommandRunner
from zerohatch.toolchains import CheckOutcome, Toolchain, toolchain_for


logger = logging.getLogger(__name__)

LOCATION = re.compile(r"^(?P<file>[^:\s]+):(?P<line>\d+):\s*(?P<message>.*)$")


# =============================================================================
# Enumerations
# =============================================================================


class Severity(str, Enum):
    """How much a quality issue matters."""

    INFO = "info"  # Informational only
    WARNING = "warning"  # Does not fail the gate
    ERROR = "error"  # Fails the gate


class IssueCategory(str, Enum):
    """Which check produced an issue."""

    INSTALL = "install"
    FORMAT = "format"
    LINT = "lint"
    TYPECHECK = "typecheck"
    TEST = "test"
    BUILD = "build"
    DEPENDENCIES = "dependencies"
    HOOKS = "hooks"


# =============================================================================
# Report Data Classes
# =============================================================================


@dataclass
class QualityIssue:
    """
    One problem found by a check.

    Attributes
    ----------
    severity : Severity
        ERROR issues fail the quality gate.

    category : IssueCategory
        Check that reported the issue.

    message : str
        Human-readable description.

    file : str | None
        File the issue refers to, if known.

    line : int | None
        Line number, if known.
    """

    severity: Severity
    category: IssueCategory
    message: str
    file: str | None = None
    line: int | None = None

    def __str__(self) -> str:
        location = f"{self.file}:{self.line}: " if self.file and self.line else ""
        return f"[{self.category.value}] {location}{self.message}"


@dataclass
class QualityMetrics:
    """Counts and pass/fail flags measured for a project."""

    type_errors: int = 0
    lint_errors: int = 0
    lint_warnings: int = 0
    formatting_issues: int = 0
    tests_passing: bool = True
    build_successful: bool = True
    dependency_vulnerabilities: int = 0


@dataclass
class QualityReport:
    """
    Quality measurement of one project.

    Attributes
    ----------
    project_type : ProjectType
        Stack that was measured.

    timestamp : datetime
        When the report was generated (UTC).

    metrics : QualityMetrics
        Measured values.

    issues : list[QualityIssue]
        Every problem found.
    """

    project_type: ProjectType
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metrics: QualityMetrics = field(default_factory=QualityMetrics)
    issues: list[QualityIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True iff no errors remain and tests and build succeeded."""
        m = self.metrics
        return (
            m.type_errors == 0
            and m.lint_errors == 0
            and m.formatting_issues == 0
            and m.tests_passing
            and m.build_successful
        )

    @property
    def errors(self) -> list[QualityIssue]:
        return [i for i in self.issues if i.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[QualityIssue]:
        return [i for i in self.issues if i.severity is Severity.WARNING]


@dataclass
class EnforcementResult:
    """
    Outcome of :meth:`QualityEnforcer.enforce`.

    Attributes
    ----------
    report : QualityReport
        Final measurement after all fixes were applied.

    issues : list[QualityIssue]
        Issues collected while enforcing (non-fatal ones in non-strict mode).

    installer : str
        Package manager that installed the dependencies.
    """

    report: QualityReport
    issues: list[QualityIssue] = field(default_factory=list)
    installer: str = ""


# =============================================================================
# Helpers
# =============================================================================


def outcome_issues(
    outcome: CheckOutcome,
    category: IssueCategory,
    severity: Severity | None = None,
) -> list[QualityIssue]:
    """
    Convert a check outcome into issues, one per message.

    ``file:line: message`` style messages are split into their parts.
    """
    if severity is None:
        severity = Severity.ERROR if outcome.errors or not outcome.ok else Severity.WARNING

    issues = []
    for message in outcome.messages:
        match = LOCATION.match(message)
        if match:
            issues.append(QualityIssue(
                severity, category, match["message"], match["file"], int(match["line"])
            ))
        else:
            issues.append(QualityIssue(severity, category, message))

    if not issues and not outcome.ok:
        issues.append(QualityIssue(severity, category, f"{outcome.name} failed"))
    return issues


def detect_project_type(project_dir: Path) -> ProjectType:
    """
    Infer the stack from the project's manifest.

    Raises
    ------
    QualityError
        If neither ``package.json`` nor ``pyproject.toml`` identifies a
        supported stack.
    """
    package_json = project_dir / "package.json"
    if package_json.exists():
        try:
            manifest = json.loads(package_json.read_text(encoding="utf-8"))
        except ValueError as e:
            raise QualityError("Could not detect project type", [f"package.json: {e}"]) from e
        deps = {**manifest.get("dependencies", {}), **manifest.get("devDependencies", {})}
        if "next" in deps:
            return ProjectType.NEXTJS
        if "react" in deps:
            return ProjectType.REACT_TYPESCRIPT
        if "express" in deps:
            return ProjectType.EXPRESS_TYPESCRIPT

    pyproject = project_dir / "pyproject.toml"
    if pyproject.exists():
        text = pyproject.read_text(encoding="utf-8")
        if re.search(r"""["']fastapi""", text):
            return ProjectType.PYTHON_FASTAPI
        return ProjectType.PYTHON_CLI

    raise QualityError(
        "Could not detect project type",
        [f"No recognizable package.json or pyproject.toml in {project_dir}"],
    )


# =============================================================================
# Quality Enforcer
# =============================================================================


class QualityEnforcer:
    """
    Bring a project to the zero-error state and measure it.

    Parameters
    ----------
    runner : CommandRunner | None
        Executes the toolchain. Defaults to a real :class:`CommandRunner`.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def enforce(
        self,
        project_dir: Path,
        project_type: ProjectType,
        strict_mode: bool = True,
        auto_fix: bool = True,
        install_hooks: bool = True,
    ) -> EnforcementResult:
        """
        Run the enforcement steps on ``project_dir``.

        Parameters
        ----------
        project_dir : Path
            Staged project root.

        project_type : ProjectType
            Stack of the project.

        strict_mode : bool, default=True
            Abort on failing tests and on a report that doesn't pass.

        auto_fix : bool, default=True
            Apply the formatter and the linter's fixes before measuring.

        install_hooks : bool, default=True
            Write the project's commit hook configuration.

        Returns
        -------
        EnforcementResult
            Final report, collected issues and the installer used.

        Raises
        ------
        QualityError
            On installation failure, any type error, failing tests in strict
            mode, or a failing report in strict mode.
        """
        toolchain = toolchain_for(project_type.runtime, self.runner)
        issues: list[QualityIssue] = []

        logger.info("Installing dependencies")
        installer = toolchain.install(project_dir)

        if auto_fix:
            logger.info("Formatting sources")
            result = toolchain.format(project_dir)
            if result is not None and not result.ok:
                issues.append(QualityIssue(
                    Severity.WARNING, IssueCategory.FORMAT,
                    f"Formatter did not complete: {result.describe()}",
                ))

        logger.info("Linting")
        lint = toolchain.lint(project_dir, fix=auto_fix)
        issues.extend(outcome_issues(lint, IssueCategory.LINT))

        logger.info("Type-checking")
        typecheck = toolchain.typecheck(project_dir)
        if not typecheck.ok:
            raise QualityError(
                f"Quality enforcement failed: {typecheck.errors} type error(s)",
                [str(i) for i in outcome_issues(typecheck, IssueCategory.TYPECHECK)],
            )

        logger.info("Running tests")
        tests = toolchain.test(project_dir)
        if not tests.ok:
            test_issues = outcome_issues(tests, IssueCategory.TEST)
            if strict_mode:
                raise QualityError(
                    "Quality enforcement failed: tests failed",
                    [str(i) for i in test_issues],
                )
            issues.extend(test_issues)

        if install_hooks:
            logger.info("Installing commit hooks")
            issues.extend(self._install_hooks(project_dir, project_type.runtime))

        report = self.generate_report(project_dir, project_type, toolchain=toolchain)
        if strict_mode and not report.passed:
            raise QualityError(
                "Quality enforcement failed: project has errors",
                [str(i) for i in report.errors] or ["Quality report did not pass"],
            )

        return EnforcementResult(report=report, issues=issues, installer=installer)

    def generate_report(
        self,
        project_dir: Path,
        project_type: ProjectType | None = None,
        toolchain: Toolchain | None = None,
    ) -> QualityReport:
        """
        Measure ``project_dir`` without changing it.

        Parameters
        ----------
        project_dir : Path
            Project root.

        project_type : ProjectType | None
            Stack; detected from the manifest when omitted.

        Returns
        -------
        QualityReport
            Metrics and issues. The build is skipped (and counted as
            successful) for stacks without a build step.
        """
        if project_type is None:
            project_type = detect_project_type(project_dir)
        if toolchain is None:
            toolchain = toolchain_for(project_type.runtime, self.runner)

        typecheck = toolchain.typecheck(project_dir)
        lint = toolchain.lint(project_dir)
        fmt = toolchain.check_format(project_dir)
        tests = toolchain.test(project_dir)
        if project_type.has_build_step:
            build = toolchain.build(project_dir)
        else:
            build = CheckOutcome.skip("build")
        vulnerabilities = toolchain.audit(project_dir)

        metrics = QualityMetrics(
            type_errors=typecheck.errors,
            lint_errors=lint.errors,
            lint_warnings=lint.warnings,
            formatting_issues=fmt.errors,
            tests_passing=tests.ok,
            build_successful=build.ok,
            dependency_vulnerabilities=vulnerabilities,
        )

        issues: list[QualityIssue] = []
        issues += outcome_issues(typecheck, IssueCategory.TYPECHECK)
        issues += outcome_issues(lint, IssueCategory.LINT)
        issues += outcome_issues(fmt, IssueCategory.FORMAT)
        issues += outcome_issues(tests, IssueCategory.TEST)
        issues += outcome_issues(build, IssueCategory.BUILD)
        if vulnerabilities:
            issues.append(QualityIssue(
                Severity.INFO, IssueCategory.DEPENDENCIES,
                f"{vulnerabilities} known vulnerabilities in dependencies",
            ))

        report = QualityReport(project_type=project_type, metrics=metrics, issues=issues)
        logger.info(
            "Quality report: passed=%s type=%d lint=%d format=%d tests=%s build=%s",
            report.passed, metrics.type_errors, metrics.lint_errors,
            metrics.formatting_issues, metrics.tests_passing, metrics.build_successful,
        )
        return report

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def _install_hooks(self, project_dir: Path, runtime: Runtime) -> list[QualityIssue]:
        """Write commit hook configuration; problems are returned as warnings."""
        try:
            if runtime is Runtime.NODE:
                self._install_husky(project_dir)
            else:
                config = project_dir / ".pre-commit-config.yaml"
                if not config.exists():
                    config.write_text(PRE_COMMIT_CONFIG, encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.warning("Could not install commit hooks: %s", e)
            return [QualityIssue(
                Severity.WARNING, IssueCategory.HOOKS, f"Commit hooks not installed: {e}"
            )]
        return []

    @staticmethod
    def _install_husky(project_dir: Path) -> None:
        package_json = project_dir / "package.json"
        manifest = json.loads(package_json.read_text(encoding="utf-8"))
        scripts = manifest.setdefault("scripts", {})

        for relative, content in husky_hooks(scripts).items():
            path = project_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            path.chmod(0o755)

        staged = lint_staged(scripts)
        if staged:
            manifest.setdefault("lint-staged", staged)
        scripts.setdefault("prepare", "husky")
        package_json.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
