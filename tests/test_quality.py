"""
Tests for zerohatch.quality
===========================

Test Organization
-----------------
- TestQualityReport: The zero-error rule
- TestOutcomeIssues: Converting check outcomes into issues
- TestDetectProjectType: Manifest-based stack detection
- TestEnforce: The enforcement sequence, strict and lenient
- TestGenerateReport: Measuring without modifying
"""

import json
from pathlib import Path

import pytest

from zerohatch.errors import QualityError
from zerohatch.models import ProjectType
from zerohatch.quality import (
    IssueCategory,
    QualityEnforcer,
    QualityMetrics,
    QualityReport,
    Severity,
    detect_project_type,
    outcome_issues,
)
from zerohatch.toolchains import CheckOutcome
from tests.conftest import FakeRunner


NODE_SCRIPTS = {
    "build": "tsc",
    "test": "jest",
    "lint": "eslint src",
    "typecheck": "tsc --noEmit",
    "format": "prettier --write .",
    "format:check": "prettier --check .",
}


@pytest.fixture
def node_project(tmp_path: Path) -> Path:
    project = tmp_path / "app"
    project.mkdir()
    (project / "package.json").write_text(json.dumps({
        "name": "app",
        "version": "0.1.0",
        "scripts": NODE_SCRIPTS,
        "dependencies": {"express": "^4.19.2"},
    }))
    return project


@pytest.fixture
def python_project(tmp_path: Path) -> Path:
    project = tmp_path / "api"
    project.mkdir()
    (project / "pyproject.toml").write_text(
        '[project]\nname = "api"\nversion = "0.1.0"\ndependencies = ["fastapi>=0.115"]\n'
    )
    return project


# =============================================================================
# Report Tests
# =============================================================================

class TestQualityReport:
    """Tests for QualityReport.passed."""

    def test_clean_report_passes(self) -> None:
        assert QualityReport(ProjectType.NEXTJS).passed

    @pytest.mark.parametrize("metrics", [
        QualityMetrics(type_errors=1),
        QualityMetrics(lint_errors=1),
        QualityMetrics(formatting_issues=1),
        QualityMetrics(tests_passing=False),
        QualityMetrics(build_successful=False),
    ])
    def test_any_error_fails(self, metrics: QualityMetrics) -> None:
        assert not QualityReport(ProjectType.NEXTJS, metrics=metrics).passed

    def test_warnings_and_vulnerabilities_do_not_fail(self) -> None:
        metrics = QualityMetrics(lint_warnings=7, dependency_vulnerabilities=3)
        assert QualityReport(ProjectType.NEXTJS, metrics=metrics).passed


# =============================================================================
# Outcome Conversion Tests
# =============================================================================

class TestOutcomeIssues:
    """Tests for outcome_issues."""

    def test_parses_locations(self) -> None:
        outcome = CheckOutcome("lint", ok=False, errors=1, messages=("src/a.py:3: F401 unused",))
        [issue] = outcome_issues(outcome, IssueCategory.LINT)
        assert issue.file == "src/a.py"
        assert issue.line == 3
        assert issue.message == "F401 unused"
        assert issue.severity is Severity.ERROR

    def test_warning_when_ok(self) -> None:
        outcome = CheckOutcome("test", ok=True, messages=("No tests were collected",))
        [issue] = outcome_issues(outcome, IssueCategory.TEST)
        assert issue.severity is Severity.WARNING

    def test_failure_without_messages(self) -> None:
        [issue] = outcome_issues(CheckOutcome("build", ok=False), IssueCategory.BUILD)
        assert issue.message == "build failed"

    def test_clean_outcome_has_no_issues(self) -> None:
        assert outcome_issues(CheckOutcome("lint", ok=True), IssueCategory.LINT) == []

    def test_str(self) -> None:
        outcome = CheckOutcome("lint", ok=False, errors=1, messages=("a.ts:1: bad",))
        assert str(outcome_issues(outcome, IssueCategory.LINT)[0]) == "[lint] a.ts:1: bad"


# =============================================================================
# Detection Tests
# =============================================================================

class TestDetectProjectType:
    """Tests for detect_project_type."""

    def test_express(self, node_project: Path) -> None:
        assert detect_project_type(node_project) is ProjectType.EXPRESS_TYPESCRIPT

    def test_next_wins_over_react(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(
            json.dumps({"dependencies": {"next": "14", "react": "18"}})
        )
        assert detect_project_type(tmp_path) is ProjectType.NEXTJS

    def test_fastapi(self, python_project: Path) -> None:
        assert detect_project_type(python_project) is ProjectType.PYTHON_FASTAPI

    def test_unknown(self, tmp_path: Path) -> None:
        with pytest.raises(QualityError):
            detect_project_type(tmp_path)


# =============================================================================
# Enforcement Tests
# =============================================================================

class TestEnforce:
    """Tests for QualityEnforcer.enforce."""

    def test_clean_node_project(self, node_project: Path, runner: FakeRunner) -> None:
        result = QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)
        assert result.report.passed
        assert result.installer == "npm"

    def test_step_order(self, node_project: Path, runner: FakeRunner) -> None:
        QualityEnforcer(runner).enforce(
            node_project, ProjectType.EXPRESS_TYPESCRIPT, install_hooks=False
        )
        commands = runner.commands
        assert commands[:5] == [
            "npm install",
            "npm run --silent format",
            "npm run --silent lint -- --fix",
            "npm run --silent lint -- --format json",
            "npm run --silent typecheck",
        ]
        assert commands[5] == "npm test -- --watchAll=false --passWithNoTests"

    def test_type_error_is_fatal_even_when_lenient(
        self, node_project: Path, runner: FakeRunner
    ) -> None:
        runner.on("typecheck", returncode=2,
                  stdout="src/a.ts(1,1): error TS2304: Cannot find name 'x'.")
        with pytest.raises(QualityError) as exc_info:
            QualityEnforcer(runner).enforce(
                node_project, ProjectType.EXPRESS_TYPESCRIPT, strict_mode=False
            )
        assert exc_info.value.message == "Quality enforcement failed: 1 type error(s)"
        assert not runner.ran("npm", "test")

    def test_failing_tests_strict(self, node_project: Path, runner: FakeRunner) -> None:
        runner.on("npm", "test", returncode=1, stdout="Tests: 1 failed")
        with pytest.raises(QualityError) as exc_info:
            QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)
        assert exc_info.value.message == "Quality enforcement failed: tests failed"

    def test_failing_tests_lenient(self, node_project: Path, runner: FakeRunner) -> None:
        runner.on("npm", "test", returncode=1, stdout="Tests: 1 failed")
        result = QualityEnforcer(runner).enforce(
            node_project, ProjectType.EXPRESS_TYPESCRIPT, strict_mode=False
        )
        assert not result.report.passed
        assert not result.report.metrics.tests_passing
        assert any(i.category is IssueCategory.TEST for i in result.issues)

    def test_lint_errors_fail_strict_report(self, node_project: Path, runner: FakeRunner) -> None:
        report = [{"filePath": "a.ts", "errorCount": 1, "warningCount": 0, "messages": []}]
        runner.on("--format", "json", returncode=1, stdout=json.dumps(report))
        with pytest.raises(QualityError) as exc_info:
            QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)
        assert exc_info.value.message == "Quality enforcement failed: project has errors"

    def test_lint_warnings_allowed(self, node_project: Path, runner: FakeRunner) -> None:
        report = [{"filePath": "a.ts", "errorCount": 0, "warningCount": 2, "messages": []}]
        runner.on("--format", "json", stdout=json.dumps(report))
        result = QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)
        assert result.report.passed
        assert result.report.metrics.lint_warnings == 2

    def test_install_failure(self, node_project: Path) -> None:
        runner = FakeRunner(tools=[])
        with pytest.raises(QualityError) as exc_info:
            QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)
        assert exc_info.value.message == "Dependency installation failed"

    def test_no_auto_fix(self, node_project: Path, runner: FakeRunner) -> None:
        QualityEnforcer(runner).enforce(
            node_project, ProjectType.EXPRESS_TYPESCRIPT, auto_fix=False
        )
        assert not runner.ran("format")
        assert not runner.ran("--fix")

    def test_husky_hooks_installed(self, node_project: Path, runner: FakeRunner) -> None:
        QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)
        pre_commit = node_project / ".husky" / "pre-commit"
        assert pre_commit.is_file()
        manifest = json.loads((node_project / "package.json").read_text())
        assert manifest["scripts"]["prepare"] == "husky"
        assert "lint-staged" in manifest

    def test_husky_without_lint_or_format(self, node_project: Path, runner: FakeRunner) -> None:
        dropped = ("lint", "format", "format:check")
        scripts = {k: v for k, v in NODE_SCRIPTS.items() if k not in dropped}
        (node_project / "package.json").write_text(json.dumps({"name": "app", "scripts": scripts}))
        QualityEnforcer(runner).enforce(node_project, ProjectType.EXPRESS_TYPESCRIPT)

        assert (node_project / ".husky" / "commit-msg").is_file()
        assert not (node_project / ".husky" / "pre-commit").exists()
        assert "lint-staged" not in json.loads((node_project / "package.json").read_text())

    def test_hooks_skipped(self, node_project: Path, runner: FakeRunner) -> None:
        QualityEnforcer(runner).enforce(
            node_project, ProjectType.EXPRESS_TYPESCRIPT, install_hooks=False
        )
        assert not (node_project / ".husky").exists()

    def test_python_pre_commit_config(self, python_project: Path, runner: FakeRunner) -> None:
        result = QualityEnforcer(runner).enforce(python_project, ProjectType.PYTHON_FASTAPI)
        assert result.installer == "uv"
        assert (python_project / ".pre-commit-config.yaml").is_file()

    def test_python_no_tests_collected(self, python_project: Path, runner: FakeRunner) -> None:
        runner.on("pytest", returncode=5)
        result = QualityEnforcer(runner).enforce(python_project, ProjectType.PYTHON_FASTAPI)
        assert result.report.passed


# =============================================================================
# Report Generation Tests
# =============================================================================

class TestGenerateReport:
    """Tests for QualityEnforcer.generate_report."""

    def test_detects_type(self, node_project: Path, runner: FakeRunner) -> None:
        report = QualityEnforcer(runner).generate_report(node_project)
        assert report.project_type is ProjectType.EXPRESS_TYPESCRIPT

    def test_python_build_not_run(self, python_project: Path, runner: FakeRunner) -> None:
        report = QualityEnforcer(runner).generate_report(
            python_project, ProjectType.PYTHON_FASTAPI
        )
        assert report.metrics.build_successful
        assert not runner.ran("build")

    def test_failed_build(self, node_project: Path, runner: FakeRunner) -> None:
        runner.on("run", "build", returncode=1, stderr="tsc exited")
        report = QualityEnforcer(runner).generate_report(node_project)
        assert not report.metrics.build_successful
        assert any(i.category is IssueCategory.BUILD for i in report.errors)

    def test_vulnerabilities_are_info(self, node_project: Path, runner: FakeRunner) -> None:
        runner.on("npm", "audit", stdout=json.dumps({"metadata": {"vulnerabilities": {"total": 2}}}))
        report = QualityEnforcer(runner).generate_report(node_project)
        assert report.passed
        assert report.metrics.dependency_vulnerabilities == 2
        assert any(i.severity is Severity.INFO for i in report.issues)

    def test_does_not_modify(self, node_project: Path, runner: FakeRunner) -> None:
        before = (node_project / "package.json").read_text()
        QualityEnforcer(runner).generate_report(node_project)
        assert (node_project / "package.json").read_text() == before
        assert not runner.ran("--fix")
