"""
Tests for zerohatch.cli
=======================

This module contains tests for the command-line interface.
Tests use Typer's CliRunner; the pipeline itself runs with a FakeRunner
and settings isolated in ``tmp_path``.

Test Organization
-----------------
- TestVersionCommand: Tests for --version flag
- TestHelpOutput: Tests for help text
- TestNewCommand: Tests for the new command
- TestFromRequestCommand: Tests for free-text requests
- TestInformationalCommands: types, check-name and dashboard
"""

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from zerohatch import __version__
from zerohatch.cli import app
from zerohatch.dashboard import QualityDashboard
from zerohatch.models import ProjectType
from zerohatch.orchestrator import ProjectGenerationOrchestrator
from zerohatch.quality import QualityReport
from zerohatch.settings import Settings
from tests.conftest import FakeRunner


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def cli() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def used_settings() -> list[Settings]:
    """Settings each orchestrator was built with, in order."""
    return []


@pytest.fixture(autouse=True)
def isolated(monkeypatch, settings: Settings, runner: FakeRunner,
             used_settings: list[Settings]) -> None:
    """Point the CLI at test settings and a fake command runner."""
    monkeypatch.setattr("zerohatch.cli.Settings", SimpleNamespace(load=lambda path=None: settings))

    def build(run_settings: Settings) -> ProjectGenerationOrchestrator:
        used_settings.append(run_settings)
        return ProjectGenerationOrchestrator(run_settings, runner)

    monkeypatch.setattr("zerohatch.cli.ProjectGenerationOrchestrator", build)


# =============================================================================
# Version Command Tests
# =============================================================================

class TestVersionCommand:
    """Tests for the --version flag."""

    def test_version_flag(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_version_short_flag(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["-V"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


# =============================================================================
# Help Output Tests
# =============================================================================

class TestHelpOutput:
    """Tests for help text."""

    def test_main_help(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "zerohatch" in result.stdout.lower()
        assert "new" in result.stdout
        assert "from-request" in result.stdout

    def test_new_help(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["new", "--help"])

        assert result.exit_code == 0
        assert "Generate a new project" in result.stdout
        assert "--type" in result.stdout


# =============================================================================
# New Command Tests
# =============================================================================

class TestNewCommand:
    """Tests for the new command."""

    def test_new_with_defaults(self, cli: CliRunner, output_dir: Path) -> None:
        result = cli.invoke(app, ["new", "web", "--yes", "--output", str(output_dir)])

        assert result.exit_code == 0, result.stdout
        assert (output_dir / "web" / "package.json").is_file()
        assert "react-scripts" in (output_dir / "web" / "package.json").read_text()

    def test_new_python_type(self, cli: CliRunner, output_dir: Path) -> None:
        result = cli.invoke(app, [
            "new", "orders-api",
            "--type", "python-fastapi",
            "--docker",
            "--yes",
            "--output", str(output_dir),
        ])

        assert result.exit_code == 0, result.stdout
        assert (output_dir / "orders-api" / "pyproject.toml").is_file()
        assert (output_dir / "orders-api" / "Dockerfile").is_file()

    def test_invalid_name(self, cli: CliRunner, output_dir: Path) -> None:
        result = cli.invoke(app, ["new", "Bad Name", "--yes", "--output", str(output_dir)])

        assert result.exit_code == 1
        assert list(output_dir.iterdir()) == []

    def test_invalid_type(self, cli: CliRunner, output_dir: Path) -> None:
        result = cli.invoke(app, [
            "new", "web", "--type", "vue", "--output", str(output_dir),
        ])

        assert result.exit_code == 1
        assert "Invalid project type" in result.stdout

    def test_no_strict(self, cli: CliRunner, output_dir: Path,
                       used_settings: list[Settings]) -> None:
        cli.invoke(app, ["new", "web", "--yes", "--no-strict", "--output", str(output_dir)])

        assert used_settings[0].strict_mode is False

    def test_strict_by_default(self, cli: CliRunner, output_dir: Path,
                               used_settings: list[Settings]) -> None:
        cli.invoke(app, ["new", "web", "--yes", "--output", str(output_dir)])

        assert used_settings[0].strict_mode is True

    def test_failed_generation_exits_nonzero(
        self, cli: CliRunner, output_dir: Path, runner: FakeRunner
    ) -> None:
        runner.on("typecheck", returncode=2, stdout="src/App.tsx(1,1): error TS2304: x")
        result = cli.invoke(app, ["new", "web", "--yes", "--output", str(output_dir)])

        assert result.exit_code == 1
        assert not (output_dir / "web").exists()

    def test_prompt_cancelled(self, cli: CliRunner, output_dir: Path, monkeypatch) -> None:
        class Cancelled:
            def ask(self):
                return None

        monkeypatch.setattr("zerohatch.cli.questionary.select", lambda *a, **k: Cancelled())
        result = cli.invoke(app, ["new", "web", "--output", str(output_dir)])

        assert result.exit_code == 1
        assert list(output_dir.iterdir()) == []


# =============================================================================
# From-Request Command Tests
# =============================================================================

class TestFromRequestCommand:
    """Tests for the from-request command."""

    def test_generates_named_project(self, cli: CliRunner, output_dir: Path) -> None:
        result = cli.invoke(app, [
            "from-request", "a python cli called sweep with tests",
            "--output", str(output_dir), "--yes",
        ])

        assert result.exit_code == 0, result.stdout
        assert (output_dir / "sweep" / "pyproject.toml").is_file()

    def test_unknown_stack(self, cli: CliRunner, output_dir: Path) -> None:
        result = cli.invoke(app, [
            "from-request", "a vue app called shop", "--output", str(output_dir), "--yes",
        ])

        assert result.exit_code == 1
        assert "Could not tell which stack" in result.stdout


# =============================================================================
# Informational Command Tests
# =============================================================================

class TestInformationalCommands:
    """Tests for types, check-name and dashboard."""

    def test_types(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["types"])

        assert result.exit_code == 0
        for project_type in ProjectType:
            assert project_type.value in result.stdout

    def test_check_name_valid(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["check-name", "my-app"])

        assert result.exit_code == 0
        assert "is a valid project name" in result.stdout

    def test_check_name_invalid(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["check-name", "node_modules"])

        assert result.exit_code == 1

    def test_dashboard_empty(self, cli: CliRunner) -> None:
        result = cli.invoke(app, ["dashboard"])

        assert result.exit_code == 0
        assert "No projects generated yet." in result.stdout

    def test_dashboard_summary(self, cli: CliRunner, settings: Settings) -> None:
        QualityDashboard(settings.dashboard_dir).record_project_generation(
            "shop", ProjectType.NEXTJS, QualityReport(ProjectType.NEXTJS),
            generation_time=12.0, files_generated=20, git_enabled=True, github_enabled=False,
        )
        result = cli.invoke(app, ["dashboard"])

        assert result.exit_code == 0
        assert "shop" in result.stdout
        assert "100%" in result.stdout

    def test_dashboard_export_json(self, cli: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "report.json"
        result = cli.invoke(app, ["dashboard", "--export", str(target)])

        assert result.exit_code == 0
        assert json.loads(target.read_text())["metrics"]["total_projects"] == 0
