"""
Tests for zerohatch.orchestrator
================================

These run the whole pipeline against real templates, with every external
tool replaced by a FakeRunner.

Test Organization
-----------------
- TestSuccessfulGeneration: Promotion, events and the dashboard
- TestFailures: Validation, quality and promotion failures leave nothing behind
- TestGithub: Optional remote creation and its fallback
- TestPromotion: Moving the staged project without replacing anything
- TestModuleFunctions: generate_project and friends
"""

import errno
import json
import os
from pathlib import Path

import pytest

from zerohatch.dashboard import QualityDashboard
from zerohatch.errors import GenerationError
from zerohatch.models import GitHubConfig, ProjectConfig, ProjectType
from zerohatch.orchestrator import (
    STAGING_DIR_NAME,
    GenerationEvent,
    GenerationPhase,
    ProjectGenerationOrchestrator,
    get_supported_project_types,
    validate_project_name,
)
from zerohatch.runner import CommandResult
from zerohatch.settings import Settings
from tests.conftest import FakeRunner


pytestmark = pytest.mark.integration


@pytest.fixture
def dashboard(tmp_path: Path) -> QualityDashboard:
    return QualityDashboard(tmp_path / "dashboard")


@pytest.fixture
def orchestrator(
    settings: Settings, runner: FakeRunner, dashboard: QualityDashboard
) -> ProjectGenerationOrchestrator:
    return ProjectGenerationOrchestrator(settings, runner, dashboard=dashboard)


def _leftovers(output_dir: Path) -> list[str]:
    return sorted(p.name for p in output_dir.iterdir())


# =============================================================================
# Success Tests
# =============================================================================

class TestSuccessfulGeneration:
    """A clean run ends with the project at its final path."""

    def test_react_project_promoted(
        self, orchestrator: ProjectGenerationOrchestrator, react_config: ProjectConfig,
        output_dir: Path,
    ) -> None:
        result = orchestrator.generate(react_config)

        assert result.success, result.errors
        assert result.project_path == (output_dir / "test-app").resolve()
        assert json.loads((result.project_path / "package.json").read_text())["name"] == "test-app"
        assert (result.project_path / "tsconfig.json").is_file()
        assert (result.project_path / "src" / "App.tsx").is_file()
        assert (result.project_path / ".git").is_dir()
        assert result.git_initialized
        assert result.files_generated > 0
        assert result.quality_report is not None and result.quality_report.passed
        assert result.failed_phase is None
        assert _leftovers(output_dir) == ["test-app"]

    def test_python_project_promoted(
        self, orchestrator: ProjectGenerationOrchestrator, fastapi_config: ProjectConfig,
        runner: FakeRunner,
    ) -> None:
        result = orchestrator.generate(fastapi_config)

        assert result.success, result.errors
        assert (result.project_path / "pyproject.toml").is_file()
        assert (result.project_path / ".pre-commit-config.yaml").is_file()
        assert runner.ran("uv", "sync")

    def test_work_happens_in_staging(
        self, orchestrator: ProjectGenerationOrchestrator, react_config: ProjectConfig,
        runner: FakeRunner, output_dir: Path,
    ) -> None:
        orchestrator.generate(react_config)

        for call in runner.calls:
            assert call.cwd is not None
            assert STAGING_DIR_NAME in Path(call.cwd).parts
            assert Path(call.cwd) != output_dir / "test-app"

    def test_custom_scratch_root(
        self, settings: Settings, runner: FakeRunner, dashboard: QualityDashboard,
        react_config: ProjectConfig, tmp_path: Path, output_dir: Path,
    ) -> None:
        scratch = tmp_path / "scratch"
        orchestrator = ProjectGenerationOrchestrator(
            settings.model_copy(update={"scratch_root": scratch}), runner, dashboard=dashboard
        )
        result = orchestrator.generate(react_config)

        assert result.success, result.errors
        assert scratch.is_dir()
        assert list(scratch.iterdir()) == []
        assert Path(runner.calls[0].cwd).is_relative_to(scratch)
        assert _leftovers(output_dir) == ["test-app"]

    def test_events_in_order(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
    ) -> None:
        events: list[GenerationEvent] = []
        orchestrator.generate(cli_config, progress=events.append)

        assert [e.name for e in events] == [
            "generation:start",
            "phase:validating",
            "phase:templating",
            "phase:generating",
            "phase:enforcing-quality",
            "phase:git-init",
            "phase:verifying",
            "phase:promoting",
            "generation:complete",
        ]
        assert all(e.project_name == "my-tool" for e in events)
        assert events[-1].phase is GenerationPhase.SUCCEEDED

    def test_failing_callback_is_ignored(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
    ) -> None:
        def explode(event: GenerationEvent) -> None:
            raise RuntimeError("listener broke")

        assert orchestrator.generate(cli_config, progress=explode).success

    def test_dashboard_records_run(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
        dashboard: QualityDashboard,
    ) -> None:
        orchestrator.generate(cli_config)

        data = dashboard.get_dashboard_data()
        assert data.metrics.total_projects == 1
        summary = data.recent_projects[0]
        assert summary.name == "my-tool"
        assert summary.quality_passed
        assert summary.git_enabled

    def test_dashboard_disabled(
        self, settings: Settings, runner: FakeRunner, dashboard: QualityDashboard,
        cli_config: ProjectConfig,
    ) -> None:
        orchestrator = ProjectGenerationOrchestrator(
            settings.model_copy(update={"record_dashboard": False}), runner, dashboard=dashboard
        )
        orchestrator.generate(cli_config)
        assert not dashboard.store_path.exists()

    def test_dashboard_failure_is_a_warning(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
        dashboard: QualityDashboard, monkeypatch,
    ) -> None:
        def fail(*args, **kwargs):
            raise OSError("read-only")

        monkeypatch.setattr(dashboard, "record_project_generation", fail)
        result = orchestrator.generate(cli_config)

        assert result.success
        assert "Dashboard not updated: read-only" in result.warnings


# =============================================================================
# Failure Tests
# =============================================================================

class TestFailures:
    """Failed runs leave no project behind."""

    def test_invalid_name_writes_nothing(
        self, orchestrator: ProjectGenerationOrchestrator, output_dir: Path,
        dashboard: QualityDashboard, runner: FakeRunner,
    ) -> None:
        config = ProjectConfig(name="Bad Name", type=ProjectType.NEXTJS, output_dir=output_dir)
        events: list[GenerationEvent] = []
        result = orchestrator.generate(config, progress=events.append)

        assert not result.success
        assert result.failed_phase is GenerationPhase.VALIDATING
        assert result.errors[0] == "Configuration validation failed"
        assert result.project_path is None
        assert _leftovers(output_dir) == []
        assert runner.calls == []
        assert not dashboard.store_path.exists()
        assert events[-1].name == "generation:failed"
        assert events[-1].data["failed_phase"] == "validating"

    def test_existing_target_rejected(
        self, orchestrator: ProjectGenerationOrchestrator, react_config: ProjectConfig,
        output_dir: Path,
    ) -> None:
        (output_dir / "test-app").mkdir()
        (output_dir / "test-app" / "keep.txt").write_text("mine")

        events: list[GenerationEvent] = []
        result = orchestrator.generate(react_config, progress=events.append)

        assert not result.success
        target = (output_dir / "test-app").resolve()
        assert f"Directory already exists: {target}" in result.errors
        assert "phase:templating" not in [e.name for e in events]
        assert (output_dir / "test-app" / "keep.txt").read_text() == "mine"

    def test_type_error_aborts_before_git(
        self, orchestrator: ProjectGenerationOrchestrator, react_config: ProjectConfig,
        runner: FakeRunner, output_dir: Path, dashboard: QualityDashboard,
    ) -> None:
        runner.on("typecheck", returncode=2,
                  stdout=(
                      "src/App.tsx(3,7): error TS2322: Type 'string' is not assignable.\n"
                      "src/index.tsx(1,1): error TS2304: Cannot find name 'x'.\n"
                  ))

        result = orchestrator.generate(react_config)

        assert not result.success
        assert result.failed_phase is GenerationPhase.ENFORCING_QUALITY
        assert result.errors[0] == "Quality enforcement failed: 2 type error(s)"
        assert not (output_dir / STAGING_DIR_NAME).exists()
        assert not runner.ran("git", "init")
        assert _leftovers(output_dir) == []

        summary = dashboard.get_dashboard_data().recent_projects[0]
        assert not summary.succeeded
        assert not summary.quality_passed

    def test_lenient_mode_still_fails_on_type_errors(
        self, settings: Settings, runner: FakeRunner, dashboard: QualityDashboard,
        react_config: ProjectConfig,
    ) -> None:
        runner.on("typecheck", returncode=2, stdout="src/a.ts(1,1): error TS2304: x")
        orchestrator = ProjectGenerationOrchestrator(
            settings.model_copy(update={"strict_mode": False}), runner, dashboard=dashboard
        )
        assert orchestrator.generate(react_config).failed_phase is GenerationPhase.ENFORCING_QUALITY

    def test_lenient_mode_tolerates_failing_tests(
        self, settings: Settings, runner: FakeRunner, dashboard: QualityDashboard,
        react_config: ProjectConfig,
    ) -> None:
        orchestrator = ProjectGenerationOrchestrator(
            settings.model_copy(update={"strict_mode": False}), runner, dashboard=dashboard
        )
        # Enforcement tolerates failing tests in lenient mode; the verifier does not
        runner.on("npm", "test", returncode=1, stdout="1 failed")
        result = orchestrator.generate(react_config)

        assert not result.success
        assert result.failed_phase is GenerationPhase.VERIFYING
        assert "Tests failed" in result.errors

    def test_git_failure(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
        runner: FakeRunner, output_dir: Path,
    ) -> None:
        runner.on("git", "commit", returncode=128, stderr="fatal: bad identity")
        result = orchestrator.generate(cli_config)

        assert result.failed_phase is GenerationPhase.GIT_INIT
        assert not result.git_initialized
        assert _leftovers(output_dir) == []

    def test_target_appearing_during_run(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
        runner: FakeRunner, output_dir: Path,
    ) -> None:
        def squat(argv, cwd):
            (output_dir / "my-tool").mkdir(exist_ok=True)
            return CommandResult(argv, 0)

        runner.on("git", "add", handler=squat)
        result = orchestrator.generate(cli_config)

        assert not result.success
        assert result.failed_phase is GenerationPhase.PROMOTING
        assert result.errors == [
            "Promotion failed", f"Directory already exists: {(output_dir / 'my-tool').resolve()}",
        ]
        assert list((output_dir / "my-tool").iterdir()) == []
        assert _leftovers(output_dir) == ["my-tool"]

    def test_unexpected_exception(
        self, orchestrator: ProjectGenerationOrchestrator, cli_config: ProjectConfig,
        output_dir: Path, monkeypatch,
    ) -> None:
        def boom(*args, **kwargs):
            raise KeyError("template_variable")

        monkeypatch.setattr(orchestrator.generator, "generate", boom)
        result = orchestrator.generate(cli_config)

        assert result.failed_phase is GenerationPhase.GENERATING
        assert result.errors[0].startswith("Unexpected error during generating")
        assert _leftovers(output_dir) == []


# =============================================================================
# GitHub Tests
# =============================================================================

class TestGithub:
    """Optional GitHub repository creation."""

    def test_repository_created(
        self, orchestrator: ProjectGenerationOrchestrator, output_dir: Path,
        runner: FakeRunner,
    ) -> None:
        config = ProjectConfig(
            name="web", type=ProjectType.NEXTJS, output_dir=output_dir,
            github=GitHubConfig(enabled=True, topics=["nextjs"]),
        )
        events: list[GenerationEvent] = []
        result = orchestrator.generate(config, progress=events.append)

        assert result.success, result.errors
        assert result.github_created
        assert "phase:github-setup" in [e.name for e in events]
        assert (result.project_path / ".github" / "workflows" / "ci.yml").is_file()
        assert runner.ran("gh", "repo", "create", "web", "--private")

    def test_missing_gh_is_a_warning(
        self, settings: Settings, dashboard: QualityDashboard, output_dir: Path,
    ) -> None:
        runner = FakeRunner(tools=["npm", "yarn", "git"])
        config = ProjectConfig(
            name="web", type=ProjectType.NEXTJS, output_dir=output_dir,
            github=GitHubConfig(enabled=True),
        )
        result = ProjectGenerationOrchestrator(settings, runner, dashboard=dashboard).generate(config)

        assert result.success, result.errors
        assert not result.github_created
        assert any(w.startswith("GitHub repository not created") for w in result.warnings)
        assert (result.project_path / "GITHUB_SETUP.md").is_file()

    def test_unauthenticated_gh_still_succeeds(
        self, orchestrator: ProjectGenerationOrchestrator, react_config: ProjectConfig,
        runner: FakeRunner,
    ) -> None:
        runner.on("gh", "auth", "status", returncode=1, stderr="You are not logged in")
        config = react_config.model_copy(update={"github": GitHubConfig(enabled=True)})
        result = orchestrator.generate(config)

        assert result.success, result.errors
        assert not result.github_created
        assert (result.project_path / "GITHUB_SETUP.md").is_file()
        assert not runner.ran("gh", "repo", "create")


# =============================================================================
# Promotion Tests
# =============================================================================

@pytest.fixture
def staged(tmp_path: Path) -> Path:
    project = tmp_path / "staging" / "app"
    (project / "src").mkdir(parents=True)
    (project / "src" / "main.py").write_text("print('hi')\n")
    (project / ".gitignore").write_text("dist/\n")
    return project


class TestPromotion:
    """Tests for moving the staged project to its final path."""

    def test_moves_every_entry(self, staged: Path, tmp_path: Path) -> None:
        final = tmp_path / "out" / "app"
        ProjectGenerationOrchestrator._promote(staged, final)

        assert (final / "src" / "main.py").read_text() == "print('hi')\n"
        assert (final / ".gitignore").is_file()
        assert list(staged.iterdir()) == []

    def test_never_replaces_an_empty_directory(self, staged: Path, tmp_path: Path) -> None:
        final = tmp_path / "out" / "app"
        final.mkdir(parents=True)

        with pytest.raises(GenerationError) as exc_info:
            ProjectGenerationOrchestrator._promote(staged, final)

        assert exc_info.value.details == [f"Directory already exists: {final}"]
        assert list(final.iterdir()) == []
        assert (staged / "src" / "main.py").is_file()

    def test_cross_device_falls_back_to_copy(
        self, staged: Path, tmp_path: Path, monkeypatch
    ) -> None:
        def cross_device(src, dst):
            raise OSError(errno.EXDEV, "Invalid cross-device link")

        monkeypatch.setattr(os, "rename", cross_device)
        final = tmp_path / "out" / "app"
        ProjectGenerationOrchestrator._promote(staged, final)

        assert (final / "src" / "main.py").read_text() == "print('hi')\n"

    def test_failure_removes_final_directory(
        self, staged: Path, tmp_path: Path, monkeypatch
    ) -> None:
        def denied(src, dst):
            raise PermissionError(errno.EACCES, "Permission denied")

        monkeypatch.setattr(os, "rename", denied)
        final = tmp_path / "out" / "app"

        with pytest.raises(GenerationError) as exc_info:
            ProjectGenerationOrchestrator._promote(staged, final)

        assert exc_info.value.message == "Promotion failed"
        assert not final.exists()


# =============================================================================
# Module Function Tests
# =============================================================================

class TestModuleFunctions:
    """Tests for the programmatic helpers."""

    def test_supported_types(self) -> None:
        assert set(get_supported_project_types()) == set(ProjectType)

    def test_validate_project_name(self) -> None:
        assert validate_project_name("my-app").valid
        assert not validate_project_name("My App").valid
