"""
zerohatch.orchestrator - Project Generation Pipeline
====================================================

This module runs the complete generation pipeline for one project and is
the main programmatic entry point of zerohatch.

Architecture
------------
The pipeline is strictly sequential, without retries:

    1. validating          ConfigValidator; nothing is written before it passes
    2. templating          TemplateEngine prepares a private template copy
    3. generating          CodeGenerator writes into a fresh staging directory
    4. enforcing-quality   QualityEnforcer installs, fixes, checks
    5. git-init            GitInitializer creates the repository and commit
    6. github-setup        optional; degrades to written instructions
    7. verifying           PostGenerationVerifier re-checks everything
    8. promoting           staged files renamed into ``output_dir/name``

Guarantees
----------
- The staging directory is never equal to, inside, or a parent of the final
  path.
- The final path is only written by the promotion step, which creates it
  with an exclusive ``mkdir`` and fails if anything is already there.
- Any failure removes the staging directory and returns a failed result;
  nothing is left at the final path.
- ``generate`` never raises. Errors are returned in ``GenerationResult``.

Progress Events
---------------
A ``progress`` callback receives :class:`GenerationEvent` objects:
``generation:start``, ``phase:<phase>`` for each phase entered, then
``generation:complete`` or ``generation:failed``. Exceptions raised by the
callback are logged and ignored.

Usage Example
-------------
>>> from zerohatch import ProjectConfig, generate_project
>>> result = generate_project(
...     ProjectConfig(name="my-app", type="react-typescript", output_dir="/tmp/out")
... )
>>> result.success, result.project_path
(True, PosixPath('/tmp/out/my-app'))

See Also
--------
- errors.py: Error taxonomy surfaced in ``GenerationResult.errors``
- settings.py: Staging location, strict mode and git identity
"""

from __future__ import annotations

import errno
import logging
import os
import re
import shutil
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from zerohatch.codegen import CodeGenerator
from zerohatch.dashboard import QualityDashboard
from zerohatch.engine import TemplateEngine
from zerohatch.errors import (
    ConfigValidationError,
    GenerationError,
    VerificationError,
    ZerohatchError,
)
from zerohatch.models import ProjectConfig, ProjectType, Runtime
from zerohatch.quality import QualityEnforcer, QualityReport
from zerohatch.runner import CommandRunner
from zerohatch.settings import Settings
from zerohatch.templates.features import ci_files
from zerohatch.validator import ConfigValidator, NameCheck
from zerohatch.validator import validate_project_name as _validate_name
from zerohatch.vcs import GitInitializer
from zerohatch.verifier import PostGenerationVerifier


logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".zerohatch-staging"


# =============================================================================
# Phases and Events
# =============================================================================


class GenerationPhase(str, Enum):
    """Pipeline phases, in order."""

    CREATED = "created"
    VALIDATING = "validating"
    TEMPLATING = "templating"
    GENERATING = "generating"
    ENFORCING_QUALITY = "enforcing-quality"
    GIT_INIT = "git-init"
    GITHUB_SETUP = "github-setup"
    VERIFYING = "verifying"
    PROMOTING = "promoting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationEvent:
    """
    Lifecycle notification delivered to a progress callback.

    Attributes
    ----------
    name : str
        ``generation:start``, ``phase:<phase>``, ``generation:complete`` or
        ``generation:failed``.

    phase : GenerationPhase
        Phase the run is in.

    project_name : str
        Project being generated.

    timestamp : datetime
        When the event was emitted (UTC).

    data : dict[str, Any]
        Event-specific details (errors, durations, paths).
    """

    name: str
    phase: GenerationPhase
    project_name: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[GenerationEvent], None]


# =============================================================================
# Result
# =============================================================================


@dataclass
class GenerationResult:
    """
    Outcome of one generation run.

    Attributes
    ----------
    success : bool
        The project was promoted to its final path.

    project_path : Path | None
        Final project path; ``None`` unless ``success``.

    duration : float
        Wall-clock seconds for the whole run.

    files_generated : int
        Number of files written by the code generator.

    quality_report : QualityReport | None
        Report from the quality phase, if it completed.

    git_initialized : bool
        The repository and initial commit were created.

    github_created : bool
        The remote repository was created and pushed.

    errors : list[str]
        Failure messages; the first names the failed phase.

    warnings : list[str]
        Non-fatal observations from any phase.

    failed_phase : GenerationPhase | None
        Phase that failed, if any.
    """

    success: bool = False
    project_path: Path | None = None
    duration: float = 0.0
    files_generated: int = 0
    quality_report: QualityReport | None = None
    git_initialized: bool = False
    github_created: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_phase: GenerationPhase | None = None


# =============================================================================
# Orchestrator
# =============================================================================


class ProjectGenerationOrchestrator:
    """
    Run the generation pipeline.

    Parameters
    ----------
    settings : Settings | None
        Runtime settings. Defaults to :meth:`Settings.load`.

    runner : CommandRunner | None
        Shared by every component that runs external tools.

    All components can be injected for testing; by default each is built
    from ``settings`` and ``runner``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
        *,
        validator: ConfigValidator | None = None,
        engine: TemplateEngine | None = None,
        generator: CodeGenerator | None = None,
        enforcer: QualityEnforcer | None = None,
        git: GitInitializer | None = None,
        verifier: PostGenerationVerifier | None = None,
        dashboard: QualityDashboard | None = None,
    ) -> None:
        self.settings = settings or Settings.load()
        self.runner = runner or CommandRunner()
        self.engine = engine or TemplateEngine()
        self.validator = validator or ConfigValidator(
            ProjectType(t) for t in self.engine.available_templates()
        )
        self.generator = generator or CodeGenerator()
        self.enforcer = enforcer or QualityEnforcer(self.runner)
        self.git = git or GitInitializer(
            self.runner,
            user_name=self.settings.git_user_name,
            user_email=self.settings.git_user_email,
        )
        self.verifier = verifier or PostGenerationVerifier(self.runner)
        self.dashboard = dashboard or QualityDashboard(self.settings.dashboard_dir)

    def generate(
        self,
        config: ProjectConfig,
        progress: ProgressCallback | None = None,
    ) -> GenerationResult:
        """
        Generate the project described by ``config``.

        Parameters
        ----------
        config : ProjectConfig
            Project to generate.

        progress : ProgressCallback | None
            Receives lifecycle events.

        Returns
        -------
        GenerationResult
            Never raises; inspect ``success`` and ``errors``.
        """
        run = _Run(config, progress)
        run.emit("generation:start", GenerationPhase.CREATED)
        result = GenerationResult()
        staging: Path | None = None
        validated = False

        try:
            run.enter(GenerationPhase.VALIDATING)
            validation = self.validator.validate(config)
            result.warnings.extend(validation.warnings)
            if not validation.is_valid:
                raise ConfigValidationError("Configuration validation failed", validation.errors)
            validated = True

            final_path = config.target_path
            staging = self._create_staging(config)
            project_dir = staging / config.name
            _check_disjoint(project_dir, final_path)

            run.enter(GenerationPhase.TEMPLATING)
            template = self.engine.prepare_template(config)

            run.enter(GenerationPhase.GENERATING)
            files = self.generator.generate(template, project_dir)
            result.files_generated = len(files)

            run.enter(GenerationPhase.ENFORCING_QUALITY)
            enforcement = self.enforcer.enforce(
                project_dir,
                config.type,
                strict_mode=self.settings.strict_mode,
                install_hooks=self._project_hooks_enabled(config),
            )
            result.quality_report = enforcement.report
            result.warnings.extend(str(issue) for issue in enforcement.issues)

            run.enter(GenerationPhase.GIT_INIT)
            self.git.initialize(
                project_dir, config.type, enable_hooks=self.settings.enable_hooks
            )
            result.git_initialized = True

            if config.github_enabled and config.github is not None:
                run.enter(GenerationPhase.GITHUB_SETUP)
                github = self.git.setup_github(
                    project_dir,
                    config.github.repo_name or config.name,
                    private=config.github.private,
                    description=config.github.description or config.description,
                    topics=config.github.topics,
                    workflows=self._workflows(config),
                )
                result.github_created = github.created
                if not github.created:
                    result.warnings.append(
                        f"GitHub repository not created: {github.error}. "
                        f"See {github.instructions_path.name if github.instructions_path else 'GITHUB_SETUP.md'}"
                    )

            run.enter(GenerationPhase.VERIFYING)
            verification = self.verifier.verify(project_dir, config, files)
            result.warnings.extend(verification.warnings)
            if not verification.success:
                raise VerificationError("Post-generation verification failed", verification.errors)

            run.enter(GenerationPhase.PROMOTING)
            self._promote(project_dir, final_path)
            result.project_path = final_path
            result.success = True

        except ZerohatchError as e:
            result.errors.extend(e.as_messages())
            result.failed_phase = run.phase
        except Exception as e:
            logger.exception("Unexpected error during %s", run.phase.value)
            result.errors.append(f"Unexpected error during {run.phase.value}: {e}")
            result.failed_phase = run.phase
        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)
                _remove_if_empty(staging.parent)

        result.duration = run.elapsed()

        if validated:
            self._record(config, result)

        if result.success:
            run.emit("generation:complete", GenerationPhase.SUCCEEDED, {
                "project_path": str(result.project_path),
                "duration": result.duration,
            })
            logger.info("Generated %s in %.1fs", result.project_path, result.duration)
        else:
            run.emit("generation:failed", GenerationPhase.FAILED, {
                "failed_phase": result.failed_phase.value if result.failed_phase else None,
                "errors": list(result.errors),
            })
            logger.info("Generation of '%s' failed: %s", config.name, "; ".join(result.errors))
        return result

    # -------------------------------------------------------------------------
    # Staging and Promotion
    # -------------------------------------------------------------------------

    def _create_staging(self, config: ProjectConfig) -> Path:
        """Create a unique staging directory for this run."""
        root = self.settings.scratch_root
        if root is None:
            root = config.resolved_output_dir / STAGING_DIR_NAME
        root = root.expanduser().resolve()
        try:
            root.mkdir(parents=True, exist_ok=True)
            prefix = re.sub(r"[^A-Za-z0-9_-]", "_", config.name)[:40] + "-"
            staging = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
        except OSError as e:
            raise GenerationError("Could not create staging directory", [str(e)]) from e
        logger.debug("Staging directory: %s", staging)
        return staging

    @staticmethod
    def _promote(project_dir: Path, final_path: Path) -> None:
        """
        Move the staged project to its final path.

        The final directory is claimed with an exclusive ``mkdir``, so a
        directory that appeared after validation is never replaced, even an
        empty one. The staged entries are then renamed into it one at a time;
        a reader watching the final path can see a partly moved project.
        """
        try:
            final_path.parent.mkdir(parents=True, exist_ok=True)
            final_path.mkdir()
        except FileExistsError as e:
            raise GenerationError(
                "Promotion failed", [f"Directory already exists: {final_path}"]
            ) from e
        except OSError as e:
            raise GenerationError("Promotion failed", [str(e)]) from e

        try:
            for entry in sorted(project_dir.iterdir()):
                target = final_path / entry.name
                try:
                    os.rename(entry, target)
                except OSError as e:
                    if e.errno != errno.EXDEV:
                        raise
                    # Staging on another filesystem
                    shutil.move(str(entry), str(target))
        except OSError as e:
            # Created above by this run
            shutil.rmtree(final_path, ignore_errors=True)
            raise GenerationError("Promotion failed", [str(e)]) from e

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _project_hooks_enabled(self, config: ProjectConfig) -> bool:
        if not self.settings.enable_hooks:
            return False
        # husky is opt-in for Node; Python uses pre-commit
        return config.type.runtime is Runtime.PYTHON or config.features.husky

    def _workflows(self, config: ProjectConfig) -> dict[str, str]:
        """Rendered CI workflows to commit before pushing to GitHub."""
        rendered = self.engine.render_files(ci_files(config.type), config)
        return {f.path: f.content for f in rendered}

    def _record(self, config: ProjectConfig, result: GenerationResult) -> None:
        if not self.settings.record_dashboard:
            return
        try:
            self.dashboard.record_project_generation(
                config.name,
                config.type,
                result.quality_report,
                generation_time=result.duration,
                files_generated=result.files_generated,
                git_enabled=result.git_initialized,
                github_enabled=result.github_created,
                succeeded=result.success,
            )
        except (OSError, ValueError) as e:
            logger.warning("Could not record run in dashboard: %s", e)
            result.warnings.append(f"Dashboard not updated: {e}")


class _Run:
    """Per-run bookkeeping: current phase, timing and event delivery."""

    def __init__(self, config: ProjectConfig, progress: ProgressCallback | None) -> None:
        self.config = config
        self.progress = progress
        self.phase = GenerationPhase.CREATED
        self.started = time.monotonic()

    def enter(self, phase: GenerationPhase) -> None:
        self.phase = phase
        logger.info("[%s] %s", self.config.name, phase.value)
        self.emit(f"phase:{phase.value}", phase)

    def emit(
        self, name: str, phase: GenerationPhase, data: dict[str, Any] | None = None
    ) -> None:
        if self.progress is None:
            return
        event = GenerationEvent(name, phase, self.config.name, data=data or {})
        try:
            self.progress(event)
        except Exception:
            logger.warning("Progress callback failed for %s", name, exc_info=True)

    def elapsed(self) -> float:
        return time.monotonic() - self.started


def _check_disjoint(staging: Path, final_path: Path) -> None:
    """Staging and final path must not be equal or nested in either direction."""
    staging = staging.resolve()
    final_path = final_path.resolve()
    if (
        staging == final_path
        or staging.is_relative_to(final_path)
        or final_path.is_relative_to(staging)
    ):
        raise GenerationError(
            "Could not create staging directory",
            [f"Staging path {staging} overlaps the target {final_path}"],
        )


def _remove_if_empty(directory: Path) -> None:
    if directory.name != STAGING_DIR_NAME:
        return
    try:
        directory.rmdir()
    except OSError:
        pass


# =============================================================================
# Programmatic Surface
# =============================================================================


def generate_project(
    config: ProjectConfig,
    *,
    settings: Settings | None = None,
    progress: ProgressCallback | None = None,
) -> GenerationResult:
    """
    Generate one project with default components.

    Examples
    --------
    >>> result = generate_project(ProjectConfig(name="api", type="python-fastapi"))
    >>> result.success
    True
    """
    return ProjectGenerationOrchestrator(settings).generate(config, progress)


def get_supported_project_types() -> list[ProjectType]:
    """Every project type that can be generated."""
    return [ProjectType(t) for t in TemplateEngine().available_templates()]


def validate_project_name(name: str) -> NameCheck:
    """Check a project name; see :func:`zerohatch.validator.validate_project_name`."""
    return _validate_name(name)
