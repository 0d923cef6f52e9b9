"""
zerohatch.dashboard - Quality Dashboard
=======================================

A small persistent store that records every generation run and keeps
aggregate quality metrics across runs.

Storage
-------
``<dashboard_dir>/quality-dashboard.json``, validated with Pydantic on load
and replaced atomically on every write (write to a temporary file in the
same directory, then ``os.replace``).

Aggregation
-----------
- ``total_projects`` and ``projects_by_type`` count every recorded run
- ``recent_projects`` keeps the newest 50 summaries, newest first
- Zero-error, build and test pass rates and the average generation time
  are computed over ``recent_projects``
- ``total_errors_found`` / ``total_warnings_found`` accumulate the counts of
  every report that did not pass

Usage Example
-------------
>>> dashboard = QualityDashboard(Path("~/.zerohatch").expanduser())
>>> dashboard.record_project_generation(
...     "my-app", ProjectType.NEXTJS, report, generation_time=42.0,
...     files_generated=18, git_enabled=True, github_enabled=False,
... )
>>> dashboard.export_dashboard(Path("report.html"))
PosixPath('report.html')
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape
from pydantic import BaseModel, Field, ValidationError

from zerohatch import __version__
from zerohatch.models import ProjectType
from zerohatch.quality import QualityReport


logger = logging.getLogger(__name__)

DASHBOARD_FILE = "quality-dashboard.json"
MAX_RECENT = 50


# =============================================================================
# Stored Models
# =============================================================================


class ProjectSummary(BaseModel):
    """One recorded generation run."""

    name: str
    type: ProjectType
    timestamp: datetime
    succeeded: bool = True
    quality_passed: bool = False
    generation_time: float = Field(ge=0, description="Seconds")
    files_generated: int = Field(default=0, ge=0)
    type_errors: int = 0
    lint_errors: int = 0
    lint_warnings: int = 0
    formatting_issues: int = 0
    tests_passing: bool = False
    build_successful: bool = False
    git_enabled: bool = False
    github_enabled: bool = False

    @property
    def type_label(self) -> str:
        return self.type.display_name


class AggregatedMetrics(BaseModel):
    """Totals and rates across recorded runs."""

    total_projects: int = 0
    projects_by_type: dict[str, int] = Field(default_factory=dict)
    zero_error_rate: float = 0.0
    build_success_rate: float = 0.0
    test_pass_rate: float = 0.0
    average_generation_time: float = 0.0
    total_errors_found: int = 0
    total_warnings_found: int = 0


class DashboardData(BaseModel):
    """Everything persisted in the dashboard store."""

    updated_at: datetime | None = None
    metrics: AggregatedMetrics = Field(default_factory=AggregatedMetrics)
    recent_projects: list[ProjectSummary] = Field(default_factory=list)


# =============================================================================
# Dashboard
# =============================================================================


class QualityDashboard:
    """
    Record generation runs and report aggregate quality.

    Parameters
    ----------
    dashboard_dir : Path
        Directory holding the store. Created on first write.

    max_recent : int, default=50
        Size of the recent-projects ring buffer.
    """

    def __init__(self, dashboard_dir: Path, max_recent: int = MAX_RECENT) -> None:
        self.dashboard_dir = dashboard_dir.expanduser()
        self.max_recent = max_recent
        self._data: DashboardData | None = None

    @property
    def store_path(self) -> Path:
        return self.dashboard_dir / DASHBOARD_FILE

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self) -> DashboardData:
        if self._data is not None:
            return self._data

        if self.store_path.exists():
            try:
                self._data = DashboardData.model_validate_json(
                    self.store_path.read_text(encoding="utf-8")
                )
            except (OSError, ValidationError) as e:
                logger.warning("Dashboard store unreadable, starting fresh: %s", e)
                self._data = DashboardData()
        else:
            self._data = DashboardData()
        return self._data

    def _save(self, data: DashboardData) -> None:
        self.dashboard_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self.dashboard_dir, prefix=".quality-dashboard-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data.model_dump_json(indent=2))
            os.replace(tmp, self.store_path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record_project_generation(
        self,
        name: str,
        project_type: ProjectType,
        report: QualityReport | None,
        generation_time: float,
        files_generated: int,
        git_enabled: bool,
        github_enabled: bool,
        succeeded: bool = True,
    ) -> ProjectSummary:
        """
        Record one run and persist the updated aggregates.

        Parameters
        ----------
        name : str
            Project name.

        project_type : ProjectType
            Stack generated.

        report : QualityReport | None
            Final quality report; ``None`` when the run failed before one was
            produced.

        generation_time : float
            Run duration in seconds.

        files_generated : int
            Number of files written.

        git_enabled, github_enabled : bool
            Whether a repository / remote was created.

        succeeded : bool, default=True
            Whether the run was promoted. Failed runs never count as passed.

        Returns
        -------
        ProjectSummary
            The stored summary.

        Raises
        ------
        OSError
            If the store can't be written.
        """
        data = self._load().model_copy(deep=True)

        metrics = report.metrics if report is not None else None
        summary = ProjectSummary(
            name=name,
            type=project_type,
            timestamp=datetime.now(UTC),
            succeeded=succeeded,
            quality_passed=succeeded and report is not None and report.passed,
            generation_time=max(generation_time, 0.0),
            files_generated=files_generated,
            type_errors=metrics.type_errors if metrics else 0,
            lint_errors=metrics.lint_errors if metrics else 0,
            lint_warnings=metrics.lint_warnings if metrics else 0,
            formatting_issues=metrics.formatting_issues if metrics else 0,
            tests_passing=bool(metrics and metrics.tests_passing),
            build_successful=bool(metrics and metrics.build_successful),
            git_enabled=git_enabled,
            github_enabled=github_enabled,
        )

        totals = data.metrics
        totals.total_projects += 1
        totals.projects_by_type[project_type.value] = (
            totals.projects_by_type.get(project_type.value, 0) + 1
        )
        if report is not None and not report.passed:
            totals.total_errors_found += (
                report.metrics.type_errors
                + report.metrics.lint_errors
                + report.metrics.formatting_issues
            )
            totals.total_warnings_found += report.metrics.lint_warnings

        data.recent_projects.insert(0, summary)
        del data.recent_projects[self.max_recent:]
        self._recompute_rates(data)
        data.updated_at = summary.timestamp

        self._save(data)
        self._data = data
        logger.debug("Recorded '%s' in dashboard %s", name, self.store_path)
        return summary

    @staticmethod
    def _recompute_rates(data: DashboardData) -> None:
        recent = data.recent_projects
        totals = data.metrics
        if not recent:
            totals.zero_error_rate = totals.build_success_rate = totals.test_pass_rate = 0.0
            totals.average_generation_time = 0.0
            return
        count = len(recent)
        totals.zero_error_rate = sum(p.quality_passed for p in recent) / count
        totals.build_success_rate = sum(p.build_successful for p in recent) / count
        totals.test_pass_rate = sum(p.tests_passing for p in recent) / count
        totals.average_generation_time = sum(p.generation_time for p in recent) / count

    # -------------------------------------------------------------------------
    # Reading and Export
    # -------------------------------------------------------------------------

    def get_dashboard_data(self) -> DashboardData:
        """A copy of the current dashboard contents."""
        return self._load().model_copy(deep=True)

    def export_dashboard(self, path: Path) -> Path:
        """
        Export the dashboard to ``path``.

        A ``.json`` suffix writes the raw data; anything else renders the
        HTML report.
        """
        data = self.get_dashboard_data()
        path = path.expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() == ".json":
            path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        else:
            path.write_text(render_html(data), encoding="utf-8")

        logger.info("Exported dashboard to %s", path)
        return path


def render_html(data: DashboardData) -> str:
    """Render the HTML dashboard report."""
    env = Environment(
        loader=PackageLoader("zerohatch", "report_templates"),
        autoescape=select_autoescape(["html", "html.j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["percent"] = lambda value: f"{value * 100:.1f}%"
    template = env.get_template("dashboard.html.j2")
    return template.render(
        data=data,
        metrics=data.metrics,
        project_types={t.value: t.display_name for t in ProjectType},
        generated_at=datetime.now(UTC),
        version=__version__,
    )
