"""
zerohatch.cli - Command Line Interface
======================================

This module provides the ``zerohatch`` command using Typer, with Rich for
output and questionary for interactive prompts.

Architecture
------------
::

    app (main entry point)
    ├── new           - Generate a project from options or prompts
    ├── from-request  - Generate a project from a free-text request
    ├── types         - List supported project types
    ├── check-name    - Check a project name
    └── dashboard     - Show or export the quality dashboard

``new`` is interactive when a required value is missing and ``--yes`` was
not passed; with ``--yes`` every missing value takes its default.

Usage Examples
--------------
    $ zerohatch new my-app --type nextjs --docker --yes
    $ zerohatch from-request "a fastapi service called orders-api with docker"
    $ zerohatch dashboard --export report.html

See Also
--------
- orchestrator.py: The pipeline the commands drive
- settings.py: Settings read at startup
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import questionary
import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from zerohatch import __version__
from zerohatch.dashboard import QualityDashboard
from zerohatch.intent import config_from_request
from zerohatch.models import FeaturesConfig, GitHubConfig, ProjectConfig, ProjectType, Runtime
from zerohatch.orchestrator import (
    GenerationEvent,
    GenerationResult,
    ProjectGenerationOrchestrator,
    validate_project_name,
)
from zerohatch.settings import Settings


# =============================================================================
# CLI Application Setup
# =============================================================================

app = typer.Typer(
    name="zerohatch",
    help="Generate projects that pass lint, type-check and tests out of the box.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(Panel(
            f"[bold green]zerohatch[/] version [cyan]{__version__}[/]\n\n"
            f"[dim]Zero-error project generator[/]\n"
            f"[dim]Stacks: {', '.join(t.display_name for t in ProjectType)}[/]",
            border_style="green",
        ))
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """
    [bold]zerohatch[/] - Zero-error project generator.

    Every project is generated in a staging directory, formatted, linted,
    type-checked, tested and committed before it appears at its final path.
    """
    configure_logging(verbose)


# =============================================================================
# Interactive Prompts
# =============================================================================

def prompt_project_type() -> ProjectType:
    """Ask which stack to generate."""
    result = questionary.select(
        "What type of project?",
        choices=[
            questionary.Choice(title=f"{pt.value:<20} - {pt.description}", value=pt)
            for pt in ProjectType
        ],
        default=ProjectType.REACT_TYPESCRIPT,
    ).ask()

    if result is None:
        raise typer.Abort()
    return result


def prompt_features(project_type: ProjectType) -> FeaturesConfig:
    """Ask for optional features."""
    choices = [
        questionary.Choice("Tests", value="testing", checked=True),
        questionary.Choice("Linting", value="linting", checked=True),
        questionary.Choice("Formatting", value="prettier", checked=True),
        questionary.Choice("Docker configuration", value="docker", checked=False),
        questionary.Choice("GitHub Actions CI", value="cicd", checked=False),
        questionary.Choice("Documentation", value="documentation", checked=False),
    ]
    if project_type.runtime is Runtime.NODE:
        choices.insert(3, questionary.Choice("husky + lint-staged", value="husky", checked=True))

    selected = questionary.checkbox("Include features:", choices=choices).ask()
    if selected is None:
        raise typer.Abort()

    return FeaturesConfig(**{name: name in selected for name in FeaturesConfig.model_fields})


def prompt_text(message: str, default: str = "") -> str:
    result = questionary.text(message, default=default).ask()
    if result is None:
        raise typer.Abort()
    return result


# =============================================================================
# Output Helpers
# =============================================================================

def show_config(config: ProjectConfig) -> None:
    table = Table(title="Project Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Name", config.name)
    table.add_row("Type", config.type.display_name)
    table.add_row("Location", str(config.target_path))
    table.add_row("License", config.license or "MIT")
    table.add_row("Features", ", ".join(config.features.enabled_features) or "none")
    if config.github_enabled and config.github is not None:
        visibility = "private" if config.github.private else "public"
        table.add_row("GitHub", f"{config.github.repo_name or config.name} ({visibility})")

    console.print(table)


def show_result(result: GenerationResult) -> None:
    if result.success:
        lines = [
            f"[bold green]✓[/] Created [cyan]{result.project_path}[/]",
            f"  {result.files_generated} files in {result.duration:.1f}s",
        ]
        if result.quality_report is not None:
            metrics = result.quality_report.metrics
            lines.append(
                f"  type errors: {metrics.type_errors}, lint errors: {metrics.lint_errors}, "
                f"tests: {'passing' if metrics.tests_passing else 'not run'}"
            )
        if result.github_created:
            lines.append("  GitHub repository created")
        console.print(Panel("\n".join(lines), title="Success", border_style="green"))
    else:
        phase = result.failed_phase.value if result.failed_phase else "unknown"
        body = "\n".join(f"[red]•[/] {e}" for e in result.errors) or "Unknown error"
        console.print(Panel(body, title=f"Failed during {phase}", border_style="red"))

    for warning in result.warnings:
        rprint(f"[yellow]Warning:[/] {warning}")


def run_generation(config: ProjectConfig, settings: Settings) -> GenerationResult:
    """Run the pipeline with a live status line."""
    orchestrator = ProjectGenerationOrchestrator(settings)
    with console.status("Starting...") as status:
        def on_event(event: GenerationEvent) -> None:
            if event.name.startswith("phase:"):
                status.update(f"[bold]{config.name}[/]: {event.phase.value}...")

        result = orchestrator.generate(config, progress=on_event)

    show_result(result)
    return result


# =============================================================================
# New Command
# =============================================================================

@app.command()
def new(
    name: Annotated[str, typer.Argument(help="Name of the project to create")],
    project_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Stack: " + ", ".join(t.value for t in ProjectType)),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Parent directory (default: current directory)"),
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Short project description"),
    ] = None,
    author: Annotated[str | None, typer.Option("--author", "-a", help="Author name")] = None,
    license_: Annotated[str, typer.Option("--license", "-l", help="License identifier")] = "MIT",
    docker: Annotated[bool, typer.Option("--docker", help="Include Docker configuration")] = False,
    ci: Annotated[bool, typer.Option("--ci", help="Include GitHub Actions CI")] = False,
    docs: Annotated[bool, typer.Option("--docs", help="Include a docs/ directory")] = False,
    no_tests: Annotated[bool, typer.Option("--no-tests", help="Skip the test suite")] = False,
    husky: Annotated[
        bool, typer.Option("--husky/--no-husky", help="husky hooks for Node stacks"),
    ] = True,
    github: Annotated[bool, typer.Option("--github", help="Create a GitHub repository")] = False,
    public: Annotated[
        bool, typer.Option("--public", help="Make the GitHub repository public"),
    ] = False,
    topics: Annotated[
        list[str] | None, typer.Option("--topic", help="GitHub topic (repeatable)"),
    ] = None,
    no_strict: Annotated[
        bool, typer.Option("--no-strict", help="Record test failures instead of aborting"),
    ] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip all prompts")] = False,
) -> None:
    """
    Generate a new project.

    [bold]Examples:[/]

        zerohatch new my-app
        zerohatch new api --type python-fastapi --docker --ci --yes
        zerohatch new web --type nextjs --github --topic nextjs --yes
    """
    check = validate_project_name(name)
    if not check.valid:
        rprint(f"[red]Error:[/] {check.reason}")
        raise typer.Exit(1)

    should_prompt = not yes and project_type is None

    resolved_type: ProjectType
    if project_type:
        try:
            resolved_type = ProjectType(project_type.lower())
        except ValueError:
            valid = ", ".join(t.value for t in ProjectType)
            rprint(f"[red]Error:[/] Invalid project type '{project_type}'. Valid: {valid}")
            raise typer.Exit(1)
    elif should_prompt:
        resolved_type = prompt_project_type()
    else:
        resolved_type = ProjectType.REACT_TYPESCRIPT

    if should_prompt:
        features = prompt_features(resolved_type)
        description = description or prompt_text("Project description:", f"{name} project")
        author = author or prompt_text("Author name:") or None
    else:
        features = FeaturesConfig(
            testing=not no_tests,
            husky=husky and resolved_type.runtime is Runtime.NODE,
            docker=docker,
            cicd=ci,
            documentation=docs,
        )

    try:
        config = ProjectConfig(
            name=name,
            type=resolved_type,
            output_dir=output_dir,
            description=description,
            author=author,
            license=license_,
            features=features,
            github=GitHubConfig(enabled=True, private=not public, topics=tuple(topics or ()))
            if github else None,
        )
    except ValueError as e:
        rprint(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    if should_prompt:
        console.print()
        show_config(config)
        console.print()
        if not questionary.confirm("Generate project with these settings?", default=True).ask():
            raise typer.Abort()

    settings = Settings.load()
    if no_strict:
        settings = settings.model_copy(update={"strict_mode": False})

    result = run_generation(config, settings)
    if not result.success:
        raise typer.Exit(1)


# =============================================================================
# From-Request Command
# =============================================================================

@app.command("from-request")
def from_request(
    request: Annotated[str, typer.Argument(help="What to build, in plain words")],
    output_dir: Annotated[
        Path | None, typer.Option("--output", "-o", help="Parent directory"),
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
) -> None:
    """
    Generate a project from a free-text request.

    [bold]Example:[/]

        zerohatch from-request "a react typescript app called dashboard with tests and docker"
    """
    config = config_from_request(
        request, {"output_dir": str(output_dir) if output_dir else None}
    )
    if config is None:
        valid = ", ".join(t.display_name for t in ProjectType)
        rprint(f"[red]Error:[/] Could not tell which stack you want. Mention one of: {valid}")
        raise typer.Exit(1)

    show_config(config)
    if not yes and not questionary.confirm("Generate this project?", default=True).ask():
        raise typer.Abort()

    result = run_generation(config, Settings.load())
    if not result.success:
        raise typer.Exit(1)


# =============================================================================
# Informational Commands
# =============================================================================

@app.command("types")
def list_types() -> None:
    """List supported project types."""
    table = Table(title="Project Types")
    table.add_column("Type", style="cyan")
    table.add_column("Runtime", style="magenta")
    table.add_column("Description")

    for project_type in ProjectType:
        table.add_row(project_type.value, project_type.runtime.value, project_type.description)

    console.print(table)


@app.command("check-name")
def check_name(
    name: Annotated[str, typer.Argument(help="Project name to check")],
) -> None:
    """Check whether a name can be used for a project."""
    check = validate_project_name(name)
    if check.valid:
        rprint(f"[green]✓[/] '{name}' is a valid project name")
        return
    rprint(f"[red]✗[/] {check.reason}")
    raise typer.Exit(1)


@app.command()
def dashboard(
    export: Annotated[
        Path | None,
        typer.Option("--export", "-e", help="Write an HTML (or .json) report to this path"),
    ] = None,
) -> None:
    """Show quality metrics across generated projects."""
    settings = Settings.load()
    store = QualityDashboard(settings.dashboard_dir)

    if export is not None:
        path = store.export_dashboard(export)
        rprint(f"[green]✓[/] Dashboard exported to [cyan]{path}[/]")
        return

    data = store.get_dashboard_data()
    metrics = data.metrics
    if metrics.total_projects == 0:
        rprint("[dim]No projects generated yet.[/]")
        return

    summary = Table(title="Quality Dashboard", show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Projects generated", str(metrics.total_projects))
    summary.add_row("Zero-error rate", f"{metrics.zero_error_rate:.0%}")
    summary.add_row("Build success rate", f"{metrics.build_success_rate:.0%}")
    summary.add_row("Test pass rate", f"{metrics.test_pass_rate:.0%}")
    summary.add_row("Average generation time", f"{metrics.average_generation_time:.1f}s")
    summary.add_row("Errors found", str(metrics.total_errors_found))
    console.print(summary)

    recent = Table(title="Recent Projects")
    recent.add_column("Name", style="cyan")
    recent.add_column("Type")
    recent.add_column("Result")
    recent.add_column("Time", justify="right")
    for project in data.recent_projects[:10]:
        recent.add_row(
            project.name,
            project.type_label,
            "[green]passed[/]" if project.quality_passed else "[red]failed[/]",
            f"{project.generation_time:.1f}s",
        )
    console.print(recent)


if __name__ == "__main__":
    app()
