"""
zerohatch - Zero-Error Project Generator
========================================

A generator that produces new software projects which build, type-check,
lint and pass their tests before they ever appear on disk.

Features
--------
- **Five Stacks**: React (TypeScript), Next.js, Express (TypeScript),
  FastAPI and Python CLI (Typer)
- **Quality Gate**: every project is formatted, linted, type-checked and
  tested in a staging directory
- **Atomic Output**: the final directory only appears once everything passed
- **Git Ready**: repository, hooks and a Conventional Commits initial commit
- **Dashboard**: quality metrics across every generated project

Quick Start
-----------
```bash
pip install zerohatch

# Interactive
zerohatch new my-app

# Non-interactive
zerohatch new orders-api --type python-fastapi --docker --ci --yes
```

Example
-------
>>> from zerohatch import ProjectConfig, generate_project
>>> result = generate_project(ProjectConfig(name="my-app", type="nextjs"))
>>> result.success
True

Architecture
------------
- ``validator``: Configuration and project name checks
- ``templates``: Base templates per stack and feature file sets
- ``engine``: Jinja2 rendering and manifest updates
- ``codegen``: Writes a prepared template to the staging directory
- ``toolchains``: npm/yarn and uv/pip/ruff/mypy/pytest drivers
- ``quality``: Quality gate and reports
- ``vcs``: git and GitHub setup
- ``verifier``: Independent post-generation checks
- ``orchestrator``: The pipeline
- ``dashboard``: Persistent quality metrics
- ``cli``: Typer command line interface

License
-------
MIT License - see LICENSE file for details.
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__license__ = "MIT"

# =============================================================================
# Public API Exports
# =============================================================================
# What library users need; the CLI lives in zerohatch.cli

from zerohatch.errors import ZerohatchError
from zerohatch.models import FeaturesConfig, GitHubConfig, ProjectConfig, ProjectType
from zerohatch.orchestrator import (
    GenerationResult,
    ProjectGenerationOrchestrator,
    generate_project,
    get_supported_project_types,
    validate_project_name,
)
from zerohatch.settings import Settings


__all__ = [
    # Configuration models
    "FeaturesConfig",
    "GitHubConfig",
    "ProjectConfig",
    "ProjectType",
    "Settings",
    # Pipeline
    "GenerationResult",
    "ProjectGenerationOrchestrator",
    "ZerohatchError",
    "generate_project",
    "get_supported_project_types",
    "validate_project_name",
    # Version info
    "__version__",
]
