"""
Optional feature files added on top of a stack template: Docker, CI
workflows and documentation. Bodies live under ``docker/``, ``ci/`` and
``docs/`` in this package.
"""

from __future__ import annotations

from zerohatch.models import ProjectType, Runtime
from zerohatch.templates import TemplateFile


# =============================================================================
# Docker
# =============================================================================


def docker_files(project_type: ProjectType) -> list[TemplateFile]:
    """Dockerfile, .dockerignore and docker-compose.yml for ``project_type``."""
    stack = project_type.value.replace("-", "_")
    return [
        TemplateFile("Dockerfile", source=f"docker/{stack}/Dockerfile.j2"),
        TemplateFile(
            ".dockerignore", source=f"docker/{project_type.runtime.value}/dockerignore.j2"
        ),
        TemplateFile("docker-compose.yml", source=f"docker/{stack}/docker-compose.yml.j2"),
    ]


# =============================================================================
# CI Workflows
# =============================================================================


def ci_files(project_type: ProjectType) -> list[TemplateFile]:
    """GitHub Actions workflows for ``project_type``."""
    if project_type.runtime is Runtime.PYTHON:
        return [TemplateFile(".github/workflows/ci.yml", source="ci/python/ci.yml.j2")]
    return [
        TemplateFile(".github/workflows/ci.yml", source="ci/node/ci.yml.j2"),
        TemplateFile(".github/workflows/release.yml", source="ci/node/release.yml.j2"),
    ]


# =============================================================================
# Documentation
# =============================================================================


def docs_files() -> list[TemplateFile]:
    """Starter documentation."""
    return [TemplateFile("docs/index.md", source="docs/index.md.j2")]
