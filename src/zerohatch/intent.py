"""
zerohatch.intent - Free-Text Project Requests
=============================================

Turns a one-line request such as ``"create a fastapi service called
orders-api with docker and github"`` into a :class:`ProjectConfig`.

Detection is keyword based and deliberately simple:

- **Stack**: first match wins, in this order: react, next, express,
  fastapi, cli
- **Name**: ``called X``, ``named X``, ``project X``, ``app X``,
  ``create X``; defaults to ``my-<type>-app``
- **Features**: tests, docker/container, ci/github actions; linting and
  formatting are always on; husky for Node stacks
- **GitHub**: ``github`` or ``repository`` enables it, ``private`` sets
  visibility
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from zerohatch.models import FeaturesConfig, GitHubConfig, ProjectConfig, ProjectType, Runtime


STACK_KEYWORDS: list[tuple[ProjectType, tuple[str, ...]]] = [
    (ProjectType.REACT_TYPESCRIPT, ("react",)),
    (ProjectType.NEXTJS, ("next", "nextjs", "next.js")),
    (ProjectType.EXPRESS_TYPESCRIPT, ("express",)),
    (ProjectType.PYTHON_FASTAPI, ("fastapi", "fast api")),
    (ProjectType.PYTHON_CLI, ("cli", "command-line", "command line")),
]

NAME_PATTERNS = [
    re.compile(rf"\b{keyword}\s+[\"']?([a-z0-9][a-z0-9_-]*)[\"']?", re.IGNORECASE)
    for keyword in ("called", "named", "project", "app", "create")
]

# Words that follow "create"/"app"/"project" without being a name
NOT_NAMES = frozenset({
    "a", "an", "the", "new", "my", "with", "for", "using", "that", "which",
    "in", "and", "called", "named",
})


def _mentions(text: str, *words: str) -> bool:
    return any(re.search(rf"(?<![\w-]){re.escape(word)}(?![\w-])", text) for word in words)


def detect_stack(text: str) -> ProjectType | None:
    """
    The stack a request asks for, or ``None``.

    Examples
    --------
    >>> detect_stack("Build me a Next.js blog")
    <ProjectType.NEXTJS: 'nextjs'>
    """
    lowered = text.lower()
    for project_type, keywords in STACK_KEYWORDS:
        if _mentions(lowered, *keywords):
            return project_type
    return None


def extract_name(text: str) -> str | None:
    """The project name a request mentions, or ``None``."""
    for pattern in NAME_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(1)
            if candidate.lower() not in NOT_NAMES:
                return candidate
    return None


def config_from_request(
    text: str, context: Mapping[str, Any] | None = None
) -> ProjectConfig | None:
    """
    Build a configuration from a free-text request.

    Parameters
    ----------
    text : str
        The request.

    context : Mapping[str, Any] | None
        Optional ``description``, ``author``, ``license`` and
        ``output_dir`` values.

    Returns
    -------
    ProjectConfig | None
        ``None`` when no supported stack is mentioned. The name is not
        validated here.
    """
    project_type = detect_stack(text)
    if project_type is None:
        return None

    context = context or {}
    lowered = text.lower()
    name = extract_name(text) or f"my-{project_type.value}-app"

    features = FeaturesConfig(
        testing=_mentions(lowered, "test", "tests", "testing"),
        linting=True,
        prettier=True,
        husky=project_type.runtime is Runtime.NODE,
        docker=_mentions(lowered, "docker", "container", "containerized"),
        cicd=_mentions(lowered, "ci", "ci/cd", "github actions"),
        documentation=True,
    )

    github = None
    if _mentions(lowered, "github", "repository", "repo"):
        github = GitHubConfig(
            enabled=True,
            private=_mentions(lowered, "private"),
            description=context.get("description"),
        )

    output_dir = context.get("output_dir")
    return ProjectConfig(
        name=name,
        type=project_type,
        output_dir=Path(output_dir) if output_dir else None,
        description=context.get("description"),
        author=context.get("author"),
        license=context.get("license") or "MIT",
        features=features,
        github=github,
    )
