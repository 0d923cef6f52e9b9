"""
zerohatch.models - Pydantic Models for Project Configuration
============================================================

This module defines the configuration a caller hands to the generation
pipeline. We use Pydantic for several key benefits:

1. **Type coercion**: strings from the CLI or JSON become enums and paths
2. **Immutability**: ``ProjectConfig`` is frozen for the duration of a run
3. **Serialization**: configs round-trip through ``model_dump`` for logging
4. **Discriminated unions**: per-stack options are a closed, typed union

Note that the project *name* is deliberately not validated here. Name rules
live in :mod:`zerohatch.validator` so that a bad name is reported together
with every other problem in one ``ValidationResult`` instead of raising on
construction.

Architecture Notes
------------------
::

    ProjectConfig (main, frozen)
    ├── ProjectType (enum) ── Runtime (node | python)
    ├── FeaturesConfig
    ├── GitHubConfig
    └── StackOptions (discriminated by ``kind``)
        ├── ReactOptions
        ├── NextOptions
        ├── ExpressOptions
        ├── FastAPIOptions
        └── PythonCliOptions

Usage Example
-------------
>>> from zerohatch.models import ProjectConfig, ProjectType
>>> config = ProjectConfig(
...     name="my-app",
...     type=ProjectType.REACT_TYPESCRIPT,
...     output_dir="/tmp/out",
... )
>>> config.target_path
PosixPath('/tmp/out/my-app')
"""

from __future__ import annotations

import keyword
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enumerations
# =============================================================================

class Runtime(str, Enum):
    """
    Language runtime behind a project type.

    The runtime decides which toolchain (package manager, linter, type
    checker, test runner) the quality gate drives.
    """

    NODE = "node"
    PYTHON = "python"


class ProjectType(str, Enum):
    """
    Supported stacks. Each value has exactly one template in
    :mod:`zerohatch.templates`.

    Attributes
    ----------
    REACT_TYPESCRIPT : str
        Single-page React app with TypeScript, Jest and react-scripts.

    NEXTJS : str
        Next.js app with TypeScript and the pages router.

    EXPRESS_TYPESCRIPT : str
        Express HTTP service compiled with tsc, tested with Jest/supertest.

    PYTHON_FASTAPI : str
        FastAPI service with ruff, mypy and pytest.

    PYTHON_CLI : str
        Typer command-line tool with ruff, mypy and pytest.

    Examples
    --------
    >>> ProjectType.NEXTJS.runtime
    <Runtime.NODE: 'node'>
    >>> ProjectType("python-fastapi").display_name
    'FastAPI'
    """

    REACT_TYPESCRIPT = "react-typescript"
    NEXTJS = "nextjs"
    EXPRESS_TYPESCRIPT = "express-typescript"
    PYTHON_FASTAPI = "python-fastapi"
    PYTHON_CLI = "python-cli"

    @property
    def runtime(self) -> Runtime:
        """Runtime whose toolchain builds and checks this stack."""
        if self.value.startswith("python-"):
            return Runtime.PYTHON
        return Runtime.NODE

    @property
    def display_name(self) -> str:
        """Short label for tables and reports."""
        names = {
            ProjectType.REACT_TYPESCRIPT: "React (TS)",
            ProjectType.NEXTJS: "Next.js",
            ProjectType.EXPRESS_TYPESCRIPT: "Express (TS)",
            ProjectType.PYTHON_FASTAPI: "FastAPI",
            ProjectType.PYTHON_CLI: "Python CLI",
        }
        return names[self]

    @property
    def description(self) -> str:
        """Human-readable description for CLI prompts."""
        descriptions = {
            ProjectType.REACT_TYPESCRIPT: "React single-page app with TypeScript",
            ProjectType.NEXTJS: "Next.js web app with TypeScript",
            ProjectType.EXPRESS_TYPESCRIPT: "Express API service with TypeScript",
            ProjectType.PYTHON_FASTAPI: "FastAPI web service",
            ProjectType.PYTHON_CLI: "Python command-line tool with Typer",
        }
        return descriptions[self]

    @property
    def has_build_step(self) -> bool:
        """Whether the stack produces build output that must compile."""
        return self.runtime is Runtime.NODE


# =============================================================================
# Configuration Sub-Models
# =============================================================================

class FeaturesConfig(BaseModel):
    """
    Optional features for the generated project.

    Attributes
    ----------
    testing : bool
        Include a test suite and test runner configuration.

    linting : bool
        Include linter configuration.

    prettier : bool
        Include formatter configuration (Prettier for Node, ruff format
        for Python).

    husky : bool
        Install husky + lint-staged commit hooks. Node stacks only.

    docker : bool
        Add Dockerfile, .dockerignore and docker-compose.yml.

    cicd : bool
        Add GitHub Actions workflow(s) tailored to the stack.

    documentation : bool
        Add a ``docs/`` directory with an index page.
    """

    model_config = ConfigDict(frozen=True)

    testing: bool = Field(default=True, description="Include tests")
    linting: bool = Field(default=True, description="Include linter config")
    prettier: bool = Field(default=True, description="Include formatter config")
    husky: bool = Field(default=False, description="Node commit hooks via husky")
    docker: bool = Field(default=False, description="Include Docker configuration")
    cicd: bool = Field(default=False, description="Include CI workflows")
    documentation: bool = Field(default=False, description="Include docs/ directory")

    @property
    def enabled_features(self) -> list[str]:
        """
        Names of features set to True.

        Returns
        -------
        list[str]
            Field names in declaration order.
        """
        return [
            name for name, value in self.model_dump().items()
            if value is True
        ]


class GitHubConfig(BaseModel):
    """
    Remote repository settings.

    Attributes
    ----------
    enabled : bool
        Attempt to create and push a GitHub repository.

    repo_name : str | None
        Repository name. Defaults to the project name.

    private : bool
        Repository visibility.

    topics : list[str]
        Repository topics (GitHub allows at most 20).

    description : str | None
        Repository description shown on GitHub.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    repo_name: str | None = None
    private: bool = True
    topics: tuple[str, ...] = ()
    description: str | None = None


# =============================================================================
# Per-Stack Options
# =============================================================================

class ReactOptions(BaseModel):
    """Options for ``react-typescript`` projects."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["react-typescript"] = "react-typescript"
    port: int = Field(default=3000, ge=1, le=65535)


class NextOptions(BaseModel):
    """Options for ``nextjs`` projects."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["nextjs"] = "nextjs"
    port: int = Field(default=3000, ge=1, le=65535)


class ExpressOptions(BaseModel):
    """Options for ``express-typescript`` projects."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["express-typescript"] = "express-typescript"
    port: int = Field(default=3000, ge=1, le=65535)


class FastAPIOptions(BaseModel):
    """Options for ``python-fastapi`` projects."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["python-fastapi"] = "python-fastapi"
    port: int = Field(default=8000, ge=1, le=65535)
    python_version: Literal["3.11", "3.12", "3.13"] = "3.12"


class PythonCliOptions(BaseModel):
    """Options for ``python-cli`` projects."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["python-cli"] = "python-cli"
    python_version: Literal["3.11", "3.12", "3.13"] = "3.12"
    command_name: str | None = Field(
        default=None,
        description="Console script name (defaults to the project name)",
    )


StackOptions = Annotated[
    ReactOptions | NextOptions | ExpressOptions | FastAPIOptions | PythonCliOptions,
    Field(discriminator="kind"),
]

DEFAULT_STACK_OPTIONS: dict[ProjectType, type[BaseModel]] = {
    ProjectType.REACT_TYPESCRIPT: ReactOptions,
    ProjectType.NEXTJS: NextOptions,
    ProjectType.EXPRESS_TYPESCRIPT: ExpressOptions,
    ProjectType.PYTHON_FASTAPI: FastAPIOptions,
    ProjectType.PYTHON_CLI: PythonCliOptions,
}


# =============================================================================
# Main Configuration Model
# =============================================================================

class ProjectConfig(BaseModel):
    """
    Complete configuration for one generation run.

    The model is frozen: nothing in the pipeline may change the
    configuration once a run has started.

    Attributes
    ----------
    name : str
        Project directory and package name. Checked by ``ConfigValidator``.

    type : ProjectType
        Stack to generate.

    output_dir : Path | None
        Parent directory of the final project. ``None`` means the current
        working directory.

    description, author, license : str | None
        Metadata substituted into templates and the manifest.

    features : FeaturesConfig
        Optional features.

    github : GitHubConfig | None
        Remote repository settings.

    stack_options : StackOptions | None
        Stack-specific knobs; ``None`` uses the stack defaults.

    Examples
    --------
    >>> config = ProjectConfig(name="api", type="python-fastapi")
    >>> config.package_name
    'api'
    >>> config.resolved_stack_options.port
    8000
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Project name")
    type: ProjectType = Field(description="Stack to generate")
    output_dir: Path | None = Field(default=None, description="Parent directory")
    description: str | None = Field(default=None, max_length=500)
    author: str | None = Field(default=None, max_length=200)
    license: str | None = Field(default="MIT", max_length=64)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    github: GitHubConfig | None = None
    stack_options: StackOptions | None = None

    @field_validator("output_dir")
    @classmethod
    def expand_output_dir(cls, v: Path | None) -> Path | None:
        """Expand ``~`` so existence checks see the real path."""
        if v is None:
            return None
        return v.expanduser()

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def resolved_output_dir(self) -> Path:
        """Absolute parent directory of the final project."""
        return (self.output_dir or Path.cwd()).resolve()

    @property
    def target_path(self) -> Path:
        """Final project location: ``output_dir / name``."""
        return self.resolved_output_dir / self.name

    @property
    def package_name(self) -> str:
        """
        Import-safe package name.

        Hyphens become underscores and the name is lowercased. A name that
        would start with a digit gets an ``app_`` prefix and a Python keyword
        gets a trailing underscore.

        Examples
        --------
        >>> ProjectConfig(name="My-Tool", type="python-cli").package_name
        'my_tool'
        >>> ProjectConfig(name="2048-game", type="python-cli").package_name
        'app_2048_game'
        >>> ProjectConfig(name="class", type="python-cli").package_name
        'class_'
        """
        name = self.name.replace("-", "_").lower()
        if name[:1].isdigit():
            name = f"app_{name}"
        if keyword.iskeyword(name):
            name = f"{name}_"
        return name

    @property
    def resolved_stack_options(self) -> BaseModel:
        """Explicit stack options, or the defaults for this project type."""
        if self.stack_options is not None:
            return self.stack_options
        return DEFAULT_STACK_OPTIONS[self.type]()

    @property
    def github_enabled(self) -> bool:
        """True if remote repository creation was requested."""
        return self.github is not None and self.github.enabled
