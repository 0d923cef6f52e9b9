"""
pytest configuration and shared fixtures for zerohatch tests.

No test runs a real package manager, linter or git: every component that
shells out takes a :class:`~zerohatch.runner.CommandRunner`, and the tests
hand it a :class:`FakeRunner` instead.

Fixtures
--------
runner : FakeRunner
    Records every command; all commands succeed unless told otherwise.

settings : Settings
    Settings with the dashboard inside ``tmp_path``.

output_dir : Path
    Empty parent directory for generated projects.

react_config, fastapi_config, cli_config : ProjectConfig
    Configurations for common stacks.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from zerohatch.models import FeaturesConfig, ProjectConfig, ProjectType
from zerohatch.runner import COMMAND_NOT_FOUND, CommandResult, CommandRunner
from zerohatch.settings import Settings


# =============================================================================
# Fake Command Runner
# =============================================================================

Handler = Callable[[tuple[str, ...], Path | None], CommandResult]

DEFAULT_TOOLS = ("npm", "yarn", "uv", "python3", "git", "gh")


@dataclass
class RecordedCall:
    """One command the code under test asked to run."""

    argv: tuple[str, ...]
    cwd: Path | None
    env: dict[str, str] = field(default_factory=dict)

    @property
    def command(self) -> str:
        return " ".join(self.argv)


def _contains(argv: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    """Whether ``pattern`` occurs as a contiguous run inside ``argv``."""
    size = len(pattern)
    return any(argv[i:i + size] == pattern for i in range(len(argv) - size + 1))


class FakeRunner(CommandRunner):
    """
    In-memory stand-in for :class:`CommandRunner`.

    Responses are registered with :meth:`on` against a run of argv words;
    the most recent matching registration wins. Unmatched commands exit 0
    with no output. ``git init`` creates ``.git`` in the working directory.
    """

    def __init__(self, tools: Iterable[str] = DEFAULT_TOOLS) -> None:
        super().__init__()
        self.tools = set(tools)
        self.calls: list[RecordedCall] = []
        self._responses: list[tuple[tuple[str, ...], Handler]] = []
        self.on("git", "init", handler=_git_init)

    def on(
        self,
        *pattern: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        handler: Handler | None = None,
    ) -> FakeRunner:
        if handler is None:
            def handler(argv: tuple[str, ...], cwd: Path | None) -> CommandResult:
                return CommandResult(argv, returncode, stdout, stderr)
        self._responses.append((tuple(pattern), handler))
        return self

    def available(self, tool: str) -> bool:
        return tool in self.tools

    def run(self, argv, cwd=None, env=None) -> CommandResult:
        argv = tuple(str(part) for part in argv)
        self.calls.append(RecordedCall(argv, cwd, dict(env or {})))
        if argv[0] not in self.tools and not argv[0].endswith("python"):
            return CommandResult(argv, COMMAND_NOT_FOUND)
        for pattern, handler in reversed(self._responses):
            if _contains(argv, pattern):
                return handler(argv, cwd)
        return CommandResult(argv, 0)

    # -------------------------------------------------------------------------
    # Assertions Helpers
    # -------------------------------------------------------------------------

    @property
    def commands(self) -> list[str]:
        return [call.command for call in self.calls]

    def ran(self, *pattern: str) -> bool:
        return any(_contains(call.argv, pattern) for call in self.calls)

    def calls_matching(self, *pattern: str) -> list[RecordedCall]:
        return [call for call in self.calls if _contains(call.argv, pattern)]


def _git_init(argv: tuple[str, ...], cwd: Path | None) -> CommandResult:
    if cwd is not None:
        (Path(cwd) / ".git").mkdir(exist_ok=True)
    return CommandResult(argv, 0, "Initialized empty Git repository")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def runner() -> FakeRunner:
    """A runner where every tool is installed and every command succeeds."""
    return FakeRunner()


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty parent directory for generated projects."""
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """
    Settings isolated from the user's home directory.

    Returns
    -------
    Settings
        Dashboard under ``tmp_path/home``; strict mode and hooks on.
    """
    return Settings(dashboard_dir=tmp_path / "home", git_user_name="Test Bot",
                    git_user_email="bot@example.com")


@pytest.fixture
def react_config(output_dir: Path) -> ProjectConfig:
    """React + TypeScript app with tests and linting."""
    return ProjectConfig(
        name="test-app",
        type=ProjectType.REACT_TYPESCRIPT,
        output_dir=output_dir,
        description="A test app",
        author="Test Author",
    )


@pytest.fixture
def fastapi_config(output_dir: Path) -> ProjectConfig:
    """FastAPI service with Docker."""
    return ProjectConfig(
        name="test-api",
        type=ProjectType.PYTHON_FASTAPI,
        output_dir=output_dir,
        features=FeaturesConfig(docker=True),
    )


@pytest.fixture
def cli_config(output_dir: Path) -> ProjectConfig:
    """Typer command-line tool."""
    return ProjectConfig(
        name="my-tool",
        type=ProjectType.PYTHON_CLI,
        output_dir=output_dir,
    )


# =============================================================================
# pytest Configuration
# =============================================================================

def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: tests that run the whole pipeline with a fake runner"
    )
