"""
zerohatch.vcs - Git Repository Setup
====================================

:class:`GitInitializer` turns a staged project into a git repository with
one initial commit, installs repository hooks, and optionally publishes the
repository to GitHub through the ``gh`` CLI.

Local Setup
-----------
1. ``git init`` with ``main`` as the default branch
2. ``.gitignore`` for the stack, unless the template already wrote one
3. ``.git/hooks/pre-commit`` (the lint, type-check, format check and test
   scripts the project defines) and ``.git/hooks/commit-msg`` (Conventional
   Commits)
4. ``git add .`` and ``git commit --no-verify -m "feat: initial project setup"``
   under the configured identity

Local failures raise :class:`~zerohatch.errors.GenerationError`.

Remote Setup
------------
``setup_github`` never fails the run. Missing or unauthenticated ``gh``, or a
failing ``gh repo create``, is turned into written instructions
(``GITHUB_SETUP.md``) and a result with ``created=False``.

Usage Example
-------------
>>> git = GitInitializer()
>>> git.initialize(Path("/tmp/staging/my-app"), ProjectType.NEXTJS)
>>> git.setup_github(Path("/tmp/staging/my-app"), "my-app").created
False
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from jinja2 import TemplateError

from zerohatch.engine import create_jinja_env
from zerohatch.errors import GenerationError, InfraError
from zerohatch.hooks import INITIAL_COMMIT_MESSAGE, repository_hooks
from zerohatch.models import ProjectType
from zerohatch.runner import CommandResult, CommandRunner
from zerohatch.toolchains import NodeToolchain
from zerohatch.templates.stacks import GITIGNORES


logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
INSTRUCTIONS_FILE = "GITHUB_SETUP.md"
REPO_URL = re.compile(r"https://github\.com/[\w.-]+/[\w.-]+")

INSTRUCTIONS = """\
# GitHub Setup

The repository for **{name}** could not be created automatically.

Reason: {reason}

## Option 1: GitHub CLI

```bash
gh auth login
gh repo create {name} {visibility} --source=. --remote=origin --push
```

## Option 2: Manually

1. Create an empty repository named `{name}` at https://github.com/new
2. Push this project:

```bash
git remote add origin https://github.com/<your-username>/{name}.git
git push -u origin {branch}
```
{topics}"""


@dataclass
class GitHubSetupResult:
    """
    Outcome of :meth:`GitInitializer.setup_github`.

    Attributes
    ----------
    created : bool
        The remote repository exists and the project was pushed.

    url : str | None
        Repository URL when created.

    instructions_path : Path | None
        ``GITHUB_SETUP.md`` written when creation failed.

    error : str | None
        Why creation failed.
    """

    created: bool
    url: str | None = None
    instructions_path: Path | None = None
    error: str | None = None


class GitInitializer:
    """
    Initialize git repositories for generated projects.

    Parameters
    ----------
    runner : CommandRunner | None
        Executes ``git`` and ``gh``.

    user_name, user_email : str
        Identity for the commits made by the generator.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        user_name: str = "zerohatch",
        user_email: str = "zerohatch@users.noreply.github.com",
    ) -> None:
        self.runner = runner or CommandRunner()
        self.user_name = user_name
        self.user_email = user_email

    @property
    def identity_env(self) -> dict[str, str]:
        return {
            "GIT_AUTHOR_NAME": self.user_name,
            "GIT_AUTHOR_EMAIL": self.user_email,
            "GIT_COMMITTER_NAME": self.user_name,
            "GIT_COMMITTER_EMAIL": self.user_email,
        }

    # -------------------------------------------------------------------------
    # Local Repository
    # -------------------------------------------------------------------------

    def initialize(
        self,
        project_dir: Path,
        project_type: ProjectType,
        enable_hooks: bool = True,
        include_gitignore: bool = True,
    ) -> None:
        """
        Create the repository and the initial commit.

        Raises
        ------
        GenerationError
            If git is missing or any git command fails.
        """
        if not self.runner.available("git"):
            raise GenerationError("Git initialization failed", ["git is not installed"])

        self._git(project_dir, "init")
        self._git(project_dir, "symbolic-ref", "HEAD", f"refs/heads/{DEFAULT_BRANCH}")

        try:
            if include_gitignore:
                gitignore = project_dir / ".gitignore"
                if not gitignore.exists():
                    gitignore.write_text(self._gitignore(project_type), encoding="utf-8")

            if enable_hooks:
                hooks_dir = project_dir / ".git" / "hooks"
                hooks_dir.mkdir(parents=True, exist_ok=True)
                scripts = NodeToolchain.scripts(project_dir)
                for name, script in repository_hooks(project_type.runtime, scripts).items():
                    hook = hooks_dir / name
                    hook.write_text(script, encoding="utf-8")
                    hook.chmod(0o755)
        except (OSError, TemplateError) as e:
            raise GenerationError("Git initialization failed", [str(e)]) from e

        self._git(project_dir, "add", ".")
        self._commit(project_dir, INITIAL_COMMIT_MESSAGE)
        logger.info("Initialized git repository in %s", project_dir)

    @staticmethod
    def _gitignore(project_type: ProjectType) -> str:
        source = GITIGNORES[project_type.runtime]
        return create_jinja_env().get_template(source).render()

    def _git(self, project_dir: Path, *args: str) -> CommandResult:
        result = self.runner.run(["git", *args], cwd=project_dir, env=self.identity_env)
        if not result.ok:
            raise GenerationError("Git initialization failed", [result.describe()])
        return result

    def _commit(self, project_dir: Path, message: str) -> CommandResult:
        # Hooks need installed tooling; the generator's own commits bypass them
        return self._git(project_dir, "commit", "--no-verify", "-m", message)

    # -------------------------------------------------------------------------
    # GitHub
    # -------------------------------------------------------------------------

    def setup_github(
        self,
        project_dir: Path,
        repo_name: str,
        private: bool = True,
        description: str | None = None,
        topics: Iterable[str] = (),
        workflows: Mapping[str, str] | None = None,
    ) -> GitHubSetupResult:
        """
        Create a GitHub repository and push the project.

        Parameters
        ----------
        project_dir : Path
            Initialized repository.

        repo_name : str
            Repository name.

        private : bool, default=True
            Repository visibility.

        description : str | None
            Repository description.

        topics : Iterable[str]
            Topics added after creation.

        workflows : Mapping[str, str] | None
            Workflow files (relative path -> content) committed before the
            push when they don't exist yet.

        Returns
        -------
        GitHubSetupResult
            ``created=False`` with an instructions file on any failure.
        """
        topics = list(topics)
        try:
            self._require_gh(project_dir)
            if workflows:
                self._commit_workflows(project_dir, workflows)
            url = self._create_repository(project_dir, repo_name, private, description)
            if topics:
                self._add_topics(project_dir, topics)
        except InfraError as e:
            logger.warning("GitHub setup skipped: %s", e.message)
            instructions = self._write_instructions(
                project_dir, repo_name, private, topics, e.message
            )
            return GitHubSetupResult(
                created=False, instructions_path=instructions, error=e.message
            )

        logger.info("Created GitHub repository %s", url or repo_name)
        return GitHubSetupResult(created=True, url=url)

    def _require_gh(self, project_dir: Path) -> None:
        if not self.runner.available("gh"):
            raise InfraError("GitHub CLI (gh) is not installed")
        status = self.runner.run(["gh", "auth", "status"], cwd=project_dir)
        if not status.ok:
            raise InfraError("GitHub CLI is not authenticated (run 'gh auth login')")

    def _commit_workflows(self, project_dir: Path, workflows: Mapping[str, str]) -> None:
        added = []
        try:
            for relative, content in workflows.items():
                path = project_dir / relative
                if path.exists():
                    continue
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
                added.append(relative)
        except OSError as e:
            raise InfraError(f"Could not write CI workflows: {e}") from e
        if not added:
            return
        try:
            self._git(project_dir, "add", *added)
            self._commit(project_dir, "ci: add GitHub Actions workflows")
        except GenerationError as e:
            raise InfraError("Could not commit CI workflows", e.details) from e

    def _create_repository(
        self,
        project_dir: Path,
        repo_name: str,
        private: bool,
        description: str | None,
    ) -> str | None:
        argv = [
            "gh", "repo", "create", repo_name,
            "--private" if private else "--public",
            "--source=.", "--remote=origin", "--push",
        ]
        if description:
            argv += ["--description", description]
        result = self.runner.run(argv, cwd=project_dir, env=self.identity_env)
        if not result.ok:
            raise InfraError("GitHub repository creation failed", [result.describe()])
        match = REPO_URL.search(result.output)
        return match.group(0) if match else None

    def _add_topics(self, project_dir: Path, topics: list[str]) -> None:
        argv = ["gh", "repo", "edit"]
        for topic in topics:
            argv += ["--add-topic", topic]
        result = self.runner.run(argv, cwd=project_dir)
        if not result.ok:
            # The repository exists; missing topics are not worth failing over
            logger.warning("Could not add topics: %s", result.describe())

    def _write_instructions(
        self,
        project_dir: Path,
        repo_name: str,
        private: bool,
        topics: list[str],
        reason: str,
    ) -> Path | None:
        topic_section = ""
        if topics:
            topic_section = (
                "\n## Topics\n\n```bash\ngh repo edit "
                + " ".join(f"--add-topic {t}" for t in topics)
                + "\n```\n"
            )
        content = INSTRUCTIONS.format(
            name=repo_name,
            reason=reason,
            visibility="--private" if private else "--public",
            branch=DEFAULT_BRANCH,
            topics=topic_section,
        )
        path = project_dir / INSTRUCTIONS_FILE
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write %s: %s", INSTRUCTIONS_FILE, e)
            return None
        return path
