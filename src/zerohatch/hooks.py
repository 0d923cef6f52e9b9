"""
zerohatch.hooks - Commit Hook Content
=====================================

Hook scripts and hook-manager configuration for generated projects.

Two layers are produced:

- **Project hooks** (committed with the project): husky + lint-staged for
  Node stacks, ``.pre-commit-config.yaml`` for Python stacks. Written by
  :class:`~zerohatch.quality.QualityEnforcer`.
- **Repository hooks** (``.git/hooks/pre-commit`` and ``commit-msg``):
  plain POSIX shell, working before any hook manager is installed.
  Written by :class:`~zerohatch.vcs.GitInitializer`.

Both layers enforce the same Conventional Commits pattern.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from zerohatch.models import Runtime


COMMIT_TYPES = (
    "feat", "fix", "docs", "style", "refactor", "test",
    "chore", "perf", "ci", "build", "revert",
)

COMMIT_MSG_PATTERN = rf"^({'|'.join(COMMIT_TYPES)})(\(.+\))?: .{{1,100}}$"

INITIAL_COMMIT_MESSAGE = "feat: initial project setup"

HOOK_DEV_DEPENDENCIES = {
    "husky": "^9.1.4",
    "lint-staged": "^15.2.9",
}


def is_conventional(message: str) -> bool:
    """
    Check the first line of a commit message.

    Examples
    --------
    >>> is_conventional("feat(api): add login")
    True
    >>> is_conventional("added stuff")
    False
    """
    first_line = message.splitlines()[0] if message else ""
    return re.match(COMMIT_MSG_PATTERN, first_line) is not None


# =============================================================================
# Repository Hooks (.git/hooks)
# =============================================================================

COMMIT_MSG_HOOK = f"""\
#!/bin/sh
# Enforce Conventional Commits on the first line of the message.
first_line=$(head -n1 "$1")
case "$first_line" in
  Merge*|Revert*) exit 0 ;;
esac
if ! printf '%s\\n' "$first_line" | grep -Eq '{COMMIT_MSG_PATTERN}'; then
  echo "Commit message must follow Conventional Commits, e.g. 'feat: add login page'." >&2
  echo "Allowed types: {', '.join(COMMIT_TYPES)}" >&2
  exit 1
fi
"""

# package.json script -> pre-commit command, in the order they run
NODE_PRE_COMMIT_CHECKS = {
    "lint": "npm run --silent lint",
    "typecheck": "npm run --silent typecheck",
    "format:check": "npm run --silent format:check",
    "test": "npm test --silent -- --watchAll=false --passWithNoTests",
}

PYTHON_PRE_COMMIT_HOOK = """\
#!/bin/sh
set -e
if [ -f uv.lock ]; then
  RUN="uv run python -m"
elif [ -x .venv/bin/python ]; then
  RUN=".venv/bin/python -m"
else
  RUN="python3 -m"
fi
$RUN ruff format --check .
$RUN ruff check .
$RUN mypy src
$RUN pytest -q || [ $? -eq 5 ]
"""


def node_pre_commit_hook(scripts: Iterable[str] | None = None) -> str:
    """
    Pre-commit script running the checks among ``scripts``.

    Parameters
    ----------
    scripts : Iterable[str] | None
        Script names defined in ``package.json``. ``None`` means every check.

    Examples
    --------
    >>> print(node_pre_commit_hook(["build", "typecheck"]), end="")
    #!/bin/sh
    set -e
    npm run --silent typecheck
    """
    available = set(NODE_PRE_COMMIT_CHECKS if scripts is None else scripts)
    lines = ["#!/bin/sh", "set -e"]
    lines += [
        command for script, command in NODE_PRE_COMMIT_CHECKS.items()
        if script in available
    ]
    return "\n".join(lines) + "\n"


def repository_hooks(
    runtime: Runtime, scripts: Iterable[str] | None = None
) -> dict[str, str]:
    """
    Hook name -> script for ``.git/hooks``.

    ``scripts`` are the ``package.json`` script names of a Node project; the
    pre-commit hook only calls the ones that exist.
    """
    if runtime is Runtime.NODE:
        pre_commit = node_pre_commit_hook(scripts)
    else:
        pre_commit = PYTHON_PRE_COMMIT_HOOK
    return {
        "pre-commit": pre_commit,
        "commit-msg": COMMIT_MSG_HOOK,
    }


# =============================================================================
# Project Hooks (committed)
# =============================================================================

HUSKY_PRE_COMMIT = """\
npx lint-staged
"""

HUSKY_COMMIT_MSG = f"""\
first_line=$(head -n1 "$1")
if ! printf '%s\\n' "$first_line" | grep -Eq '{COMMIT_MSG_PATTERN}'; then
  echo "Commit message must follow Conventional Commits, e.g. 'feat: add login page'." >&2
  exit 1
fi
"""

PRE_COMMIT_CONFIG = f"""\
repos:
  - repo: local
    hooks:
      - id: ruff-format
        name: ruff format
        entry: ruff format
        language: system
        types: [python]
      - id: ruff-check
        name: ruff check
        entry: ruff check --fix
        language: system
        types: [python]
      - id: mypy
        name: mypy
        entry: mypy src
        language: system
        types: [python]
        pass_filenames: false
      - id: conventional-commit
        name: conventional commit message
        entry: '{COMMIT_MSG_PATTERN}'
        language: pygrep
        args: [--negate]
        stages: [commit-msg]
"""


def lint_staged(scripts: Iterable[str] | None = None) -> dict[str, list[str]]:
    """
    lint-staged configuration using only the tools behind ``scripts``.

    ``lint`` enables ``eslint --fix`` and ``format`` enables
    ``prettier --write``. ``None`` means both.
    """
    available = set(("lint", "format") if scripts is None else scripts)
    code = []
    if "lint" in available:
        code.append("eslint --fix")
    if "format" in available:
        code.append("prettier --write")

    config: dict[str, list[str]] = {}
    if code:
        config["*.{ts,tsx,js,jsx}"] = code
    if "format" in available:
        config["*.{json,css,md}"] = ["prettier --write"]
    return config


def husky_hooks(scripts: Iterable[str] | None = None) -> dict[str, str]:
    """
    Relative path -> content for husky's hook directory.

    The pre-commit hook is left out when lint-staged has nothing to run.
    """
    hooks = {".husky/commit-msg": HUSKY_COMMIT_MSG}
    if lint_staged(scripts):
        hooks[".husky/pre-commit"] = HUSKY_PRE_COMMIT
    return hooks
