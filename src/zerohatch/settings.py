"""
zerohatch.settings - Runtime Settings
=====================================

Settings that apply to every generation run rather than to one project:
where staging directories live, where the dashboard store is kept, whether
the quality gate is strict, and which identity signs the initial commit.

Sources, later ones winning:

1. Defaults declared on :class:`Settings`
2. A TOML file: ``$ZEROHATCH_CONFIG`` or ``~/.zerohatch/config.toml``
3. ``ZEROHATCH_*`` environment variables

Example config file
-------------------
.. code-block:: toml

    scratch_root = "/var/tmp/zerohatch"
    strict_mode = true

    [git]
    user_name = "Release Bot"
    user_email = "bot@example.com"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field


DEFAULT_HOME = Path.home() / ".zerohatch"

# Environment variable -> settings field
ENV_OVERRIDES: dict[str, str] = {
    "ZEROHATCH_SCRATCH_ROOT": "scratch_root",
    "ZEROHATCH_DASHBOARD_DIR": "dashboard_dir",
    "ZEROHATCH_STRICT": "strict_mode",
    "ZEROHATCH_HOOKS": "enable_hooks",
    "ZEROHATCH_RECORD_DASHBOARD": "record_dashboard",
    "ZEROHATCH_GIT_USER_NAME": "git_user_name",
    "ZEROHATCH_GIT_USER_EMAIL": "git_user_email",
}


class Settings(BaseModel):
    """
    Process-wide settings for the generation pipeline.

    Attributes
    ----------
    scratch_root : Path | None
        Parent of all staging directories. ``None`` places them in
        ``<output_dir>/.zerohatch-staging`` so promotion is a same-filesystem
        rename.

    dashboard_dir : Path
        Directory holding ``quality-dashboard.json``.

    strict_mode : bool
        Abort on any non-zero error metric (the zero-error guarantee).

    enable_hooks : bool
        Install pre-commit and commit-msg hooks into generated repositories.

    record_dashboard : bool
        Record each run in the quality dashboard.

    git_user_name, git_user_email : str
        Identity used for the initial commit.
    """

    scratch_root: Path | None = Field(
        default=None,
        description="Parent directory for staging directories",
    )
    dashboard_dir: Path = Field(
        default=DEFAULT_HOME,
        description="Directory for the quality dashboard store",
    )
    strict_mode: bool = Field(default=True, description="Fail on any quality error")
    enable_hooks: bool = Field(default=True, description="Install git hooks")
    record_dashboard: bool = Field(default=True, description="Record runs in the dashboard")
    git_user_name: str = Field(default="zerohatch", min_length=1)
    git_user_email: str = Field(default="zerohatch@users.noreply.github.com", min_length=3)

    @classmethod
    def from_toml(cls, path: Path) -> Settings:
        """
        Load settings from a TOML file.

        A ``[git]`` table with ``user_name`` / ``user_email`` keys is
        flattened onto the ``git_*`` fields.

        Raises
        ------
        FileNotFoundError
            If the file doesn't exist.
        pydantic.ValidationError
            If a value has the wrong type.
        """
        with path.open("rb") as f:
            data = tomllib.load(f)

        git = data.pop("git", {})
        if isinstance(git, dict):
            for key, value in git.items():
                data[f"git_{key}"] = value

        return cls(**data)

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """
        Resolve settings from file and environment.

        Parameters
        ----------
        path : Path | None
            Explicit config file. Falls back to ``$ZEROHATCH_CONFIG`` and then
            ``~/.zerohatch/config.toml``; a missing default file is not an error.
        """
        if path is None and os.environ.get("ZEROHATCH_CONFIG"):
            path = Path(os.environ["ZEROHATCH_CONFIG"])

        if path is not None:
            base = cls.from_toml(path)
        elif (DEFAULT_HOME / "config.toml").exists():
            base = cls.from_toml(DEFAULT_HOME / "config.toml")
        else:
            base = cls()

        overrides = {
            field: os.environ[var]
            for var, field in ENV_OVERRIDES.items()
            if os.environ.get(var)
        }
        if not overrides:
            return base

        # Re-validate so "false"/"0" strings become booleans
        return cls(**{**base.model_dump(), **overrides})
