"""
zerohatch.validator - Pre-Generation Validation
===============================================

Checks a :class:`~zerohatch.models.ProjectConfig` before anything touches
the filesystem. The validator never raises: every problem it finds is
collected into a :class:`ValidationResult` so the caller sees the complete
list at once.

Checks Performed (in order)
---------------------------
1. Project name: non-empty, at most 214 characters, ``[a-z0-9-_]`` (case
   insensitive), not reserved, not starting with ``.`` or ``-``
2. Project type has a template
3. Stack options belong to the project type
4. Output directory is writable (transient write check, always cleaned up)
5. Target path ``output_dir/name`` does not exist yet
6. GitHub repository name and topic count
7. Feature compatibility, and the import package name for Python stacks

Usage
-----
>>> from zerohatch.validator import validate_project_name
>>> validate_project_name("my-app").valid
True
>>> validate_project_name("-app").reason
'Project name cannot start with a dot or hyphen'
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from zerohatch.models import ProjectConfig, ProjectType, Runtime
from zerohatch.templates import types_with_tests


logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-z0-9\-_]+$", re.IGNORECASE)
REPO_NAME_PATTERN = re.compile(r"^[a-z0-9._\-]+$", re.IGNORECASE)
RESERVED_NAMES = frozenset({"node_modules", "dist", "build", ".git", ".github"})

MAX_NAME_LENGTH = 214
MAX_REPO_NAME_LENGTH = 100
MAX_TOPICS = 20


# =============================================================================
# Result Data Classes
# =============================================================================


@dataclass(frozen=True)
class NameCheck:
    """Outcome of :func:`validate_project_name`."""

    valid: bool
    reason: str | None = None


@dataclass
class ValidationResult:
    """
    Result of validating a project configuration.

    Attributes
    ----------
    is_valid : bool
        True iff ``errors`` is empty.

    errors : list[str]
        Blocking problems.

    warnings : list[str]
        Non-blocking observations.
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# Name Validation
# =============================================================================


def validate_project_name(name: str) -> NameCheck:
    """
    Check a project name without touching the filesystem.

    Parameters
    ----------
    name : str
        Candidate project name.

    Returns
    -------
    NameCheck
        ``valid=False`` always comes with a non-empty ``reason``.

    Examples
    --------
    >>> validate_project_name("").reason
    'Project name cannot be empty'
    >>> validate_project_name("node_modules").valid
    False
    """
    if not name or not name.strip():
        return NameCheck(False, "Project name cannot be empty")

    if len(name) > MAX_NAME_LENGTH:
        return NameCheck(False, f"Project name too long (max {MAX_NAME_LENGTH} characters)")

    if name.startswith((".", "-")):
        return NameCheck(False, "Project name cannot start with a dot or hyphen")

    if not NAME_PATTERN.match(name):
        return NameCheck(
            False,
            "Project name can only contain letters, numbers, hyphens, and underscores",
        )

    if name.lower() in RESERVED_NAMES:
        return NameCheck(False, f'"{name}" is a reserved name')

    return NameCheck(True)


# =============================================================================
# Config Validator
# =============================================================================


class ConfigValidator:
    """
    Validate a full project configuration.

    Parameters
    ----------
    supported_types : Iterable[ProjectType] | None
        Types that have a template. Defaults to every ``ProjectType``.
    tested_types : Iterable[ProjectType] | None
        Types whose template ships a test setup. Defaults to the types whose
        base template has files behind the ``testing`` feature.
    """

    def __init__(
        self,
        supported_types: Iterable[ProjectType] | None = None,
        tested_types: Iterable[ProjectType] | None = None,
    ) -> None:
        self.supported_types = frozenset(supported_types or ProjectType)
        self.tested_types = frozenset(
            tested_types if tested_types is not None else types_with_tests()
        )

    def validate(self, config: ProjectConfig) -> ValidationResult:
        """
        Run every check and collect the results.

        Parameters
        ----------
        config : ProjectConfig
            Configuration to check.

        Returns
        -------
        ValidationResult
            ``is_valid`` is False if any check produced an error.
        """
        errors: list[str] = []
        warnings: list[str] = []

        name_check = validate_project_name(config.name)
        if not name_check.valid:
            errors.append(name_check.reason or "Invalid project name")

        if config.type not in self.supported_types:
            errors.append(f"Invalid project type: {config.type}")

        options = config.stack_options
        if options is not None and options.kind != config.type.value:
            errors.append(
                f"Stack options for '{options.kind}' cannot be used with a "
                f"'{config.type.value}' project"
            )

        output_dir = config.resolved_output_dir
        reason = self._check_output_directory(output_dir)
        if reason:
            errors.append(reason)

        # Only meaningful for a name that can't escape output_dir
        if name_check.valid:
            target = output_dir / config.name
            if target.exists():
                errors.append(f"Directory already exists: {target}")

        if config.github_enabled:
            gh_errors, gh_warnings = self._check_github(config)
            errors.extend(gh_errors)
            warnings.extend(gh_warnings)

        feature_errors, feature_warnings = self._check_features(config)
        errors.extend(feature_errors)
        warnings.extend(feature_warnings)

        if errors:
            logger.info("Validation of '%s' failed: %s", config.name, "; ".join(errors))

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    # -------------------------------------------------------------------------
    # Individual Checks
    # -------------------------------------------------------------------------

    def _check_output_directory(self, directory: Path) -> str | None:
        """
        Check that ``directory`` can be written to.

        A missing directory is created (with parents) and removed again; an
        existing one gets a temporary file written and deleted.
        """
        if directory.exists() and not directory.is_dir():
            return f"Output path is not a directory: {directory}"

        if not directory.exists():
            # Remember the first missing ancestor so the whole chain is removed
            first_missing = directory
            while not first_missing.parent.exists() and first_missing.parent != first_missing:
                first_missing = first_missing.parent
            try:
                directory.mkdir(parents=True)
            except OSError:
                return f"Invalid output directory path: {directory}"
            finally:
                if first_missing.exists():
                    shutil.rmtree(first_missing, ignore_errors=True)
            return None

        try:
            with tempfile.NamedTemporaryFile(dir=directory, prefix=".zerohatch-write-check-"):
                pass
        except OSError:
            return f"No write permission for output directory: {directory}"
        return None

    def _check_github(self, config: ProjectConfig) -> tuple[list[str], list[str]]:
        """Repository name problems are errors; too many topics is a warning."""
        errors: list[str] = []
        warnings: list[str] = []
        github = config.github
        if github is None:
            return errors, warnings

        repo_name = github.repo_name or config.name
        if len(repo_name) > MAX_REPO_NAME_LENGTH:
            errors.append(
                f"GitHub repository name too long (max {MAX_REPO_NAME_LENGTH} characters)"
            )
        elif not REPO_NAME_PATTERN.match(repo_name):
            errors.append(
                "GitHub repository name can only contain alphanumeric characters, "
                "dots, underscores, and hyphens"
            )

        if len(github.topics) > MAX_TOPICS:
            warnings.append(f"GitHub allows maximum {MAX_TOPICS} topics per repository")

        return errors, warnings

    def _check_features(self, config: ProjectConfig) -> tuple[list[str], list[str]]:
        """Reject husky on Python; note renamed packages and untested stacks."""
        errors: list[str] = []
        warnings: list[str] = []
        features = config.features

        if config.type.runtime is Runtime.PYTHON and features.husky:
            errors.append("Husky is not compatible with Python projects")

        plain = config.name.replace("-", "_").lower()
        if config.type.runtime is Runtime.PYTHON and config.package_name != plain:
            warnings.append(
                f"\"{plain}\" is not a valid Python package name; "
                f"using \"{config.package_name}\""
            )

        if features.testing and config.type not in self.tested_types:
            warnings.append(
                f"No test framework is set up for {config.type.display_name}; "
                "testing adds no files"
            )

        if features.docker and not features.testing and features.cicd:
            warnings.append("CI workflows run the test suite; enable testing for useful CI")

        return errors, warnings
