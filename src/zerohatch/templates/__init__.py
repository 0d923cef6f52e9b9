"""
zerohatch.templates - Stack Templates
=====================================

This package holds the Jinja2 template files used to generate projects and
the Python definitions that group them into one template per stack. File
bodies live in ``.j2`` files loaded through Jinja2's ``PackageLoader``;
:mod:`zerohatch.templates.stacks` only lists which file goes where, plus the
dependency maps and scripts for each stack.

Template Naming Convention
--------------------------
- Templates end with the ``.j2`` extension
- ``<stack>/<path>.j2`` renders to ``<path>`` in the generated project
- A leading dot is dropped: ``env.j2`` renders to ``.env``
- ``package/`` stands for the import package: ``src/package/main.py.j2``
  renders to ``src/<packageName>/main.py``

Layout
------
common/
    README base (``{% block getting_started %}``), licenses, and per
    runtime ignore files, editor config and lint/format config.

react_typescript/, nextjs/, express_typescript/, python_fastapi/, python_cli/
    Stack files. Each stack's ``README.md.j2`` extends the common one.

docker/, ci/, docs/
    Feature augmentations, see :mod:`zerohatch.templates.features`.

Template Context
----------------
Every path and file body is rendered with ``StrictUndefined`` against:

    projectName : str
        Project name exactly as given.

    packageName : str
        Import-safe name, see ``ProjectConfig.package_name``.

    description, author, license : str
        Project metadata with defaults applied.

    year : int
        Current year (for licenses).

    features : dict[str, bool]
        The ``FeaturesConfig`` flags.

    port, pythonVersion, commandName
        Stack option values, when the stack defines them.

Literal ``{{`` or ``{%`` in a file body must be wrapped in
``{% raw %}...{% endraw %}``.

Feature Tags
------------
A :class:`TemplateFile` may carry a ``feature`` tag naming a
``FeaturesConfig`` flag. The engine drops tagged files whose flag is off.

See Also
--------
- engine.py: Renders templates and updates the manifest
- stacks.py: Base template per stack
- features.py: Docker, CI and documentation augmentations
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from zerohatch.models import ProjectType


PACKAGE_PLACEHOLDER = "{{ packageName }}"


# =============================================================================
# Template Data Classes
# =============================================================================


@dataclass(frozen=True)
class TemplateFile:
    """
    One file of a template.

    Attributes
    ----------
    path : str
        Relative POSIX path inside the project. May contain placeholders.

    content : str
        Inline file body, used when ``source`` is None. May contain
        placeholders.

    executable : bool
        Write the file with mode ``0o755``.

    feature : str | None
        ``FeaturesConfig`` flag that must be on for the file to be kept.

    source : str | None
        Name of the ``.j2`` template in this package holding the body.
        Rendered files never have one.
    """

    path: str
    content: str = ""
    executable: bool = False
    feature: str | None = None
    source: str | None = None


@dataclass
class ProjectTemplate:
    """
    A stack template: ordered files plus manifest data.

    Attributes
    ----------
    name : str
        Human-readable template name.

    type : ProjectType
        Stack the template generates.

    files : list[TemplateFile]
        Files in generation order.

    dependencies : dict[str, str]
        Runtime dependencies, name -> version (npm range or PEP 440
        specifier).

    dev_dependencies : dict[str, str]
        Development dependencies.

    scripts : dict[str, str]
        ``package.json`` scripts (Node stacks only).

    configuration : dict[str, Any]
        Extra top-level manifest keys merged into ``package.json``
        (``jest``, ``browserslist``, ...). Unused for Python stacks.
    """

    name: str
    type: ProjectType
    files: list[TemplateFile] = field(default_factory=list)
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    configuration: dict[str, Any] = field(default_factory=dict)

    @property
    def paths(self) -> list[str]:
        """File paths in order."""
        return [f.path for f in self.files]

    def get(self, path: str) -> TemplateFile | None:
        """Return the file at ``path``, if any."""
        for f in self.files:
            if f.path == path:
                return f
        return None

    def add(self, file: TemplateFile) -> None:
        """Append ``file``, or replace the file already at its path in place."""
        for i, existing in enumerate(self.files):
            if existing.path == file.path:
                self.files[i] = file
                return
        self.files.append(file)


def packaged(directory: str, path: str, **options: Any) -> TemplateFile:
    """
    File at ``path`` whose body is ``<directory>/<path>.j2``.

    Examples
    --------
    >>> packaged("python_cli", "src/{{ packageName }}/cli.py").source
    'python_cli/src/package/cli.py.j2'
    >>> packaged("react_typescript", ".env").source
    'react_typescript/env.j2'
    """
    name = path.replace(PACKAGE_PLACEHOLDER, "package").lstrip(".")
    return TemplateFile(path, source=f"{directory}/{name}.j2", **options)


# =============================================================================
# Template Registry
# =============================================================================


def _builders() -> dict[ProjectType, Callable[[], ProjectTemplate]]:
    # Imported lazily: the stacks module imports this package's data classes
    from zerohatch.templates import stacks

    return stacks.BUILDERS


def supported_types() -> list[ProjectType]:
    """Project types that have a base template."""
    return list(_builders())


def build_base_template(project_type: ProjectType) -> ProjectTemplate:
    """
    Build the base template for ``project_type``.

    Raises
    ------
    KeyError
        If no template exists for the type.
    """
    return _builders()[project_type]()


def types_with_tests() -> list[ProjectType]:
    """Project types whose base template has files behind ``testing``."""
    return [
        project_type
        for project_type, build in _builders().items()
        if any(f.feature == "testing" for f in build().files)
    ]
