"""
zerohatch.engine - Template Preparation
=======================================

This module turns a base stack template plus a :class:`ProjectConfig` into
the concrete, fully rendered :class:`ProjectTemplate` that the code
generator writes to disk.

Architecture
------------
``prepare_template`` is a small pipeline:

    1. Fetch the base template from the per-engine repository (built once
       per project type, never mutated) and deep-copy it
    2. Apply features: drop files whose feature flag is off, add Docker, CI
       and documentation files, add hook tooling for Node stacks
    3. Render every file path and script, and every file body from its
       packaged ``.j2`` template, with Jinja2 using ``StrictUndefined``, so an
       unknown placeholder is an error rather than an empty string
    4. Update the primary manifest (``package.json`` or ``pyproject.toml``)
       with the project metadata and the template's dependency maps

Usage Example
-------------
>>> from zerohatch.engine import TemplateEngine
>>> from zerohatch.models import ProjectConfig
>>> engine = TemplateEngine()
>>> template = engine.prepare_template(
...     ProjectConfig(name="my-app", type="react-typescript")
... )
>>> "src/App.tsx" in template.paths
True

See Also
--------
- templates/: Base templates per stack
- codegen.py: Writes the prepared template
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import UTC, datetime
from typing import Any

import tomlkit
from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError
from tomlkit.exceptions import TOMLKitError

from zerohatch import __version__
from zerohatch.errors import GenerationError
from zerohatch.hooks import HOOK_DEV_DEPENDENCIES
from zerohatch.models import ProjectConfig, ProjectType, Runtime
from zerohatch.templates import (
    ProjectTemplate,
    TemplateFile,
    build_base_template,
    supported_types,
)
from zerohatch.templates.features import ci_files, docker_files, docs_files


logger = logging.getLogger(__name__)

# package.json scripts that only make sense with a feature enabled
SCRIPT_FEATURES: dict[str, str] = {
    "lint": "linting",
    "format": "prettier",
    "format:check": "prettier",
    "test": "testing",
}

LICENSE_NOTICE = "common/LICENSE_notice.j2"


# =============================================================================
# Template Environment
# =============================================================================


def create_jinja_env() -> Environment:
    """
    Create the Jinja2 environment used for all substitution.

    Returns
    -------
    Environment
        Environment loading ``zerohatch.templates`` with strict undefined
        handling.

    Notes
    -----
    Autoescaping is off: the output is source code and configuration, not
    HTML. Templates that embed free text in markup escape it explicitly with
    the ``e`` filter.
    """
    env = Environment(
        loader=PackageLoader("zerohatch", "templates"),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["snake_case"] = lambda s: s.replace("-", "_").lower()
    return env


def build_context(config: ProjectConfig) -> dict[str, Any]:
    """
    Substitution variables for ``config``.

    Defaults are applied here: a missing description becomes
    ``"<name> - Generated by zerohatch"``, a missing author ``"Unknown"``.
    """
    context: dict[str, Any] = {
        "projectName": config.name,
        "packageName": config.package_name,
        "description": config.description or f"{config.name} - Generated by zerohatch",
        "author": config.author or "Unknown",
        "license": config.license or "MIT",
        "year": datetime.now(UTC).year,
        "features": config.features.model_dump(),
        "generatorVersion": __version__,
    }

    options = config.resolved_stack_options
    if hasattr(options, "port"):
        context["port"] = options.port
    if hasattr(options, "python_version"):
        context["pythonVersion"] = options.python_version
    if hasattr(options, "command_name"):
        context["commandName"] = options.command_name or config.name

    return context


# =============================================================================
# Template Engine
# =============================================================================


class TemplateEngine:
    """
    Prepare rendered templates for generation runs.

    Each engine keeps its own repository of base templates. A base template
    is built the first time its type is requested and every run gets a deep
    copy, so nothing a run does can leak into another run.
    """

    def __init__(self) -> None:
        self.env = create_jinja_env()
        self._repository: dict[ProjectType, ProjectTemplate] = {}

    def available_templates(self) -> list[str]:
        """Values of every project type with a base template."""
        return [t.value for t in supported_types()]

    def prepare_template(self, config: ProjectConfig) -> ProjectTemplate:
        """
        Build the fully rendered template for ``config``.

        Parameters
        ----------
        config : ProjectConfig
            Validated project configuration.

        Returns
        -------
        ProjectTemplate
            A private copy with rendered paths and contents and an updated
            manifest.

        Raises
        ------
        GenerationError
            If the type has no template, a placeholder is undefined, or the
            manifest can't be parsed.
        """
        template = copy.deepcopy(self._base_template(config.type))

        self._apply_features(template, config)

        context = build_context(config)
        template.files = [self._render_file(f, context) for f in template.files]
        template.scripts = {
            name: self._render(command, context, f"script '{name}'")
            for name, command in template.scripts.items()
        }

        self._update_manifest(template, config, context)

        logger.debug(
            "Prepared template '%s' with %d files", template.name, len(template.files)
        )
        return template

    def render_files(
        self, files: list[TemplateFile], config: ProjectConfig
    ) -> list[TemplateFile]:
        """Render standalone template files against ``config``."""
        context = build_context(config)
        return [self._render_file(f, context) for f in files]

    # -------------------------------------------------------------------------
    # Repository
    # -------------------------------------------------------------------------

    def _base_template(self, project_type: ProjectType) -> ProjectTemplate:
        if project_type not in self._repository:
            try:
                self._repository[project_type] = build_base_template(project_type)
            except KeyError as e:
                raise GenerationError(
                    f"Template preparation failed: no template for '{project_type}'"
                ) from e
        return self._repository[project_type]

    # -------------------------------------------------------------------------
    # Features
    # -------------------------------------------------------------------------

    def _apply_features(self, template: ProjectTemplate, config: ProjectConfig) -> None:
        features = config.features
        flags = features.model_dump()

        template.files = [
            f for f in template.files
            if f.feature is None or flags.get(f.feature, False)
        ]
        template.scripts = {
            name: command for name, command in template.scripts.items()
            if flags.get(SCRIPT_FEATURES.get(name, ""), True)
        }

        if features.docker:
            for f in docker_files(config.type):
                template.add(f)
        if features.cicd:
            for f in ci_files(config.type):
                template.add(f)
        if features.documentation:
            for f in docs_files():
                template.add(f)

        if features.husky and config.type.runtime is Runtime.NODE:
            template.dev_dependencies.update(HOOK_DEV_DEPENDENCIES)

        if (config.license or "MIT") != "MIT" and template.get("LICENSE"):
            template.add(TemplateFile("LICENSE", source=LICENSE_NOTICE))

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def _render(self, text: str, context: dict[str, Any], where: str) -> str:
        try:
            return self.env.from_string(text).render(context)
        except TemplateError as e:
            raise GenerationError(
                "Template preparation failed",
                [f"Could not render {where}: {e}"],
            ) from e

    def _render_source(self, name: str, context: dict[str, Any], where: str) -> str:
        try:
            return self.env.get_template(name).render(context)
        except TemplateError as e:
            raise GenerationError(
                "Template preparation failed",
                [f"Could not render {where} from {name}: {e}"],
            ) from e

    def _render_file(self, file: TemplateFile, context: dict[str, Any]) -> TemplateFile:
        where = f"'{file.path}'"
        if file.source is not None:
            content = self._render_source(file.source, context, where)
        else:
            content = self._render(file.content, context, where)
        return TemplateFile(
            path=self._render(file.path, context, f"path '{file.path}'"),
            content=content,
            executable=file.executable,
            feature=file.feature,
        )

    # -------------------------------------------------------------------------
    # Manifest
    # -------------------------------------------------------------------------

    def _update_manifest(
        self,
        template: ProjectTemplate,
        config: ProjectConfig,
        context: dict[str, Any],
    ) -> None:
        if config.type.runtime is Runtime.NODE:
            manifest = template.get("package.json")
            if manifest:
                template.add(TemplateFile(
                    "package.json", _update_package_json(manifest.content, template, context)
                ))
            return

        manifest = template.get("pyproject.toml")
        if manifest:
            template.add(TemplateFile(
                "pyproject.toml", _update_pyproject(manifest.content, template, context)
            ))
        if template.get("requirements.txt"):
            template.add(TemplateFile("requirements.txt", _requirements(template)))


def _update_package_json(
    content: str, template: ProjectTemplate, context: dict[str, Any]
) -> str:
    """Merge metadata and dependency maps into ``package.json``."""
    try:
        manifest = json.loads(content)
    except ValueError as e:
        raise GenerationError(
            "Template preparation failed", [f"package.json is not valid JSON: {e}"]
        ) from e

    manifest["name"] = context["projectName"]
    manifest["description"] = context["description"]
    manifest["author"] = context["author"]
    manifest["license"] = context["license"]

    for key, values in (
        ("scripts", template.scripts),
        ("dependencies", template.dependencies),
        ("devDependencies", template.dev_dependencies),
    ):
        merged = {**manifest.get(key, {}), **values}
        if key != "scripts":
            merged = dict(sorted(merged.items()))
        if merged:
            manifest[key] = merged

    for key, value in template.configuration.items():
        manifest.setdefault(key, copy.deepcopy(value))

    return json.dumps(manifest, indent=2) + "\n"


def _requirement_list(requirements: dict[str, str]) -> list[str]:
    return [f"{name}{spec}" for name, spec in sorted(requirements.items())]


def _update_pyproject(
    content: str, template: ProjectTemplate, context: dict[str, Any]
) -> str:
    """Set metadata and dependency arrays in ``pyproject.toml``."""
    try:
        doc = tomlkit.parse(content)
    except TOMLKitError as e:
        raise GenerationError(
            "Template preparation failed", [f"pyproject.toml is not valid TOML: {e}"]
        ) from e

    if "project" not in doc:
        doc["project"] = tomlkit.table()
    project = doc["project"]
    project["name"] = context["projectName"]
    project["description"] = context["description"]

    authors = tomlkit.array()
    author = tomlkit.inline_table()
    author["name"] = context["author"]
    authors.append(author)
    project["authors"] = authors

    license_table = tomlkit.inline_table()
    license_table["text"] = context["license"]
    project["license"] = license_table

    dependencies = tomlkit.array()
    for requirement in _requirement_list(template.dependencies):
        dependencies.append(requirement)
    project["dependencies"] = dependencies.multiline(True)

    dev = tomlkit.array()
    for requirement in _requirement_list(template.dev_dependencies):
        dev.append(requirement)
    if "optional-dependencies" not in project:
        project["optional-dependencies"] = tomlkit.table()
    project["optional-dependencies"]["dev"] = dev.multiline(True)

    return tomlkit.dumps(doc)


def _requirements(template: ProjectTemplate) -> str:
    lines = ["# Mirrors [project.dependencies] in pyproject.toml"]
    lines += _requirement_list(template.dependencies)
    return "\n".join(lines) + "\n"
