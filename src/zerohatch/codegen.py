"""
zerohatch.codegen - Writing Templates to Disk
=============================================

The code generator materializes a prepared :class:`ProjectTemplate` inside
a staging directory. It never touches anything outside that directory:
absolute paths and paths that resolve outside it (``..`` segments,
symlinked parents) are rejected before a single byte is written.

Usage Example
-------------
>>> from zerohatch.codegen import CodeGenerator
>>> written = CodeGenerator().generate(template, Path("/tmp/staging/my-app"))
>>> written[:2]
['package.json', 'tsconfig.json']
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from zerohatch.errors import GenerationError
from zerohatch.templates import ProjectTemplate, TemplateFile


logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


class CodeGenerator:
    """Write every file of a template under a root directory."""

    def generate(self, template: ProjectTemplate, staging_dir: Path) -> list[str]:
        """
        Write ``template`` into ``staging_dir``.

        Parameters
        ----------
        template : ProjectTemplate
            Fully rendered template.

        staging_dir : Path
            Root to write into. Created if missing.

        Returns
        -------
        list[str]
            Relative POSIX paths of the written files, in template order.

        Raises
        ------
        GenerationError
            If a path is absolute or escapes ``staging_dir``, or a write
            fails.
        """
        root = staging_dir.resolve()
        targets = [(f, self._target(root, f)) for f in template.files]

        written: list[str] = []
        try:
            root.mkdir(parents=True, exist_ok=True)
            # All ancestors first, then file contents
            for _, target in targets:
                target.parent.mkdir(parents=True, exist_ok=True)

            for file, target in targets:
                with target.open("w", encoding="utf-8", newline="\n") as f:
                    f.write(file.content)
                if file.executable:
                    target.chmod(EXECUTABLE_MODE)
                written.append(file.path)
                logger.debug("Wrote %s", file.path)
        except OSError as e:
            raise GenerationError("Code generation failed", [str(e)]) from e

        logger.info("Generated %d files in %s", len(written), root)
        return written

    @staticmethod
    def _target(root: Path, file: TemplateFile) -> Path:
        """Resolve ``file.path`` under ``root``, rejecting escapes."""
        relative = PurePosixPath(file.path)
        if relative.is_absolute() or Path(file.path).is_absolute():
            raise GenerationError(
                "Code generation failed", [f"Absolute path not allowed: {file.path}"]
            )
        if not file.path or file.path.endswith("/"):
            raise GenerationError(
                "Code generation failed", [f"Invalid file path: '{file.path}'"]
            )

        target = (root / Path(*relative.parts)).resolve()
        if not target.is_relative_to(root) or target == root:
            raise GenerationError(
                "Code generation failed",
                [f"Path escapes the project directory: {file.path}"],
            )
        return target
