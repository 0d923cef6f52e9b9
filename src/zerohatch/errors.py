"""
zerohatch.errors - Pipeline Error Taxonomy
==========================================

Every failure the generation pipeline can surface is one of the classes
below. They all carry a short ``message`` naming the phase that failed and
an optional list of ``details`` (one line per individual problem), so the
orchestrator can flatten them straight into ``GenerationResult.errors``.

Hierarchy
---------
::

    ZerohatchError
    ├── ConfigValidationError   bad user input, raised before any side effect
    ├── GenerationError         template / filesystem failure
    ├── QualityError            lint, type, test or build failure (strict mode)
    ├── VerificationError       post-hoc drift found by the verifier
    └── InfraError              remote hosting tooling missing or failing

``InfraError`` is the only non-fatal member: ``GitInitializer.setup_github``
catches it and degrades to written instructions.
"""

from __future__ import annotations

from collections.abc import Iterable


class ZerohatchError(Exception):
    """
    Base class for all pipeline errors.

    Parameters
    ----------
    message : str
        One-line summary, e.g. ``"Quality enforcement failed: project has errors"``.

    details : Iterable[str], optional
        Individual problems behind the summary.
    """

    def __init__(self, message: str, details: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.details: list[str] = list(details)

    def as_messages(self) -> list[str]:
        """Summary line followed by each detail, without duplicates."""
        messages = [self.message]
        for detail in self.details:
            if detail not in messages:
                messages.append(detail)
        return messages


class ConfigValidationError(ZerohatchError):
    """The project configuration was rejected before generation started."""


class GenerationError(ZerohatchError):
    """Templating or writing files into the staging directory failed."""


class QualityError(ZerohatchError):
    """The quality gate found errors it could not fix."""


class VerificationError(ZerohatchError):
    """The independent verifier disagreed with the enforcement phase."""


class InfraError(ZerohatchError):
    """Remote hosting tooling is unavailable, unauthenticated or failing."""
