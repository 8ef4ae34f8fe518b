"""Exception hierarchy shared by every monogen component.

Every error carries a short human-readable message plus optional ``details``
that the CLI prints as a subtitle.  Nothing here is retried: catalog,
aggregation, hook, and render failures all bubble up to the run wrapper in
:mod:`monogen.generator`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class GeneratorError(Exception):
    """Base class for generator-specific failures."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(GeneratorError):
    """Missing or invalid template catalog, or a malformed run configuration."""


class NotFoundError(GeneratorError, LookupError):
    """Raised when a framework or package name is not in its catalog."""

    def __init__(self, kind: str, name: str, options: Iterable[str] = ()) -> None:
        self.kind = kind
        self.name = name
        self.options = sorted(options)
        details = (
            f"Valid {kind} names: {', '.join(self.options)}"
            if self.options
            else f"No {kind} entries are available."
        )
        super().__init__(f"{kind.capitalize()} '{name}' not found", details)


class HookExecutionError(GeneratorError):
    """A hook module raised while being loaded or executed."""

    def __init__(self, entity: str, hook: str, original: BaseException) -> None:
        self.entity = entity
        self.hook = hook
        self.original = original
        super().__init__(
            f"Hook '{hook}' of '{entity}' failed",
            f"{type(original).__name__}: {original}",
        )


class TemplateRenderError(GeneratorError):
    """A template could not be parsed, rendered, or its output parsed."""

    def __init__(self, template: str | Path, reason: str) -> None:
        self.template = Path(template)
        super().__init__(f"Could not render template {self.template}", reason)


class GenerationAborted(GeneratorError):
    """The user chose to exit at a destination-collision prompt."""

    def __init__(self, destination: Path) -> None:
        self.destination = destination
        super().__init__(
            f"'{destination.name}' already exists",
            "Please choose a different name or delete the existing folder.",
        )
