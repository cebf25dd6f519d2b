"""
Error taxonomy for the template registry.

Every failure surfaced by the registry or a handler is one of the
exceptions below. Each carries the template name (where one exists)
and the underlying cause, which is also chained as ``__cause__`` so
callers can inspect either.

IMPORTANT:
- Errors are raised to the immediate caller and never swallowed.
- Nothing here is cached: a failed lookup, validation or compilation
  leaves the template unresolved so a later call may retry.
"""

from __future__ import annotations

from typing import Optional


class TemplateRegistryError(Exception):
    """Base class for all registry and handler errors."""


# ----------------------------------------------------------------------
# Resolution errors (Registry.get)
# ----------------------------------------------------------------------


class TemplateNotFoundError(TemplateRegistryError, LookupError):
    """Raised when a template's source cannot be read."""

    def __init__(
        self,
        template_name: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.template_name = template_name
        self.path = path
        self.cause = cause
        super().__init__(f"template '{template_name}' not found")


class TemplateValidationError(TemplateRegistryError):
    """
    Raised when a template references a field that does not resolve
    against the registry's bound data shape.
    """

    def __init__(
        self,
        template_name: str,
        field_path: str,
        cause: BaseException,
    ) -> None:
        self.template_name = template_name
        self.field_path = field_path
        self.cause = cause
        super().__init__(
            f"template '{template_name}' validation error: "
            f"'{field_path}' - '{cause}'"
        )


class TemplateCompileError(TemplateRegistryError):
    """Raised when the engine rejects a template's source."""

    def __init__(self, template_name: str, cause: BaseException) -> None:
        self.template_name = template_name
        self.cause = cause
        super().__init__(
            f"failed to compile template '{template_name}': '{cause}'"
        )


class RegistryConstructionError(TemplateRegistryError):
    """Raised when registry options fail validation."""


# ----------------------------------------------------------------------
# Execution errors (Handler.render)
# ----------------------------------------------------------------------


class TemplateExecutionError(TemplateRegistryError):
    """
    Raised from ``Handler.render``.

    ``cause`` is exactly one of: ``NilContextError``, ``Canceled``,
    ``DeadlineExceeded`` or the engine-level failure.
    """

    def __init__(self, template_name: str, cause: BaseException) -> None:
        self.template_name = template_name
        self.cause = cause
        super().__init__(
            f"failed to execute template '{template_name}': '{cause}'"
        )


class NilContextError(TemplateRegistryError):
    """Render was called without a render context."""

    def __init__(self) -> None:
        super().__init__("nil context")


# ----------------------------------------------------------------------
# Field resolution causes (validator)
# ----------------------------------------------------------------------


class FieldResolutionError(TemplateRegistryError):
    """A field path could not be resolved against a data shape."""


class NilShapeError(FieldResolutionError):
    def __init__(self) -> None:
        super().__init__("nil type")


class NotARecordError(FieldResolutionError):
    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"expected record type, got {type_name}")


class FieldNotFoundError(FieldResolutionError):
    def __init__(self, segment: str, type_name: str) -> None:
        self.segment = segment
        self.type_name = type_name
        super().__init__(f"field '{segment}' not found in type {type_name}")
