"""
Typed template registry.

Resolves template names to compiled Jinja2 handlers, validates the
fields templates reference against a bound data type, and renders with
cancellation checked at every write.
"""

from .config import DEFAULT_TEMPLATE_DIR, DEFAULT_TEMPLATE_EXT, RegistryConfig
from .errors import (
    FieldNotFoundError,
    FieldResolutionError,
    NilContextError,
    NilShapeError,
    NotARecordError,
    RegistryConstructionError,
    TemplateCompileError,
    TemplateExecutionError,
    TemplateNotFoundError,
    TemplateRegistryError,
    TemplateValidationError,
)
from .filesystem import DirectoryFilesystem, MemoryFilesystem, TemplateFilesystem
from .registry import Handler, Registry, new_registry
from .schemas import DataShape, describe_shape
from .services.context import Canceled, ContextError, DeadlineExceeded, RenderContext

__all__ = [
    "DEFAULT_TEMPLATE_DIR",
    "DEFAULT_TEMPLATE_EXT",
    "RegistryConfig",
    "Registry",
    "Handler",
    "new_registry",
    "TemplateFilesystem",
    "DirectoryFilesystem",
    "MemoryFilesystem",
    "DataShape",
    "describe_shape",
    "RenderContext",
    "ContextError",
    "Canceled",
    "DeadlineExceeded",
    "TemplateRegistryError",
    "TemplateNotFoundError",
    "TemplateValidationError",
    "TemplateCompileError",
    "TemplateExecutionError",
    "RegistryConstructionError",
    "NilContextError",
    "FieldResolutionError",
    "FieldNotFoundError",
    "NilShapeError",
    "NotARecordError",
]
