"""
Registry configuration.

A ``RegistryConfig`` fixes everything a registry needs to resolve and
compile templates: where templates live, which extension they carry,
whether referenced fields are checked against a bound model, and which
functions templates may call.

Configuration is read-only once constructed. A registry never changes
its configuration over its lifetime.
"""

from __future__ import annotations

import os
import typing
from typing import Any, Callable, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TEMPLATE_DIR = "templates"
DEFAULT_TEMPLATE_EXT = ".html"


class RegistryConfig(BaseModel):
    """
    Immutable configuration for a template registry.
    """

    # ------------------------------------------------------------------
    # Template location
    # ------------------------------------------------------------------

    base_path: str = Field(
        DEFAULT_TEMPLATE_DIR,
        description=(
            "Directory (within the filesystem) holding the templates. "
            "An empty value falls back to the default."
        ),
    )

    extension: str = Field(
        DEFAULT_TEMPLATE_EXT,
        description="File extension appended to every template name",
    )

    # ------------------------------------------------------------------
    # Field validation
    # ------------------------------------------------------------------

    validate_fields: bool = Field(
        False,
        description="Check referenced fields against validation_model",
    )

    validation_model: Any = Field(
        None,
        description=(
            "Type whose shape templates are validated against. "
            "Instances are replaced by their type."
        ),
    )

    # ------------------------------------------------------------------
    # Engine
    # ------------------------------------------------------------------

    template_functions: Dict[str, Callable[..., Any]] = Field(
        default_factory=dict,
        description="Functions exposed to templates as filters and globals",
    )

    autoescape: bool = Field(
        True,
        description="HTML-escape substituted values",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("base_path")
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        parts = [p for p in v.strip().split("/") if p not in ("", ".")]
        if ".." in parts:
            raise ValueError(
                f"Invalid base path '{v}'. '..' segments are not allowed."
            )
        return "/".join(parts) or DEFAULT_TEMPLATE_DIR

    @field_validator("extension")
    @classmethod
    def extension_has_leading_dot(cls, v: str) -> str:
        if not v.startswith(".") or len(v) < 2 or "/" in v:
            raise ValueError(
                f"Invalid template extension '{v}'. "
                "Expected a leading dot, e.g. '.html'."
            )
        return v

    @field_validator("validation_model")
    @classmethod
    def model_as_type(cls, v: Any) -> Any:
        if v is None or isinstance(v, type) or typing.get_origin(v) is not None:
            return v
        return type(v)

    @field_validator("template_functions")
    @classmethod
    def function_names_are_identifiers(
        cls, v: Dict[str, Callable[..., Any]]
    ) -> Dict[str, Callable[..., Any]]:
        invalid = sorted(name for name in v if not name.isidentifier())
        if invalid:
            raise ValueError(
                f"Template function names must be identifiers: {invalid}"
            )
        return dict(v)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, **overrides: Any) -> "RegistryConfig":
        """
        Load location and engine settings from environment variables.

        Field validation and template functions are code-level concerns
        and can only be supplied through ``overrides``.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        values: Dict[str, Any] = {
            "base_path": os.getenv("TEMPLATES_BASE_PATH", DEFAULT_TEMPLATE_DIR),
            "extension": os.getenv("TEMPLATES_EXTENSION", DEFAULT_TEMPLATE_EXT),
            "autoescape": env_bool("TEMPLATES_AUTOESCAPE", True),
        }
        values.update(overrides)
        return cls(**values)

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )
