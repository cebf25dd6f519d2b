"""
Structural descriptors of the data types bound to a registry.

A ``DataShape`` describes a type without ever touching an instance of
it: whether it is a record (has named fields), what those fields are,
and whether the type was optional (``Optional[X]`` / ``X | None``).

Records are:
- Pydantic models (``model_fields``)
- dataclasses, TypedDicts and NamedTuples
- other user-defined classes, whose public annotated attributes are
  the fields (a class declaring none is a record with no fields)

Everything else (``str``, ``int``, ``list[...]``, ``Any``, enums, unions
of several types) is a non-record leaf.

Descriptors are built once per annotation and cached. Field shapes
are resolved lazily, which keeps self-referential models finite.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import types
import typing
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Classes from these modules, and subclasses of these bases, are leaves
# even though they are classes.
_NON_RECORD_MODULES = frozenset({"builtins", "typing", "typing_extensions", "collections.abc"})
_NON_RECORD_BASES = (
    str, bytes, int, float, complex, bool, list, dict, set, frozenset, tuple, enum.Enum,
)


class DataShape(BaseModel):
    """
    Immutable descriptor of one (possibly optional) type.
    """

    type_name: str = Field(
        ...,
        description="Human-readable name of the described type",
    )

    annotation: Any = Field(
        ...,
        description="The described type with optionality removed",
    )

    is_record: bool = Field(
        False,
        description="Whether the type exposes named fields",
    )

    optional: bool = Field(
        False,
        description="Whether the type was declared Optional / X | None",
    )

    field_annotations: Dict[str, Any] = Field(
        default_factory=dict,
        description="Field name to declared annotation (records only)",
    )

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
    )

    @property
    def field_names(self) -> list[str]:
        return list(self.field_annotations)

    def unwrap(self) -> "DataShape":
        """Return this shape with one level of optionality removed."""
        if not self.optional:
            return self
        return self.model_copy(update={"optional": False})

    def field(self, name: str) -> Optional["DataShape"]:
        """
        Shape of the named field, or ``None`` if there is no such field.

        Lookup is exact and case-sensitive.
        """
        if name not in self.field_annotations:
            return None
        return describe_shape(self.field_annotations[name])


# ----------------------------------------------------------------------
# Construction
# ----------------------------------------------------------------------


def describe_shape(annotation: Any) -> Optional[DataShape]:
    """
    Build (or fetch the cached) shape for a type annotation.

    ``None`` describes "no type" and yields ``None``. ``Annotated``
    wrappers are stripped before caching.
    """
    if annotation is None:
        return None

    annotation = _strip_annotated(annotation)

    try:
        hash(annotation)
    except TypeError:
        return _build_shape(annotation)
    return _cached_shape(annotation)


def shape_of_model(model: Any) -> Optional[DataShape]:
    """Shape for a model given either as a class or as an instance."""
    if model is None:
        return None
    if isinstance(model, type) or typing.get_origin(model) is not None:
        return describe_shape(model)
    return describe_shape(type(model))


@functools.lru_cache(maxsize=None)
def _cached_shape(annotation: Any) -> DataShape:
    return _build_shape(annotation)


def _build_shape(annotation: Any) -> DataShape:
    optional = False
    inner = _optional_inner(annotation)
    if inner is not None:
        optional = True
        annotation = _strip_annotated(inner)

    fields = _record_fields(annotation)

    return DataShape(
        type_name=_type_name(annotation),
        annotation=annotation,
        is_record=fields is not None,
        optional=optional,
        field_annotations=fields or {},
    )


def _strip_annotated(annotation: Any) -> Any:
    while typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    return annotation


def _optional_inner(annotation: Any) -> Any:
    """
    For ``Optional[X]`` / ``X | None`` return ``X``; otherwise ``None``.

    Unions of several non-None members are not unwrapped.
    """
    origin = typing.get_origin(annotation)
    if origin is not Union and origin is not types.UnionType:
        return None

    members = [a for a in typing.get_args(annotation) if a is not type(None)]
    if len(members) != 1:
        return None
    if len(members) == len(typing.get_args(annotation)):
        return None
    return members[0]


def _record_fields(annotation: Any) -> Optional[Dict[str, Any]]:
    """Field annotations for record types, ``None`` for everything else."""
    if typing.get_origin(annotation) is not None:
        return None
    if not isinstance(annotation, type):
        return None

    if issubclass(annotation, BaseModel):
        return {
            name: info.annotation
            for name, info in annotation.model_fields.items()
        }

    if dataclasses.is_dataclass(annotation):
        hints = _type_hints(annotation)
        return {
            f.name: hints.get(f.name, f.type)
            for f in dataclasses.fields(annotation)
        }

    if typing.is_typeddict(annotation):
        return _type_hints(annotation)

    if issubclass(annotation, tuple) and hasattr(annotation, "_fields"):
        hints = _type_hints(annotation)
        return {name: hints.get(name, Any) for name in annotation._fields}

    if annotation.__module__ in _NON_RECORD_MODULES or issubclass(annotation, _NON_RECORD_BASES):
        return None

    hints = {
        name: hint
        for name, hint in _type_hints(annotation).items()
        if typing.get_origin(hint) is not typing.ClassVar
        and not name.startswith("_")
    }
    return hints


def _type_hints(annotation: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(annotation)
    except NameError:
        # Unresolvable forward references stay as declared strings
        # and describe as non-record leaves.
        return dict(getattr(annotation, "__annotations__", {}))


def _type_name(annotation: Any) -> str:
    name = getattr(annotation, "__name__", None)
    if isinstance(name, str) and typing.get_origin(annotation) is None:
        return name
    return repr(annotation).replace("typing.", "")
