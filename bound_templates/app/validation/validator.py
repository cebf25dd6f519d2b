"""
Static validation of template field references against a data shape.

Validation never executes a template and never inspects live data: it
walks the ``DataShape`` descriptor of the registry's bound type.

Resolution rules for a path ``a.b.c``:
- at each segment, one level of optionality is unwrapped first
- the current shape must be a record
- the segment must name one of its fields (exact, case-sensitive)

The first unresolvable path fails the whole template.
"""

from __future__ import annotations

from typing import Iterable, Optional

from bound_templates.app.errors import (
    FieldNotFoundError,
    NilShapeError,
    NotARecordError,
    TemplateValidationError,
)
from bound_templates.app.schemas.shape import DataShape
from bound_templates.app.validation.extractor import extract_field_paths


def validate_field_path(shape: Optional[DataShape], path: str) -> None:
    """
    Check that ``path`` resolves through ``shape``.

    Raises:
        NilShapeError: ``shape`` is None.
        NotARecordError: a non-record is reached before the path ends.
        FieldNotFoundError: a segment is not a field of the current shape.
    """
    if shape is None:
        raise NilShapeError()

    current = shape
    for segment in path.split("."):
        current = current.unwrap()

        if not current.is_record:
            raise NotARecordError(current.type_name)

        field_shape = current.field(segment)
        if field_shape is None:
            raise FieldNotFoundError(segment, current.type_name)

        current = field_shape


def validate_template(
    name: str,
    source: str,
    shape: Optional[DataShape],
    ignore: Iterable[str] = (),
) -> None:
    """
    Validate every field path referenced by a template's source.

    Paths are checked in sorted order so the reported failure is
    deterministic.

    Raises:
        TemplateValidationError: for the first path that does not resolve.
    """
    for path in sorted(extract_field_paths(source, ignore=ignore)):
        try:
            validate_field_path(shape, path)
        except (NilShapeError, NotARecordError, FieldNotFoundError) as exc:
            raise TemplateValidationError(
                template_name=name,
                field_path=path,
                cause=exc,
            ) from exc
