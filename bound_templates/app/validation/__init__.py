"""
Static field validation.

Extracts the field paths a template references and checks them
against a data shape, without compiling or executing the template.
"""

from .extractor import extract_field_paths
from .validator import validate_field_path, validate_template

__all__ = [
    "extract_field_paths",
    "validate_field_path",
    "validate_template",
]
