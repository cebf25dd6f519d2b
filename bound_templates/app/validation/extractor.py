"""
Field reference extraction from template source.

This is a surface-syntax scan, not a parse. It recognises two forms in
Jinja2 markup, where the template's top-level namespace is the bound
data object:

    {{ title }}            {{ author.name | upper }}
    {% if sub_title %}     {% elif not author.email %}

and returns the dotted paths they reference.

Names introduced inside the template (loop targets, ``set`` / ``with``
assignments, macro and call-block arguments) are relative to something
other than the bound data, so paths rooted at them are left unchecked.
Scoping is not tracked: a name bound anywhere in the template is
ignored everywhere in it.

Comments and ``{% raw %}`` blocks are removed before scanning.
"""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, Set

_PATH = r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*"
_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# {{ path }} and {{ path | filter ... }}; the rest of the tag is not inspected.
_OUTPUT_PATTERN = re.compile(
    r"\{\{[-+]?\s*(" + _PATH + r")\s*(?:\||[-+]?\}\})"
)

# {% if path %} / {% elif not path | filter %}
_CONDITION_PATTERN = re.compile(
    r"\{%[-+]?\s*(?:el)?if\s+(?:not\s+)?(" + _PATH + r")\s*(?:\||[-+]?%\})"
)

# Comments and raw blocks are never rendered as markup.
_INERT_PATTERN = re.compile(
    r"\{%[-+]?\s*raw\s*[-+]?%\}.*?\{%[-+]?\s*endraw\s*[-+]?%\}"
    r"|\{#.*?#\}",
    re.DOTALL,
)

# Statements that bind names local to the template.
_FOR_PATTERN = re.compile(r"\{%[-+]?\s*for\s+(.+?)\s+in\s")
_SET_PATTERN = re.compile(r"\{%[-+]?\s*set\s+([A-Za-z0-9_,\s]+?)\s*(?:=|[-+]?%\})")
_WITH_PATTERN = re.compile(r"\{%[-+]?\s*with\s+(.+?)[-+]?%\}")
_MACRO_PATTERN = re.compile(
    r"\{%[-+]?\s*(?:macro\s+([A-Za-z_][A-Za-z0-9_]*)\s*|call\s*)\(([^)]*)\)"
)
_IMPORT_PATTERN = re.compile(
    r"\{%[-+]?\s*(?:import\s+\S+\s+as\s+([A-Za-z_][A-Za-z0-9_]*)"
    r"|from\s+\S+\s+import\s+([^%]+?)[-+]?%\})"
)

# Names Jinja2 provides inside blocks, and its literals.
_IMPLICIT_NAMES = frozenset({
    "loop", "caller", "varargs", "kwargs", "self", "super",
    "true", "false", "none", "True", "False", "None",
})


def extract_field_paths(
    source: str,
    ignore: Iterable[str] = (),
) -> FrozenSet[str]:
    """
    Return the distinct field paths referenced by ``source``.

    Paths whose first segment is bound inside the template, implicit to
    Jinja2, or listed in ``ignore`` are excluded.
    Comments and raw blocks are not scanned.
    """
    source = strip_inert(source)

    excluded = set(_IMPLICIT_NAMES)
    excluded.update(ignore)
    excluded.update(local_names(source))

    paths: Set[str] = set()
    for pattern in (_OUTPUT_PATTERN, _CONDITION_PATTERN):
        for match in pattern.finditer(source):
            path = match.group(1)
            if path.split(".", 1)[0] in excluded:
                continue
            paths.add(path)
    return frozenset(paths)


def local_names(source: str) -> Set[str]:
    """Names bound by statements inside the template."""
    source = strip_inert(source)
    names: Set[str] = set()

    for match in _FOR_PATTERN.finditer(source):
        names.update(_IDENT.findall(match.group(1)))

    for match in _SET_PATTERN.finditer(source):
        names.update(_IDENT.findall(match.group(1)))

    for match in _WITH_PATTERN.finditer(source):
        for assignment in match.group(1).split(","):
            target = assignment.split("=", 1)[0].strip()
            if _IDENT.fullmatch(target):
                names.add(target)

    for match in _MACRO_PATTERN.finditer(source):
        if match.group(1):
            names.add(match.group(1))
        for argument in match.group(2).split(","):
            argument = argument.split("=", 1)[0].strip()
            if _IDENT.fullmatch(argument):
                names.add(argument)

    for match in _IMPORT_PATTERN.finditer(source):
        if match.group(1):
            names.add(match.group(1))
        elif match.group(2):
            for imported in match.group(2).split(","):
                alias = imported.split(" as ")[-1].strip()
                if _IDENT.fullmatch(alias):
                    names.add(alias)

    return names


def strip_inert(source: str) -> str:
    """Remove ``{# comments #}`` and ``{% raw %}`` blocks from ``source``."""
    return _INERT_PATTERN.sub("", source)
