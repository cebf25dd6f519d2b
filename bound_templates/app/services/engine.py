"""
Jinja2 engine adapter.

This module is the only place that knows how templates are compiled.
The registry hands it a name and source text and gets back a compiled
``jinja2.Template``; handlers only ever iterate that template's output.

Design guarantees:
- StrictUndefined: referencing a missing value fails at render time
- Autoescaping controlled by configuration (on by default)
- Template functions are installed as both filters and globals, so
  ``{{ title | shout }}`` and ``{{ shout(title) }}`` both work
- Unknown filters are rejected at compile time
- ``{% include %}`` / ``{% extends %}`` resolve through the same
  filesystem and base path as the registry
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Set, Tuple

from jinja2 import BaseLoader, Environment, StrictUndefined, Template, TemplateNotFound
from jinja2.loaders import split_template_path

from bound_templates.app.config import RegistryConfig
from bound_templates.app.filesystem import TemplateFilesystem


class FilesystemLoader(BaseLoader):
    """
    Jinja2 loader reading from a ``TemplateFilesystem``.

    Names given to ``include`` / ``extends`` / ``import`` are file paths
    relative to the base path, extension included.
    """

    def __init__(self, filesystem: TemplateFilesystem, base_path: str) -> None:
        self._filesystem = filesystem
        self._base_path = base_path

    def get_source(
        self, environment: Environment, template: str
    ) -> Tuple[str, str, Callable[[], bool]]:
        # Raises TemplateNotFound for '..' segments.
        pieces = split_template_path(template)
        path = "/".join([self._base_path, *pieces])
        try:
            source = self._filesystem.read_file(path).decode("utf-8")
        except FileNotFoundError as exc:
            raise TemplateNotFound(template) from exc
        return source, path, lambda: True

    def list_templates(self) -> list[str]:
        prefix = f"{self._base_path}/"
        return sorted(
            path[len(prefix):]
            for path, is_dir in self._filesystem.walk(self._base_path)
            if not is_dir and path.startswith(prefix)
        )


def build_environment(
    filesystem: TemplateFilesystem,
    config: RegistryConfig,
) -> Environment:
    """Create the environment shared by every template of one registry."""
    env = Environment(
        loader=FilesystemLoader(filesystem, config.base_path),
        undefined=StrictUndefined,
        autoescape=config.autoescape,
        keep_trailing_newline=True,
    )
    install_functions(env, config.template_functions)
    return env


def extend_environment(
    env: Environment,
    functions: Mapping[str, Callable[..., Any]],
) -> Environment:
    """
    Return an overlay of ``env`` with additional functions.

    ``env`` is left untouched. Overlays share the parent's filter and
    global dicts by reference, so both are copied before installing.
    """
    overlay = env.overlay()
    overlay.filters = dict(env.filters)
    overlay.globals = dict(env.globals)
    install_functions(overlay, functions)
    return overlay


def install_functions(
    env: Environment,
    functions: Mapping[str, Callable[..., Any]],
) -> None:
    for name, func in functions.items():
        env.filters[name] = func
        env.globals[name] = func


def compile_template(
    env: Environment,
    name: str,
    source: str,
    filename: str,
) -> Template:
    """
    Compile ``source`` into a template named ``name``.

    Raises:
        jinja2.TemplateSyntaxError: the source is invalid, or uses a
            filter or test the environment does not define.
    """
    code = env.compile(source, name=name, filename=filename)
    return env.template_class.from_code(env, code, env.make_globals(None))


def global_names(env: Environment) -> Set[str]:
    """Names templates can reference without them being data fields."""
    return set(env.globals)
