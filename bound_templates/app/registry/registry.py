"""
Template registry.

The registry resolves logical template names (``"home"``,
``"about/team"``) to compiled, validated handlers, and caches the
result for the lifetime of the registry.

Resolution of a name, on the first request only:

    read source -> validate fields (optional) -> compile -> cache

CONCURRENCY:
- Cached handlers are served under a short-held cache lock, without
  touching the filesystem.
- Resolution is serialized per name: concurrent first requests for the
  same name wait for a single resolver and share its handler.
- Different names resolve in parallel.

A failed resolution caches nothing, so a later request retries.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from jinja2 import TemplateSyntaxError
from pydantic import ValidationError

from bound_templates.app.config import RegistryConfig
from bound_templates.app.errors import (
    RegistryConstructionError,
    TemplateCompileError,
    TemplateNotFoundError,
)
from bound_templates.app.filesystem import TemplateFilesystem
from bound_templates.app.registry.handler import Handler
from bound_templates.app.schemas.shape import DataShape, shape_of_model
from bound_templates.app.services.engine import (
    build_environment,
    compile_template,
    global_names,
)
from bound_templates.app.validation.validator import validate_template

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET: Any = object()


class Registry(Generic[T]):
    """
    Concurrent cache and factory of template handlers.

    A registry is bound to one data type ``T``. When field validation is
    enabled, every template is checked against that type's shape before
    it is compiled.
    """

    def __init__(
        self,
        filesystem: TemplateFilesystem,
        config: Optional[RegistryConfig] = None,
    ) -> None:
        self._filesystem = filesystem
        self._config = config or RegistryConfig()
        self._environment = build_environment(filesystem, self._config)

        self._shape: Optional[DataShape] = None
        if self._config.validate_fields:
            self._shape = shape_of_model(self._config.validation_model)

        self._templates: Dict[str, Handler[T]] = {}
        self._cache_lock = threading.Lock()
        self._resolution_locks: Dict[str, _NameLock] = {}

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def shape(self) -> Optional[DataShape]:
        """The bound data shape, when field validation is enabled."""
        return self._shape

    def path_for(self, name: str) -> str:
        """Filesystem path of the template called ``name``."""
        return f"{self._config.base_path}/{name}{self._config.extension}"

    def is_cached(self, name: str) -> bool:
        with self._cache_lock:
            return name in self._templates

    def __len__(self) -> int:
        with self._cache_lock:
            return len(self._templates)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get(self, name: str) -> Handler[T]:
        """
        Return the handler for ``name``, resolving it on first use.

        Raises:
            TemplateNotFoundError: the name is not a relative path inside
                the base path, or the source could not be read.
            TemplateValidationError: a referenced field does not resolve
                against the bound data shape.
            TemplateCompileError: the engine rejected the source.
        """
        with self._cache_lock:
            handler = self._templates.get(name)
        if handler is not None:
            return handler

        _check_name(name)

        name_lock = self._acquire_resolution_lock(name)
        try:
            with name_lock.lock:
                # Another caller may have finished while we waited.
                with self._cache_lock:
                    handler = self._templates.get(name)
                if handler is not None:
                    return handler

                handler = self._resolve(name)

                with self._cache_lock:
                    self._templates[name] = handler
                return handler
        finally:
            self._release_resolution_lock(name, name_lock)

    def discover(self) -> List[str]:
        """
        Names of every template under the base path, sorted.

        Names are paths relative to the base path without the extension,
        i.e. exactly what ``get`` accepts.
        """
        prefix = f"{self._config.base_path}/"
        extension = self._config.extension

        names = sorted(
            path[len(prefix):-len(extension)]
            for path, is_dir in self._filesystem.walk(self._config.base_path)
            if not is_dir
            and path.startswith(prefix)
            and path.endswith(extension)
            and len(path) > len(prefix) + len(extension)
        )
        logger.info(
            "Discovered %d template(s) under '%s'",
            len(names),
            self._config.base_path,
        )
        return names

    def preload(self, names: Optional[Iterable[str]] = None) -> List[Handler[T]]:
        """
        Resolve ``names`` (default: every discovered template) up front.

        Stops at, and raises, the first failure. Templates resolved
        before the failure stay cached.
        """
        if names is None:
            names = self.discover()
        return [self.get(name) for name in names]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _acquire_resolution_lock(self, name: str) -> "_NameLock":
        with self._cache_lock:
            name_lock = self._resolution_locks.get(name)
            if name_lock is None:
                name_lock = self._resolution_locks[name] = _NameLock()
            name_lock.users += 1
            return name_lock

    def _release_resolution_lock(self, name: str, name_lock: "_NameLock") -> None:
        with self._cache_lock:
            name_lock.users -= 1
            if name_lock.users == 0:
                del self._resolution_locks[name]

    def _resolve(self, name: str) -> Handler[T]:
        path = self.path_for(name)
        filename = f"{name}{self._config.extension}"
        logger.debug("Template cache miss for '%s', reading %s", name, path)

        try:
            source = self._filesystem.read_file(path).decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateNotFoundError(name, path=path, cause=exc) from exc

        if self._config.validate_fields:
            validate_template(
                name,
                source,
                self._shape,
                ignore=global_names(self._environment),
            )

        try:
            template = compile_template(self._environment, filename, source, path)
        except TemplateSyntaxError as exc:
            raise TemplateCompileError(name, exc) from exc

        logger.debug("Compiled template '%s'", name)

        return Handler(
            name=name,
            filename=filename,
            source=source,
            template=template,
            environment=self._environment,
            registry=self,
        )


def new_registry(
    filesystem: TemplateFilesystem,
    *,
    base_path: str = "",
    field_validation: Any = _UNSET,
    template_functions: Optional[Dict[str, Callable[..., Any]]] = None,
    extension: Optional[str] = None,
    autoescape: bool = True,
) -> Registry[Any]:
    """
    Create a registry over ``filesystem``.

    Args:
        base_path: directory holding the templates; empty means
            ``"templates"``.
        field_validation: a model class (or instance) to validate
            templates against. Passing it, even as ``None``, enables
            validation.
        template_functions: functions available to every template.
        extension: template file extension, ``".html"`` by default.
        autoescape: HTML-escape substituted values.

    Raises:
        RegistryConstructionError: an option failed validation.
    """
    options: Dict[str, Any] = {
        "base_path": base_path,
        "template_functions": template_functions or {},
        "autoescape": autoescape,
    }
    if extension is not None:
        options["extension"] = extension
    if field_validation is not _UNSET:
        options["validate_fields"] = True
        options["validation_model"] = field_validation

    try:
        config = RegistryConfig(**options)
    except ValidationError as exc:
        raise RegistryConstructionError(str(exc)) from exc

    return Registry(filesystem, config)


class _NameLock:
    """Resolution lock for one name, shared by every caller waiting on it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


def _check_name(name: str) -> None:
    """
    Reject names that are not plain slash-separated relative paths.

    Empty, absolute, ``.`` and ``..`` segments could address files
    outside the base path, so such names are never read.
    """
    segments = name.split("/")
    if any(segment in ("", ".", "..") for segment in segments) or "\\" in name:
        raise TemplateNotFoundError(
            name,
            cause=ValueError(f"invalid template name {name!r}"),
        )
