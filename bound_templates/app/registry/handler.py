"""
Compiled template handlers.

A ``Handler`` is the executable form of one template, bound to the data
type of the registry that produced it. Handlers are immutable and are
shared between every caller that asks the registry for the same name,
so nothing here mutates handler state after construction.

EXECUTION CONTRACT:
- A render context is required; ``None`` fails before the engine runs.
- Output is written to the sink chunk by chunk, as the engine produces
  it. Every write first checks the context.
- A done context wins over any engine or sink error observed at the
  same time.
- The context is checked once more after rendering completes.
- Every failure is raised as ``TemplateExecutionError`` whose ``cause``
  is the underlying reason.
"""

from __future__ import annotations

import dataclasses
import io
from collections.abc import Mapping
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Generic,
    NoReturn,
    Optional,
    Protocol,
    TypeVar,
)

from anyio.lowlevel import checkpoint
from jinja2 import Environment, Template, TemplateSyntaxError
from pydantic import BaseModel

from bound_templates.app.errors import (
    NilContextError,
    TemplateCompileError,
    TemplateExecutionError,
)
from bound_templates.app.services.context import RenderContext
from bound_templates.app.services.engine import compile_template, extend_environment

if TYPE_CHECKING:
    from bound_templates.app.registry.registry import Registry

T = TypeVar("T")


class TextSink(Protocol):
    def write(self, s: str, /) -> Any:
        ...


class Handler(Generic[T]):
    """
    Immutable compiled template bound to data of type ``T``.
    """

    __slots__ = ("_name", "_filename", "_source", "_template", "_environment", "_registry")

    def __init__(
        self,
        *,
        name: str,
        filename: str,
        source: str,
        template: Template,
        environment: Environment,
        registry: Optional["Registry[T]"] = None,
    ) -> None:
        self._name = name
        self._filename = filename
        self._source = source
        self._template = template
        self._environment = environment
        self._registry = registry

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def source(self) -> str:
        return self._source

    @property
    def registry(self) -> Optional["Registry[T]"]:
        return self._registry

    def __repr__(self) -> str:
        return f"Handler(name={self._name!r})"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def render(self, ctx: Optional[RenderContext], sink: TextSink, data: T) -> None:
        """
        Render the template with ``data`` into ``sink``.

        Raises:
            TemplateExecutionError: with ``cause`` set to NilContextError,
                Canceled, DeadlineExceeded or the engine failure.
        """
        if ctx is None:
            self._raise_execution_error(NilContextError())

        try:
            for chunk in self._template.generate(template_namespace(data)):
                _checked_write(ctx, sink, chunk)
        except Exception as exc:
            self._raise_execution_error(ctx.err() or exc)

        ctx_err = ctx.err()
        if ctx_err is not None:
            self._raise_execution_error(ctx_err)

    async def render_async(
        self, ctx: Optional[RenderContext], sink: TextSink, data: T
    ) -> None:
        """
        Async variant of ``render``.

        Yields to the event loop after every write, so an enclosing
        anyio cancel scope (``anyio.fail_after``, task group
        cancellation) can interrupt rendering. Host cancellation is
        not wrapped and propagates as-is.
        """
        if ctx is None:
            self._raise_execution_error(NilContextError())

        try:
            for chunk in self._template.generate(template_namespace(data)):
                _checked_write(ctx, sink, chunk)
                await checkpoint()
        except Exception as exc:
            self._raise_execution_error(ctx.err() or exc)

        ctx_err = ctx.err()
        if ctx_err is not None:
            self._raise_execution_error(ctx_err)

    def render_to_string(self, ctx: Optional[RenderContext], data: T) -> str:
        buffer = io.StringIO()
        self.render(ctx, buffer, data)
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_functions(self, functions: Dict[str, Callable[..., Any]]) -> "Handler[T]":
        """
        Return a new handler whose template can also use ``functions``.

        The receiver, which may be the registry's cached instance, is
        not modified. The returned handler is private to the caller and
        is not cached.

        Raises:
            TemplateCompileError: the source fails to compile in the
                extended environment.
        """
        environment = extend_environment(self._environment, functions)
        try:
            template = compile_template(
                environment, self._filename, self._source, self._filename
            )
        except TemplateSyntaxError as exc:
            raise TemplateCompileError(self._name, exc) from exc

        return Handler(
            name=self._name,
            filename=self._filename,
            source=self._source,
            template=template,
            environment=environment,
            registry=self._registry,
        )

    def _raise_execution_error(self, cause: BaseException) -> NoReturn:
        raise TemplateExecutionError(self._name, cause) from cause


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _checked_write(ctx: RenderContext, sink: TextSink, chunk: str) -> None:
    ctx.raise_if_done()
    sink.write(chunk)


def template_namespace(data: Any) -> Dict[str, Any]:
    """
    Expose ``data`` as the template's top-level names.

    Nested values are passed through untouched (models are not dumped),
    so ``{{ author.name }}`` resolves by attribute access.
    """
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        return {name: getattr(data, name) for name in type(data).model_fields}
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}
    if isinstance(data, Mapping):
        return dict(data)
    if isinstance(data, tuple) and hasattr(data, "_asdict"):
        return dict(data._asdict())
    if hasattr(data, "__dict__"):
        return {k: v for k, v in vars(data).items() if not k.startswith("_")}
    raise TypeError(
        f"Cannot expose {type(data).__name__} as template data; "
        "expected a model, dataclass, mapping or object with attributes"
    )
