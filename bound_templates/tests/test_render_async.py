import anyio
import pytest

from bound_templates.app.errors import TemplateExecutionError
from bound_templates.app.filesystem import MemoryFilesystem
from bound_templates.app.registry.registry import new_registry
from bound_templates.app.services.context import Canceled, RenderContext
from bound_templates.tests.helpers import CancelOnFirstWriteSink, Page, RecordingSink

pytestmark = pytest.mark.anyio


def _handler(source):
    return new_registry(MemoryFilesystem({"templates/page.html": source})).get("page")


async def test_render_async_writes_output():
    handler = _handler("<h1>{{ title }}</h1><p>{{ content }}</p>")
    sink = RecordingSink()

    await handler.render_async(
        RenderContext.background(), sink, Page(title="Welcome", content="Hello, World!")
    )

    assert sink.text == "<h1>Welcome</h1><p>Hello, World!</p>"


async def test_render_async_respects_render_context():
    handler = _handler("{{ title }}")
    ctx = RenderContext.with_cancel()
    ctx.cancel()

    with pytest.raises(TemplateExecutionError) as exc_info:
        await handler.render_async(ctx, RecordingSink(), {"title": "x"})

    assert isinstance(exc_info.value.cause, Canceled)


async def test_host_cancellation_propagates_unwrapped():
    handler = _handler("{% for i in range(100) %}{{ i }}{% endfor %}")
    sink = RecordingSink()

    with anyio.CancelScope() as scope:
        scope.cancel()
        await handler.render_async(RenderContext.background(), sink, {})

    assert scope.cancelled_caught
    assert len(sink.chunks) <= 1


async def test_concurrent_async_renders_share_handler():
    handler = _handler("{{ title }}")
    results = {}

    async def _render(i):
        sink = RecordingSink()
        await handler.render_async(RenderContext.background(), sink, {"title": f"t{i}"})
        results[i] = sink.text

    async with anyio.create_task_group() as tg:
        for i in range(5):
            tg.start_soon(_render, i)

    assert results == {i: f"t{i}" for i in range(5)}


async def test_render_async_context_error_wins_over_engine_error():
    ctx = RenderContext.with_cancel()

    def explode():
        ctx.cancel()
        raise RuntimeError("template function failed")

    fs = MemoryFilesystem({"templates/page.html": "<p>{{ explode() }}</p>"})
    handler = new_registry(fs, template_functions={"explode": explode}).get("page")
    sink = RecordingSink()

    with pytest.raises(TemplateExecutionError) as exc_info:
        await handler.render_async(ctx, sink, {})

    assert isinstance(exc_info.value.cause, Canceled)
    assert sink.chunks == ["<p>"]


async def test_render_async_context_error_wins_over_undefined_field():
    handler = _handler("<p>{{ missing }}</p>")
    ctx = RenderContext.with_cancel()

    with pytest.raises(TemplateExecutionError) as exc_info:
        await handler.render_async(ctx, CancelOnFirstWriteSink(ctx.cancel), {})

    assert isinstance(exc_info.value.cause, Canceled)
