"""
Shared models, filesystems and sinks for registry tests.

IMPORTANT:
- Deterministic
- No disk access (use tmp_path in tests that need a real directory)
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel

from bound_templates.app.filesystem import MemoryFilesystem


# ----------------------------------------------------------------------
# Bound data models
# ----------------------------------------------------------------------


class Page(BaseModel):
    title: str
    content: str


class Author(BaseModel):
    name: str
    email: Optional[str] = None


class Article(BaseModel):
    title: str
    content: str
    sub_title: Optional[str] = None
    author: Optional[Author] = None
    tags: List[str] = []


PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>{{ title }}</title>
</head>
<body>
    <h1>{{ content }}</h1>
</body>
</html>"""


# ----------------------------------------------------------------------
# Filesystems
# ----------------------------------------------------------------------


class CountingFilesystem:
    """
    Wraps a MemoryFilesystem, counting reads and optionally slowing them.
    """

    def __init__(
        self,
        files: Dict[str, str],
        *,
        read_delay: float = 0.0,
        on_read: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._inner = MemoryFilesystem(files)
        self._read_delay = read_delay
        self._on_read = on_read
        self._lock = threading.Lock()
        self.reads: List[str] = []

    def read_file(self, path: str) -> bytes:
        with self._lock:
            self.reads.append(path)
        if self._on_read is not None:
            self._on_read(path)
        if self._read_delay:
            time.sleep(self._read_delay)
        return self._inner.read_file(path)

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        return self._inner.walk(root)


class MutableFilesystem:
    """A filesystem whose files can be added after the registry exists."""

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self.files: Dict[str, str] = dict(files or {})

    def read_file(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path].encode("utf-8")

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        return MemoryFilesystem(self.files).walk(root)


# ----------------------------------------------------------------------
# Sinks
# ----------------------------------------------------------------------


class RecordingSink:
    def __init__(self) -> None:
        self.chunks: List[str] = []

    def write(self, s: str) -> int:
        self.chunks.append(s)
        return len(s)

    @property
    def text(self) -> str:
        return "".join(self.chunks)


class CancelOnFirstWriteSink(RecordingSink):
    """Accepts the first chunk, then cancels the context."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        super().__init__()
        self._cancel = cancel

    def write(self, s: str) -> int:
        written = super().write(s)
        self._cancel()
        return written


class CancelAndFailSink:
    """Cancels the context and then fails the write itself."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel

    def write(self, s: str) -> int:
        self._cancel()
        raise BrokenPipeError("sink closed")


class FailingSink:
    def write(self, s: str) -> int:
        raise BrokenPipeError("sink closed")
