from __future__ import annotations

from typing import Iterator, Protocol, Tuple


class TemplateFilesystem(Protocol):
    """
    Interface for the store templates are read from.

    Paths are slash-separated and relative to the filesystem's root.

    Implementations must be:
    - safe to call from several threads at once
    - read-only from the registry's point of view
    """

    def read_file(self, path: str) -> bytes:
        """
        Return the file's bytes.

        Raises:
            FileNotFoundError: no file exists at ``path``.
            OSError: the file exists but could not be read.
        """
        ...

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        """
        Yield ``(path, is_dir)`` for every entry below ``root``.

        A missing ``root`` yields nothing.
        """
        ...
