"""
Directory-backed template filesystem.

Resolves slash-separated paths against a root directory on disk.
Paths that would resolve outside the root (``..`` segments, absolute
paths, symlinks pointing elsewhere) are reported as not found.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Iterator, Tuple, Union


class DirectoryFilesystem:
    def __init__(self, root: Union[str, os.PathLike[str]]) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def read_file(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        try:
            base = self._resolve(root)
        except FileNotFoundError:
            return
        if not base.is_dir():
            return

        for dirpath, dirnames, filenames in os.walk(base):
            dirnames.sort()
            current = Path(dirpath)
            for dirname in dirnames:
                yield self._relative(current / dirname), True
            for filename in sorted(filenames):
                yield self._relative(current / filename), False

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute():
            raise FileNotFoundError(path)

        candidate = (self._root / relative).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise FileNotFoundError(path)
        return candidate

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()
