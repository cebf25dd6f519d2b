from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict, Iterator, Mapping, Tuple, Union


class MemoryFilesystem:
    """
    In-memory template filesystem.

    Used for:
    - tests
    - templates bundled as Python strings
    - examples

    Directories are implied by file paths and never stored.
    The mapping is copied at construction; later edits to the caller's
    dict are not observed.
    """

    def __init__(self, files: Mapping[str, Union[bytes, str]]) -> None:
        self._files: Dict[str, bytes] = {
            _normalize(path): data.encode("utf-8") if isinstance(data, str) else bytes(data)
            for path, data in files.items()
        }

    def read_file(self, path: str) -> bytes:
        try:
            return self._files[_normalize(path)]
        except KeyError:
            raise FileNotFoundError(path) from None

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        prefix = _normalize(root)
        prefix = f"{prefix}/" if prefix else ""

        seen_dirs = set()
        for path in sorted(self._files):
            if not path.startswith(prefix):
                continue

            parts = PurePosixPath(path[len(prefix):]).parts
            for depth in range(1, len(parts)):
                directory = prefix + "/".join(parts[:depth])
                if directory not in seen_dirs:
                    seen_dirs.add(directory)
                    yield directory, True
            yield path, False


def _normalize(path: str) -> str:
    parts = [p for p in path.split("/") if p not in ("", ".")]
    return "/".join(parts)
