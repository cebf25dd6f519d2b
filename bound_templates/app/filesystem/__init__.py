from .base import TemplateFilesystem
from .directory import DirectoryFilesystem
from .memory import MemoryFilesystem

__all__ = [
    "TemplateFilesystem",
    "DirectoryFilesystem",
    "MemoryFilesystem",
]
