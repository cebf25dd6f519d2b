from .handler import Handler
from .registry import Registry, new_registry

__all__ = [
    "Handler",
    "Registry",
    "new_registry",
]
