"""Storage backends for persisted context, sessions and drafts."""

from .base import StorageAdapter
from .memory_storage import MemoryStorage
from .file_storage import JsonFileStorage
from .resilient_storage import ResilientStorage
from .factory import get_storage, BACKENDS

__all__ = [
    "StorageAdapter",
    "MemoryStorage",
    "JsonFileStorage",
    "ResilientStorage",
    "get_storage",
    "BACKENDS",
]
