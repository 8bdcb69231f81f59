"""Factory for creating storage backends."""

from pathlib import Path
from typing import Dict, Optional, Type, Union

from .base import StorageAdapter
from .file_storage import JsonFileStorage
from .memory_storage import MemoryStorage
from .resilient_storage import ResilientStorage
from config import settings


# Registry of available backends
BACKENDS: Dict[str, Type[StorageAdapter]] = {
    "memory": MemoryStorage,
    "file": JsonFileStorage,
    "json": JsonFileStorage,
}


def get_storage(
    backend: Optional[str] = None,
    path: Optional[Union[str, Path]] = None,
) -> StorageAdapter:
    """Get a storage backend instance.

    Args:
        backend: Backend name (memory, file); defaults to settings.storage_backend
        path: Directory for the file backend; defaults to settings.storage_dir

    Returns:
        StorageAdapter instance. File storage is wrapped in ResilientStorage.

    Examples:
        get_storage("memory")
        get_storage("file", "/tmp/grant")
    """
    backend_key = (backend or settings.storage_backend).lower()
    if backend_key not in BACKENDS:
        raise ValueError(
            f"Unknown storage backend: {backend}. "
            f"Available: {list(BACKENDS.keys())}"
        )

    backend_class = BACKENDS[backend_key]
    if backend_class is MemoryStorage:
        return MemoryStorage()

    directory = Path(path) if path else settings.get_storage_path()
    return ResilientStorage(backend_class(directory))
