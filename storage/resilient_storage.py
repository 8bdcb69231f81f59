"""Storage wrapper that degrades to memory when the primary backend fails."""

import logging
from typing import Any, List, Optional

from .base import StorageAdapter
from .memory_storage import MemoryStorage


logger = logging.getLogger(__name__)


class ResilientStorage(StorageAdapter):
    """Delegates to a primary adapter until it raises OSError.

    After the first failure every operation goes to an in-memory fallback
    for the rest of the process. The failed write is retried on the fallback.
    """

    def __init__(self, primary: StorageAdapter, fallback: Optional[StorageAdapter] = None):
        self.primary = primary
        self.fallback = fallback or MemoryStorage()
        self.degraded = False

    @property
    def name(self) -> str:
        return self.fallback.name if self.degraded else self.primary.name

    @property
    def active(self) -> StorageAdapter:
        return self.fallback if self.degraded else self.primary

    def get(self, key: str) -> Optional[Any]:
        return self._call("get", key)

    def set(self, key: str, value: Any) -> None:
        self._call("set", key, value)

    def remove(self, key: str) -> None:
        self._call("remove", key)

    def keys(self, prefix: str = "") -> List[str]:
        return self._call("keys", prefix)

    def exists(self, key: str) -> bool:
        return self._call("exists", key)

    def _call(self, method: str, *args: Any) -> Any:
        if not self.degraded:
            try:
                return getattr(self.primary, method)(*args)
            except OSError as e:
                logger.warning(
                    "Storage backend %s unavailable (%s); continuing in memory",
                    self.primary.name, e,
                )
                self.degraded = True
        return getattr(self.fallback, method)(*args)
