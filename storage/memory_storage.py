"""In-memory storage backend."""

import json
from typing import Any, Dict, List, Optional

from .base import StorageAdapter


class MemoryStorage(StorageAdapter):
    """Dict-backed storage.

    Values are copied through a JSON round-trip on every read and write so
    callers never share mutable state with the store.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    @property
    def name(self) -> str:
        return "memory"

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, default=str)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def exists(self, key: str) -> bool:
        return key in self._data
