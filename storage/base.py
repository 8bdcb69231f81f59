"""Base storage repository interface."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional


class StorageAdapter(ABC):
    """Abstract key-value repository for JSON-compatible values.

    Keys are namespaced strings such as "session:<id>" or "drafts:index".
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (memory, file)."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Read a value.

        Args:
            key: Storage key

        Returns:
            The stored value, or None when the key is missing or unreadable
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Write a JSON-compatible value, replacing any previous one."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """List stored keys starting with prefix, sorted."""
        pass

    def exists(self, key: str) -> bool:
        return key in self.keys(key)

    def clear_prefix(self, prefix: str) -> int:
        """Remove every key under a prefix.

        Returns:
            Number of keys removed
        """
        removed = self.keys(prefix)
        for key in removed:
            self.remove(key)
        return len(removed)
