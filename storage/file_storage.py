"""JSON file storage backend: one file per key in a directory."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Union
from urllib.parse import quote, unquote

from .base import StorageAdapter


logger = logging.getLogger(__name__)

FILE_SUFFIX = ".json"


class JsonFileStorage(StorageAdapter):
    """Stores each key as <quoted key>.json under a directory.

    Corrupt or unreadable files read as missing. Writes go to a temporary
    file in the same directory and are moved into place with os.replace.
    """

    def __init__(self, directory: Union[str, Path]):
        """Initialize the backend.

        Args:
            directory: Directory holding the key files (created on first write)
        """
        self.directory = Path(directory)

    @property
    def name(self) -> str:
        return "file"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Ignoring corrupt storage file %s: %s", path, e)
            return None

    def set(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(value, indent=2, ensure_ascii=False, default=str)

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=FILE_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._path(key))
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def keys(self, prefix: str = "") -> List[str]:
        if not self.directory.exists():
            return []
        found = []
        for path in self.directory.glob(f"*{FILE_SUFFIX}"):
            if path.name.startswith(".tmp-"):
                continue
            key = unquote(path.name[: -len(FILE_SUFFIX)])
            if key.startswith(prefix):
                found.append(key)
        return sorted(found)

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{FILE_SUFFIX}"
