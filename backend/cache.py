"""
Small string key-value stores used for persisted dashboard state.
MemoryStore keeps values in a dict; JsonFileStore persists all keys in one
JSON file so bindings survive restarts.
"""

import json
import os
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """get(key) -> str | None, set(key, value)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def clear_all(self) -> None:
        for key in self.keys():
            self.delete(key)
        logger.info("Store cleared")


class MemoryStore(KeyValueStore):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._memory: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        value = self._memory.get(key)
        logger.debug(f"Store {'hit' if value is not None else 'miss'}: {key}")
        return value

    def set(self, key: str, value: str) -> None:
        self._memory[key] = value
        logger.debug(f"Store set: {key}")

    def delete(self, key: str) -> None:
        self._memory.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._memory)


class JsonFileStore(KeyValueStore):
    """
    All keys live in a single JSON object on disk. The file is read on every
    access and rewritten through a temp file + rename on every write
    (single writer assumed).
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable store file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Store file {self.path} does not hold an object, ignoring")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)
        logger.debug(f"Store set: {key} -> {self.path}")

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)

    def keys(self) -> List[str]:
        return list(self._load())
