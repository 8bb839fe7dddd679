# database/manager.py

import copy
import json
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


class Store:
    """Key/value persistence used by the engine"""

    def load(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStore(Store):
    """Dict-backed store; values are deep-copied in and out"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.RLock()

    def load(self, key: str) -> Optional[Any]:
        with self._lock:
            if key not in self._data:
                return None
            return copy.deepcopy(self._data[key])

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class JsonFileStore(Store):
    """One JSON file per key under a data directory"""

    def __init__(self, data_dir: Union[str, Path] = "data"):
        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()

    def _file(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[Any]:
        path = self._file(key)
        with self._lock:
            if not path.exists():
                return None
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

    def save(self, key: str, value: Any) -> None:
        path = self._file(key)
        with self._lock:
            self.data_dir.mkdir(exist_ok=True, parents=True)
            temp_file = path.with_suffix('.tmp')
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2, default=str)
            temp_file.replace(path)

    def delete(self, key: str) -> None:
        path = self._file(key)
        with self._lock:
            if path.exists():
                path.unlink()

    def keys(self) -> List[str]:
        with self._lock:
            if not self.data_dir.exists():
                return []
            return sorted(p.stem for p in self.data_dir.glob("*.json"))
