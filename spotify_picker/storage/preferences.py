"""
A small JSON key/value file used as the persistence backing for credentials.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

log = logging.getLogger(__name__)


class PreferencesFile:
    """
    Flat JSON object on disk. Every mutation rewrites the whole file through a
    temp file and ``os.replace``, so several keys can change in one atomic step.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            log.debug(f"Ignoring unreadable preferences file '{self.path}': {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, separators=(",", ":"), sort_keys=True)
        os.replace(tmp, self.path)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def update(self, values: Dict[str, Any]) -> None:
        """Writes all given keys in a single composite write."""
        with self._lock:
            data = self._read()
            data.update(values)
            self._write(data)

    def remove(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._read()
            removed = [key for key in keys if data.pop(key, None) is not None]
            if removed:
                self._write(data)
