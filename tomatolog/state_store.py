#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Persisted key/value state.

A small JSON document on disk holding application state that must survive
restarts (the project list and the selected project). Reads never fail:
a missing or corrupt file is treated as empty. Writes replace the whole
document through a temporary file.
"""

import contextlib
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    from tomatolog.debug_logger import get_logger
    from tomatolog.paths import PathResolver
except ImportError:
    from debug_logger import get_logger
    from paths import PathResolver


class KeyValueStore:
    """JSON-file backed key/value store."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else PathResolver.defaults_path()
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            get_logger().storage_error("defaults_load", e, self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except (OSError, ValueError) as e:
            get_logger().storage_error("defaults_save", e, self.path)
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def get_string(self, key: str) -> Optional[str]:
        """String value for ``key``, or None if missing or not a string."""
        value = self.get(key)
        return value if isinstance(value, str) else None

    def get_string_list(self, key: str) -> List[str]:
        """String items stored under ``key``; non-string items are dropped."""
        value = self.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def set(self, key: str, value: Any) -> bool:
        """Store ``value`` and write the document to disk.

        Returns:
            False if the write failed. The previous value is restored, so
            memory never holds state that is not on disk.
        """
        with self._lock:
            missing = object()
            previous = self._data.get(key, missing)
            self._data[key] = value
            if self._save():
                return True

            if previous is missing:
                del self._data[key]
            else:
                self._data[key] = previous
            return False
