"""Key/value storage backends for UI state that survives a reload."""

from __future__ import annotations

import sqlite3
from typing import Optional


class StorageUnavailable(Exception):
    """The backing store could not be read or written."""


class MemoryStorage:
    """Dict-backed storage; lives as long as the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value


class SqliteSettingsStorage:
    """Storage on the journal DB's app_settings table."""

    def get(self, key: str) -> Optional[str]:
        from db import get_setting

        try:
            return get_setting(key)
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(str(e)) from e

    def set(self, key: str, value: str):
        from db import set_setting

        try:
            set_setting(key, value)
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(str(e)) from e
