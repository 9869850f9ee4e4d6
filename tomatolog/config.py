# SPDX-License-Identifier: MIT
"""Settings for tomatolog.

Settings live in one JSON document, by default
``~/.config/tomatolog/settings.json``::

    {"tomatolog": {"debugLevel": 2, "defaultProjectName": "Inbox", "statsRangeDays": 14}}

Keys are addressed with dots (``tomatolog.statsRangeDays``). The document
is re-read on every lookup so edits apply without a restart. A missing,
unreadable or malformed document behaves like an empty one.
"""
import json
import os
from pathlib import Path
from typing import Any, Dict

try:
    from tomatolog.paths import PathResolver
except ImportError:
    from paths import PathResolver

TRUE_STRINGS = ("true", "1", "yes")

_MISSING = object()


def get_settings_path() -> Path:
    """TOMATOLOG_SETTINGS if set, else settings.json in the config dir."""
    override = os.environ.get("TOMATOLOG_SETTINGS")
    return Path(override) if override else PathResolver.config_dir() / "settings.json"


def _read_settings() -> Dict[str, Any]:
    try:
        with open(get_settings_path(), encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, ValueError):
        return {}
    return document if isinstance(document, dict) else {}


def _lookup(document: Dict[str, Any], key: str) -> Any:
    node: Any = document
    for part in key.split("."):
        if not isinstance(node, dict):
            return _MISSING
        node = node.get(part, _MISSING)
        if node is _MISSING:
            return _MISSING
    return node


def get_setting(key: str, default: Any = None) -> Any:
    """Raw value at dot-notation ``key``, or ``default`` when absent.

    A key that is present with a JSON null value returns None.
    """
    value = _lookup(_read_settings(), key)
    return default if value is _MISSING else value


def get_bool_setting(key: str, default: bool = False) -> bool:
    """Boolean setting; strings count as true when they read true/1/yes."""
    value = get_setting(key, default)
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def get_int_setting(key: str, default: int = 0) -> int:
    """Integer setting. Booleans and values int() rejects give ``default``."""
    value = get_setting(key, default)
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def get_str_setting(key: str, default: str = "") -> str:
    """Trimmed string setting; blanks and non-strings give ``default``."""
    value = get_setting(key, default)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default
