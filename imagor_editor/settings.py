"""
Persistent settings: imagor endpoint, signing and preview behaviour.

Values live in ``settings.json`` in the config directory (provided by
``config.config_dir()``) inside a versioned envelope::

    {"version": 1, "settings": {"base_url": "...", "debounce_ms": 500}}

Reads go through a process-wide cache so the file is parsed once per key.
The cache has an explicit lifecycle:

* ``set_setting`` and ``remove_setting`` drop the affected entry after a
  successful write;
* ``clear_entry(key)`` and ``clear()`` must be called by anything that
  changes the file behind this module's back.

Missing keys fall back to ``DEFAULT_SETTINGS``.  This module is Qt-free.
"""

import json
import logging
from pathlib import Path
from typing import Any

from imagor_editor.config import DEFAULT_SETTINGS, config_dir

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

_MISSING = object()
_cache: dict[str, Any] = {}


# =============================================================================
# Cache lifecycle
# =============================================================================
def clear() -> None:
    """Forget every cached value."""
    _cache.clear()


def clear_entry(key: str) -> None:
    """Forget the cached value of *key*."""
    _cache.pop(key, None)


# =============================================================================
# File access
# =============================================================================
def _settings_path() -> Path:
    return config_dir() / _SETTINGS_FILENAME


def _read_file() -> dict[str, Any]:
    path = _settings_path()
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s), using defaults", exc)
        return {}
    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or not isinstance(raw.get("settings"), dict):
        logger.warning("settings.json has an unexpected format, using defaults")
        return {}
    return raw["settings"]


def _write_file(values: dict[str, Any]) -> None:
    envelope = {"version": _FORMAT_VERSION, "settings": values}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")


# =============================================================================
# Get / Set / Remove
# =============================================================================
def get_setting(key: str, default: Any = _MISSING) -> Any:
    """Return the stored value of *key*, else *default*, else the built-in default."""
    if key in _cache:
        return _cache[key]
    stored = _read_file().get(key, _MISSING)
    if stored is _MISSING:
        if default is not _MISSING:
            return default
        stored = DEFAULT_SETTINGS.get(key)
    _cache[key] = stored
    return stored


def get_all() -> dict[str, Any]:
    """Every known setting with defaults filled in."""
    return {key: get_setting(key) for key in DEFAULT_SETTINGS}


def set_setting(key: str, value: Any) -> None:
    """
    Store *value* under *key*.

    Raises TypeError if the value is not JSON serializable and OSError if
    the file cannot be written; the cache is only invalidated on success.
    """
    values = _read_file()
    values[key] = value
    _write_file(values)
    clear_entry(key)
    logger.info("Saved setting %s", key)


def remove_setting(key: str) -> None:
    values = _read_file()
    if key not in values:
        clear_entry(key)
        return
    del values[key]
    _write_file(values)
    clear_entry(key)
    logger.info("Removed setting %s", key)
