"""
Named aspect-ratio presets and their ``presets.json`` file.

Only the command line front end (``app.py``) reads the file, through
``load_presets()``.  The editor core never touches disk for presets:
``AspectLockSolver`` falls back to ``preset_ratios(DEFAULT_ASPECT_PRESETS)``
when it is not handed a table.

The file sits in ``config.config_dir()`` as ``{"version": 1, "presets": [...]}``.
A missing or unusable file is replaced by the built-in presets.  Two presets
may not reduce to the same ``aspect_key``.  This module is Qt-free.
"""

import json
import logging
from copy import deepcopy
from fractions import Fraction
from pathlib import Path

from imagor_editor.config import DEFAULT_ASPECT_PRESETS, config_dir

logger = logging.getLogger(__name__)

_PRESETS_FILENAME = "presets.json"
_FORMAT_VERSION = 1


def aspect_key(w: int, h: int) -> str:
    """Lowest-terms ``"w:h"`` label, e.g. 1920x1080 gives ``"16:9"``."""
    ratio = Fraction(w, h)
    return f"{ratio.numerator}:{ratio.denominator}"


def preset_ratios(presets: list[dict]) -> dict[str, float]:
    """Map each preset's aspect key to its width/height ratio."""
    return {aspect_key(p["ratio_w"], p["ratio_h"]): p["ratio_w"] / p["ratio_h"] for p in presets}


# =============================================================================
# Validation
# =============================================================================
def _preset_errors(preset: object) -> list[str]:
    if not isinstance(preset, dict):
        return ["not an object"]
    errors = []
    name = preset.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("name must be a non-empty string")
    for side in ("ratio_w", "ratio_h"):
        value = preset.get(side)
        if type(value) is not int or value < 1:
            errors.append(f"{side} must be a positive integer, got {value!r}")
    return errors


def validate_presets(data: object) -> list[str]:
    """
    Check a presets list.

    Returns error strings; an empty list means the data can be saved.
    """
    if not isinstance(data, list):
        return ["Presets data must be a list"]

    errors: list[str] = []
    owners: dict[str, str] = {}
    for number, preset in enumerate(data, start=1):
        problems = _preset_errors(preset)
        if problems:
            errors.extend(f"Preset #{number}: {problem}" for problem in problems)
            continue
        key = aspect_key(preset["ratio_w"], preset["ratio_h"])
        if key in owners:
            errors.append(f"Preset #{number}: ratio {key} is already used by {owners[key]!r}")
        else:
            owners[key] = preset["name"]
    return errors


# =============================================================================
# File access
# =============================================================================
def _presets_path() -> Path:
    return config_dir() / _PRESETS_FILENAME


def _write_file(path: Path, presets: list[dict]) -> None:
    envelope = {"version": _FORMAT_VERSION, "presets": presets}
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")


def _read_file(path: Path) -> list[dict] | None:
    """The stored presets, or None after logging why they cannot be used."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Unreadable preset file %s: %s", path, exc)
        return None
    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION:
        logger.warning("Preset file %s has no version %d envelope", path, _FORMAT_VERSION)
        return None
    errors = validate_presets(raw.get("presets"))
    if errors:
        logger.warning("Rejected preset file %s: %s", path, "; ".join(errors))
        return None
    return raw["presets"]


def load_presets() -> list[dict]:
    """Stored presets, falling back to (and rewriting) the built-in ones."""
    path = _presets_path()
    stored = _read_file(path) if path.exists() else None
    if stored is not None:
        return stored

    defaults = deepcopy(DEFAULT_ASPECT_PRESETS)
    try:
        _write_file(path, defaults)
    except OSError as exc:
        logger.error("Could not store built-in presets at %s: %s", path, exc)
    else:
        logger.info("Wrote %d built-in preset(s) to %s", len(defaults), path)
    return defaults


def save_presets(presets: list[dict]) -> None:
    """
    Replace the stored presets.

    Raises ValueError for invalid data, before anything is written, and
    OSError when the file cannot be written.
    """
    errors = validate_presets(presets)
    if errors:
        raise ValueError("; ".join(errors))
    path = _presets_path()
    _write_file(path, presets)
    logger.info("Saved %d preset(s) to %s", len(presets), path)
