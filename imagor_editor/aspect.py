"""
Aspect-ratio coupling between width and height edits.

The solver owns the lock flag, the ratio currently enforced (the natural
ratio, the ratio captured when the lock was switched on, or a preset's
ratio), the active preset key, and the base-dimension snapshot that the
scale slider multiplies.  Every method returns the parameter updates to
merge; the solver never touches a ParameterStore itself.

This module is Qt-free.
"""

import logging
from typing import Any, Mapping

from imagor_editor.config import DEFAULT_ASPECT_PRESETS, PRESET_RATIO_TOLERANCE
from imagor_editor.models import ImageDimensions, ParamKind
from imagor_editor.params import parse_field_input
from imagor_editor.presets import preset_ratios

logger = logging.getLogger(__name__)


class AspectLockSolver:
    """Keeps width and height proportional while the lock is on."""

    def __init__(
        self,
        original: ImageDimensions | None = None,
        presets: Mapping[str, float] | None = None,
        locked: bool = True,
    ):
        self.aspect_locked = locked
        self.original_aspect_ratio = original.aspect_ratio if original and original.height else None
        self.active_preset: str | None = None
        self.base_dimensions = original
        self.scale = 1.0
        self._original = original
        self._ratio = self.original_aspect_ratio
        self._presets = dict(presets) if presets is not None else preset_ratios(DEFAULT_ASPECT_PRESETS)

    @property
    def ratio(self) -> float | None:
        """Width/height ratio enforced while locked."""
        return self._ratio

    @property
    def presets(self) -> dict[str, float]:
        return dict(self._presets)

    # =========================================================================
    # Manual edits
    # =========================================================================
    def set_width(
        self,
        width: float,
        current_height: int | None = None,
        coupled: bool = True,
    ) -> dict[ParamKind, Any]:
        """Set the width; with *coupled* and the lock on, the height follows the ratio."""
        width = max(1, int(round(width)))
        height = current_height
        locked = coupled and self.aspect_locked
        if locked and self._ratio:
            height = max(1, round(width / self._ratio))
        self._after_manual_edit(width, height)
        updates: dict[ParamKind, Any] = {ParamKind.WIDTH: width}
        if locked and height is not None:
            updates[ParamKind.HEIGHT] = height
        return updates

    def set_height(
        self,
        height: float,
        current_width: int | None = None,
        coupled: bool = True,
    ) -> dict[ParamKind, Any]:
        height = max(1, int(round(height)))
        width = current_width
        locked = coupled and self.aspect_locked
        if locked and self._ratio:
            width = max(1, round(height * self._ratio))
        self._after_manual_edit(width, height)
        updates: dict[ParamKind, Any] = {ParamKind.HEIGHT: height}
        if locked and width is not None:
            updates[ParamKind.WIDTH] = width
        return updates

    def commit_field(
        self,
        kind: ParamKind | str,
        raw: Any,
        current_width: int | None = None,
        current_height: int | None = None,
        coupled: bool = True,
    ) -> dict[ParamKind, Any]:
        """
        Apply committed text from a numeric input box.

        Non-numeric or non-positive input clears the field back to auto.
        Dimension fields go through the lock unless *coupled* is false, in
        which case only the edited axis changes; anything else (blur,
        sharpen) is set directly.
        """
        kind = ParamKind.coerce(kind)
        value = parse_field_input(raw)
        if value is None:
            logger.debug("Cleared %s after invalid input %r", kind.value, raw)
            return {kind: None}
        if kind is ParamKind.WIDTH:
            return self.set_width(value, current_height, coupled)
        if kind is ParamKind.HEIGHT:
            return self.set_height(value, current_width, coupled)
        return {kind: value}

    def _after_manual_edit(self, width: int | None, height: int | None) -> None:
        if self.active_preset is not None and width and height:
            preset_ratio = self._presets[self.active_preset]
            if abs(width / height - preset_ratio) > PRESET_RATIO_TOLERANCE:
                logger.debug("Ratio %.3f no longer matches preset %s", width / height, self.active_preset)
                self.active_preset = None
        if width and height:
            self.base_dimensions = ImageDimensions(width, height)
        self.scale = 1.0

    # =========================================================================
    # Lock, presets and scale
    # =========================================================================
    def toggle_lock(self, current_width: int | None = None, current_height: int | None = None) -> bool:
        """Flip the lock.  Locking captures the current ratio when both sides are known."""
        self.aspect_locked = not self.aspect_locked
        if self.aspect_locked:
            if current_width and current_height:
                self._ratio = current_width / current_height
            else:
                self._ratio = self.original_aspect_ratio
        return self.aspect_locked

    def select_preset(
        self,
        key: str,
        current_width: int | None = None,
        current_height: int | None = None,
    ) -> dict[ParamKind, Any]:
        """Lock to a preset ratio, sizing from the longer current side."""
        if key not in self._presets:
            raise ValueError(f"Unknown aspect preset: {key!r}")
        ratio = self._presets[key]
        fallback = self._original or ImageDimensions(1, 1)
        longest = max(current_width or fallback.width, current_height or fallback.height)
        if ratio >= 1:
            width, height = longest, max(1, round(longest / ratio))
        else:
            width, height = max(1, round(longest * ratio)), longest

        self.aspect_locked = True
        self._ratio = ratio
        self.active_preset = key
        self.base_dimensions = ImageDimensions(width, height)
        self.scale = 1.0
        return {ParamKind.WIDTH: width, ParamKind.HEIGHT: height}

    def set_scale(self, factor: float) -> dict[ParamKind, Any]:
        """Scale the captured base dimensions by *factor*."""
        base = self.base_dimensions
        if base is None:
            raise ValueError("No base dimensions captured for scaling")
        factor = max(0.0, float(factor))
        self.scale = factor
        return {
            ParamKind.WIDTH: max(1, round(base.width * factor)),
            ParamKind.HEIGHT: max(1, round(base.height * factor)),
        }

    def capture_base(self, width: int, height: int) -> None:
        self.base_dimensions = ImageDimensions(width, height)
        self.scale = 1.0
