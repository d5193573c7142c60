"""
Parameter store: the authoritative TransformParameters for one target.

Every partial update goes through ``normalize_updates`` first, which clamps
out-of-range values and enforces the two exclusivity rules:

* per axis, an absolute size and fill mode never coexist;
* at most one of fit-in / stretch / smart is set.

The merge is atomic: the new value is built completely before it replaces
the old one, so a rejected key leaves the store untouched.

This module is Qt-free.
"""

import logging
from typing import Any

from imagor_editor.config import H_ALIGN_VALUES, OUTPUT_FORMATS, PARAM_RANGES, V_ALIGN_VALUES
from imagor_editor.models import (
    AXIS_FIELDS,
    FIT_MODE_FIELDS,
    ImageDimensions,
    ParamKind,
    ParamUpdates,
    TransformParameters,
)

logger = logging.getLogger(__name__)

_NON_NEGATIVE_INTS = frozenset({
    ParamKind.WIDTH_FULL_OFFSET,
    ParamKind.HEIGHT_FULL_OFFSET,
    ParamKind.CROP_LEFT,
    ParamKind.CROP_TOP,
    ParamKind.CROP_RIGHT,
    ParamKind.CROP_BOTTOM,
    ParamKind.FILTER_CROP_LEFT,
    ParamKind.FILTER_CROP_TOP,
    ParamKind.MAX_BYTES,
})
_POSITIVE_INTS = frozenset({
    ParamKind.WIDTH,
    ParamKind.HEIGHT,
    ParamKind.FILTER_CROP_WIDTH,
    ParamKind.FILTER_CROP_HEIGHT,
})


# =============================================================================
# Clamping
# =============================================================================
def clamp_value(kind: ParamKind, value: Any, width: int | None = None) -> Any:
    """Clamp one parameter value into its valid range.  None passes through."""
    if value is None:
        return None
    if kind.value in PARAM_RANGES:
        low, high = PARAM_RANGES[kind.value]
        clamped = min(max(value, low), high)
        if kind in (ParamKind.TRIM_TOLERANCE, ParamKind.QUALITY):
            clamped = int(round(clamped))
        return clamped
    if kind in _POSITIVE_INTS:
        return max(1, int(value))
    if kind in _NON_NEGATIVE_INTS:
        return max(0, int(value))
    if kind is ParamKind.ROUND_CORNER_RADIUS:
        radius = max(0, int(value))
        return min(radius, width // 2) if width else radius
    if kind is ParamKind.ROTATION:
        return (int(round(value / 90)) * 90) % 360
    if kind is ParamKind.H_ALIGN:
        return value if value in H_ALIGN_VALUES else None
    if kind is ParamKind.V_ALIGN:
        return value if value in V_ALIGN_VALUES else None
    if kind is ParamKind.FORMAT:
        fmt = str(value).lower()
        return fmt if fmt in OUTPUT_FORMATS else None
    return value


def parse_field_input(raw: Any) -> float | None:
    """
    Parse a committed numeric field such as blur or a dimension box.

    Non-numeric, non-finite or non-positive input resets the field to
    auto (None) rather than raising.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if value != value or value in (float("inf"), float("-inf")) or value <= 0:
        return None
    return value


def normalize_updates(updates: ParamUpdates, current: TransformParameters) -> dict[ParamKind, Any]:
    """Coerce keys, clamp values and apply the exclusivity rules."""
    result = {ParamKind.coerce(key): value for key, value in updates.items()}

    for size_key, full_key, offset_key in AXIS_FIELDS.values():
        if result.get(full_key) is True:
            result[size_key] = None
        elif result.get(full_key) is False:
            result[offset_key] = None
        elif result.get(size_key) is not None and current.get(full_key):
            result[full_key] = False
            result[offset_key] = None

    chosen = [kind for kind in FIT_MODE_FIELDS if result.get(kind)]
    if chosen:
        for kind in FIT_MODE_FIELDS:
            if kind is not chosen[-1]:
                result[kind] = None

    width = result.get(ParamKind.WIDTH, current.width)
    return {kind: clamp_value(kind, value, width) for kind, value in result.items()}


def normalize_params(params: TransformParameters | ParamUpdates) -> TransformParameters:
    """
    Rebuild a complete parameter set under the same rules as an update.

    Used for parameters that arrive whole (template documents, loaded
    compositions) instead of through ``merge``.
    """
    values = params.to_dict() if isinstance(params, TransformParameters) else params
    empty = TransformParameters()
    return empty.merged(normalize_updates(values, empty))


# =============================================================================
# Store
# =============================================================================
class ParameterStore:
    """Holds the TransformParameters of the base image or of one layer."""

    def __init__(
        self,
        initial: TransformParameters | None = None,
        original_dimensions: ImageDimensions | None = None,
    ):
        self._params = initial or TransformParameters()
        self._original = original_dimensions

    @property
    def original_dimensions(self) -> ImageDimensions | None:
        return self._original

    def get(self) -> TransformParameters:
        return self._params

    def get_param(self, kind: ParamKind | str) -> Any:
        return self.get().get(kind)

    def merge(self, updates: ParamUpdates) -> TransformParameters:
        """Apply a partial update and return the new parameters."""
        current = self.get()
        merged = current.merged(normalize_updates(updates, current))
        self._commit(merged)
        logger.debug("Merged %d parameter(s)", len(updates))
        return merged

    def replace(self, params: TransformParameters) -> None:
        self._commit(params)

    def reset(self) -> TransformParameters:
        """Drop every edit; the size returns to the natural dimensions when known."""
        if self._original is not None:
            params = TransformParameters(width=self._original.width, height=self._original.height)
        else:
            params = TransformParameters()
        self._commit(params)
        return params

    def _commit(self, params: TransformParameters) -> None:
        self._params = params
