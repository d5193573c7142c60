"""
Fill-mode geometry and output-size resolution.

An axis is either absolute (``width = 800``) or in fill mode
(``width_full = True`` plus an inset ``width_full_offset``), where the rendered
size is ``parent - offset``.  Toggling between the two representations
preserves the rendered size, so switching modes never makes the image jump.

``output_dimensions`` mirrors what the imagor service will render for a
given set of parameters: inward crop, then fill/explicit sizing, then
fit-in scaling, then filter crop, then quarter-turn rotation.  Every axis
floors at one pixel.  Nothing here raises: bad inputs clamp.

This module is Qt-free.
"""

from typing import Any, Mapping

from imagor_editor.config import MIN_OUTPUT_PX
from imagor_editor.models import (
    AXIS_FIELDS,
    Axis,
    FitMode,
    ImageDimensions,
    ParamKind,
    TransformParameters,
)


# =============================================================================
# Fill-mode conversion
# =============================================================================
def clamp_fill_offset(value: int, parent_px: int) -> int:
    """Clamp a fill inset to ``[0, parent_px - 1]``."""
    upper = max(0, parent_px - 1)
    return max(0, min(int(value), upper))


def toggle_fill_mode(
    axis: Axis,
    currently_full: bool,
    parent_px: int,
    current_px: int,
    current_offset: int,
    existing_params: Mapping[ParamKind, Any] | None = None,
) -> dict[ParamKind, Any]:
    """
    Flip one axis between absolute and fill mode, preserving rendered size.

    Entering fill turns the current size into an inset from the parent
    edge and clears the size; leaving fill turns the inset back into an
    absolute size and clears the inset.  Keys of *existing_params* not
    belonging to *axis* pass through untouched.
    """
    size_key, full_key, offset_key = AXIS_FIELDS[Axis(axis)]
    result = dict(existing_params or {})
    if not currently_full:
        result[full_key] = True
        result[offset_key] = max(0, parent_px - current_px)
        result[size_key] = None
    else:
        result[full_key] = False
        result[offset_key] = None
        result[size_key] = max(MIN_OUTPUT_PX, parent_px - current_offset)
    return result


def enrich_transforms_for_fill_mode(
    incoming: Mapping[ParamKind, Any],
    current: TransformParameters,
    parent: ImageDimensions,
) -> dict[ParamKind, Any]:
    """
    Rewrite absolute sizes from an overlay interaction for fill-mode axes.

    When an axis of *current* is in fill mode, an incoming absolute size
    becomes the equivalent clamped inset against *parent* and the absolute
    field is dropped.  Axes not in fill mode are left as they came in.
    """
    result = {ParamKind.coerce(key): value for key, value in incoming.items()}
    for axis, parent_px in ((Axis.WIDTH, parent.width), (Axis.HEIGHT, parent.height)):
        size_key, _, offset_key = AXIS_FIELDS[axis]
        if not current.is_full(axis) or size_key not in result:
            continue
        size = result.pop(size_key)
        if size is not None:
            result[offset_key] = clamp_fill_offset(parent_px - int(size), parent_px)
    return result


# =============================================================================
# Output-size resolution
# =============================================================================
def source_dimensions(original: ImageDimensions, params: TransformParameters) -> ImageDimensions:
    """Natural size minus the inward crop on each edge."""
    width = original.width - (params.crop_left or 0) - (params.crop_right or 0)
    height = original.height - (params.crop_top or 0) - (params.crop_bottom or 0)
    return ImageDimensions(max(MIN_OUTPUT_PX, width), max(MIN_OUTPUT_PX, height))


def resolve_axis(params: TransformParameters, axis: Axis, parent_px: int | None) -> int | None:
    """Rendered size of one axis, or None when the axis is auto."""
    size_key, full_key, offset_key = AXIS_FIELDS[axis]
    if params.get(full_key) and parent_px is not None:
        offset = clamp_fill_offset(params.get(offset_key) or 0, parent_px)
        return max(MIN_OUTPUT_PX, parent_px - offset)
    size = params.get(size_key)
    if size is None:
        return None
    return max(MIN_OUTPUT_PX, int(size))


def output_dimensions(
    original: ImageDimensions,
    params: TransformParameters,
    parent: ImageDimensions | None = None,
) -> ImageDimensions:
    """Size the service will render for *params* applied to *original*."""
    source = source_dimensions(original, params)
    width = resolve_axis(params, Axis.WIDTH, parent.width if parent else None)
    height = resolve_axis(params, Axis.HEIGHT, parent.height if parent else None)

    if width is None and height is None:
        width, height = source.width, source.height
    elif width is None:
        width = max(MIN_OUTPUT_PX, round(height * source.width / source.height))
    elif height is None:
        height = max(MIN_OUTPUT_PX, round(width * source.height / source.width))
    elif params.fit_mode is FitMode.FIT_IN:
        scale = min(width / source.width, height / source.height)
        width = max(MIN_OUTPUT_PX, round(source.width * scale))
        height = max(MIN_OUTPUT_PX, round(source.height * scale))

    if params.filter_crop_width is not None and params.filter_crop_height is not None:
        width = max(MIN_OUTPUT_PX, min(params.filter_crop_width, width - (params.filter_crop_left or 0)))
        height = max(MIN_OUTPUT_PX, min(params.filter_crop_height, height - (params.filter_crop_top or 0)))

    if params.rotation in (90, 270):
        width, height = height, width
    return ImageDimensions(width, height)
