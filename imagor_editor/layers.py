"""
Ordered layer collection.

The registry holds layers in paint order: index 0 is painted first (bottom),
the last entry is painted last (top).  Stacking panels show the reverse, so
an index coming from such a view must go through ``display_to_paint_index``
before it reaches ``reorder``.  Only the paint order is ever stored.

Locked layers cannot be moved.  Everything else about them is unchanged.

This module is Qt-free.
"""

import logging
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from imagor_editor.config import (
    ALPHA_RANGE,
    BLEND_MODES,
    DUPLICATE_OFFSET,
    X_POSITION_KEYWORDS,
    Y_POSITION_KEYWORDS,
)
from imagor_editor.models import ImageDimensions, Layer, TransformParameters

logger = logging.getLogger(__name__)


def new_layer(image_path: str, dimensions: ImageDimensions, layer_id: str | None = None) -> Layer:
    """Create a layer centred on the canvas at its natural size."""
    return Layer(
        id=layer_id or uuid.uuid4().hex,
        image_path=image_path,
        original_dimensions=dimensions,
        x="center",
        y="center",
        name=Path(image_path).name,
        transforms=TransformParameters(width=dimensions.width, height=dimensions.height),
    )


def renderable_layers(layers: Iterable[Layer]) -> tuple[Layer, ...]:
    """Layers that end up in the rendered output: visible and unlocked, paint order kept."""
    return tuple(layer for layer in layers if layer.visible and not layer.locked)


def normalize_layer_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate layer field changes before they are merged.

    Alpha clamps into range and numeric positions round to whole pixels.
    An unknown blend mode or position keyword raises ValueError.
    """
    result = dict(changes)
    if "alpha" in result:
        low, high = ALPHA_RANGE
        result["alpha"] = min(max(int(result["alpha"]), low), high)
    if "blend_mode" in result and result["blend_mode"] not in BLEND_MODES:
        raise ValueError(f"Unknown blend mode: {result['blend_mode']!r}")
    for key, keywords in (("x", X_POSITION_KEYWORDS), ("y", Y_POSITION_KEYWORDS)):
        if key not in result:
            continue
        value = result[key]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            result[key] = int(round(value))
        elif value not in keywords:
            raise ValueError(f"Invalid {key} position: {value!r}")
    return result


class LayerRegistry:
    """Canonical bottom-to-top list of layers."""

    def __init__(self, layers: tuple[Layer, ...] | list[Layer] = ()):
        self._layers: list[Layer] = []
        for layer in layers:
            self.add(layer)

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(tuple(self._layers))

    def __contains__(self, layer_id: object) -> bool:
        return any(layer.id == layer_id for layer in self._layers)

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    def get(self, layer_id: str) -> Layer:
        return self._layers[self.index_of(layer_id)]

    def index_of(self, layer_id: str) -> int:
        for i, layer in enumerate(self._layers):
            if layer.id == layer_id:
                return i
        raise ValueError(f"Layer {layer_id!r} not found")

    # =========================================================================
    # Mutations
    # =========================================================================
    def add(self, layer: Layer) -> None:
        """Append *layer* on top of the stack."""
        if layer.id in self:
            raise ValueError(f"Layer {layer.id!r} already exists")
        self._layers.append(layer)
        logger.debug("Added layer %s (%d total)", layer.id, len(self._layers))

    def remove(self, layer_id: str) -> Layer:
        removed = self._layers.pop(self.index_of(layer_id))
        logger.debug("Removed layer %s", layer_id)
        return removed

    def update(self, layer_id: str, changes: Mapping[str, Any]) -> Layer:
        index = self.index_of(layer_id)
        updated = self._layers[index].merged(normalize_layer_changes(changes))
        self._layers[index] = updated
        return updated

    def replace_all(self, layers: tuple[Layer, ...] | list[Layer]) -> None:
        ids = [layer.id for layer in layers]
        if len(ids) != len(set(ids)):
            raise ValueError("Layer ids must be unique")
        self._layers = list(layers)

    def reorder(self, from_index: int, to_index: int) -> bool:
        """
        Move the layer at *from_index* so it ends up at *to_index*.

        This is an array move, not a swap.  Returns False (and changes
        nothing) when the layer is locked.  Out-of-range indices raise
        IndexError.
        """
        count = len(self._layers)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise IndexError(f"Reorder {from_index} -> {to_index} out of range for {count} layer(s)")
        layer = self._layers[from_index]
        if layer.locked:
            logger.debug("Layer %s is locked, reorder ignored", layer.id)
            return False
        if from_index != to_index:
            self._layers.insert(to_index, self._layers.pop(from_index))
        return True

    def reorder_display(self, from_display: int, to_display: int) -> bool:
        """Reorder using indices from a top-to-bottom stacking view."""
        return self.reorder(self.display_to_paint_index(from_display), self.display_to_paint_index(to_display))

    def duplicate(self, layer_id: str, new_id: str | None = None) -> Layer:
        """Insert a copy directly above *layer_id*, nudged when positioned numerically."""
        index = self.index_of(layer_id)
        source = self._layers[index]
        copy = source.merged({
            "x": source.x + DUPLICATE_OFFSET if isinstance(source.x, int) else source.x,
            "y": source.y + DUPLICATE_OFFSET if isinstance(source.y, int) else source.y,
            "name": f"{source.name} Copy" if source.name else "Copy",
            "locked": False,
        })
        copy = replace(copy, id=new_id or uuid.uuid4().hex)
        if copy.id in self:
            raise ValueError(f"Layer {copy.id!r} already exists")
        self._layers.insert(index + 1, copy)
        return copy

    # =========================================================================
    # Presentation boundary
    # =========================================================================
    def display_to_paint_index(self, display_index: int) -> int:
        return len(self._layers) - 1 - display_index

    def paint_to_display_index(self, paint_index: int) -> int:
        return len(self._layers) - 1 - paint_index

    def display_order(self) -> tuple[Layer, ...]:
        """Layers top-most first, as stacking panels show them."""
        return tuple(reversed(self._layers))

    def renderable(self) -> tuple[Layer, ...]:
        return renderable_layers(self._layers)
