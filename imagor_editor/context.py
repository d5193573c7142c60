"""
Editing-context routing.

Exactly one target is editable at a time: the base image (context ``None``)
or a single layer (context = layer id).  Switching context never touches
parameters; it only changes which ParameterStore the next update reaches.
Layer parameters live inside the registry's Layer records, so the store
handed out for a layer writes straight back into the registry.

This module is Qt-free.
"""

import logging

from imagor_editor.layers import LayerRegistry
from imagor_editor.models import ParamUpdates, TransformParameters
from imagor_editor.params import ParameterStore

logger = logging.getLogger(__name__)


class LayerParameterStore(ParameterStore):
    """ParameterStore view onto one layer's transforms inside a registry."""

    def __init__(self, registry: LayerRegistry, layer_id: str):
        layer = registry.get(layer_id)
        super().__init__(layer.transforms, layer.original_dimensions)
        self._registry = registry
        self._layer_id = layer_id

    @property
    def layer_id(self) -> str:
        return self._layer_id

    def get(self) -> TransformParameters:
        return self._registry.get(self._layer_id).transforms

    def _commit(self, params: TransformParameters) -> None:
        self._registry.update(self._layer_id, {"transforms": params})


class ContextSwitcher:
    """Tracks the active editing target and routes parameter updates to it."""

    def __init__(self, base_store: ParameterStore, registry: LayerRegistry):
        self._base_store = base_store
        self._registry = registry
        self._context: str | None = None

    @property
    def editing_context(self) -> str | None:
        return self._context

    @property
    def is_base(self) -> bool:
        return self._context is None

    def switch_context(self, target: str | None) -> None:
        """Make *target* (None for the base image) the editable target."""
        if target is not None and target not in self._registry:
            raise ValueError(f"Layer {target!r} not found")
        if target != self._context:
            logger.debug("Editing context %s -> %s", self._context or "base", target or "base")
        self._context = target

    def store_for(self, target: str | None) -> ParameterStore:
        if target is None:
            return self._base_store
        return LayerParameterStore(self._registry, target)

    def active_store(self) -> ParameterStore:
        return self.store_for(self._context)

    def current_params(self) -> TransformParameters:
        return self.active_store().get()

    def update_params(self, updates: ParamUpdates) -> TransformParameters:
        """Merge *updates* into the active target's parameters."""
        return self.active_store().merge(updates)

    def reset_if(self, layer_id: str) -> bool:
        """Fall back to the base context when *layer_id* is being edited."""
        if self._context == layer_id:
            self._context = None
            return True
        return False
