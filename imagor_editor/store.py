"""
Observable editor store.

``EditorStore`` owns the base ParameterStore, the LayerRegistry, the
ContextSwitcher, the AspectLockSolver and the undo history for one open
image.  The UI reads immutable ``EditorState`` snapshots through
``get_state()``, changes things only through ``dispatch(action)``, and
learns about changes through ``subscribe(listener)``.

Actions are small frozen dataclasses.  A dispatch either succeeds
completely (new state, history entry, listeners notified) or raises
before anything is committed; listeners never see a half-applied action.

This module is Qt-free.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

from imagor_editor.aspect import AspectLockSolver
from imagor_editor.context import ContextSwitcher
from imagor_editor.geometry import enrich_transforms_for_fill_mode, output_dimensions, toggle_fill_mode
from imagor_editor.history import HistoryManager, Snapshot
from imagor_editor.layers import LayerRegistry
from imagor_editor.models import (
    AXIS_FIELDS,
    Axis,
    ImageDimensions,
    Layer,
    ParamKind,
    TransformParameters,
)
from imagor_editor.params import ParameterStore, normalize_params

logger = logging.getLogger(__name__)


# =============================================================================
# State snapshot
# =============================================================================
@dataclass(frozen=True)
class EditorState:
    """Immutable view of everything the editor shows."""
    image_path: str
    original_dimensions: ImageDimensions
    base: TransformParameters
    layers: tuple[Layer, ...]
    editing_context: str | None
    selected_layer_id: str | None
    viewport: ImageDimensions
    aspect_locked: bool
    active_preset: str | None
    scale: float
    can_undo: bool
    can_redo: bool

    def layer(self, layer_id: str) -> Layer:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise ValueError(f"Layer {layer_id!r} not found")

    @property
    def current_params(self) -> TransformParameters:
        if self.editing_context is None:
            return self.base
        return self.layer(self.editing_context).transforms

    @property
    def canvas_dimensions(self) -> ImageDimensions:
        """Resolved size of the base canvas against the viewport."""
        return output_dimensions(self.original_dimensions, self.base, self.viewport)


# =============================================================================
# Actions
# =============================================================================
@dataclass(frozen=True)
class UpdateParams:
    updates: Mapping[ParamKind | str, Any]


@dataclass(frozen=True)
class ResetParams:
    pass


@dataclass(frozen=True)
class ToggleFillMode:
    axis: Axis


@dataclass(frozen=True)
class ApplyOverlayTransforms:
    """Absolute sizes reported by the canvas overlay after a drag or resize."""
    updates: Mapping[ParamKind | str, Any]


@dataclass(frozen=True)
class CommitField:
    """Committed text of a numeric input box."""
    kind: ParamKind
    raw: Any


@dataclass(frozen=True)
class ToggleAspectLock:
    pass


@dataclass(frozen=True)
class SelectAspectPreset:
    key: str


@dataclass(frozen=True)
class SetScale:
    factor: float


@dataclass(frozen=True)
class AddLayer:
    layer: Layer


@dataclass(frozen=True)
class RemoveLayer:
    layer_id: str


@dataclass(frozen=True)
class UpdateLayer:
    layer_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class ReorderLayers:
    from_index: int
    to_index: int
    from_display: bool = False


@dataclass(frozen=True)
class DuplicateLayer:
    layer_id: str
    new_id: str | None = None


@dataclass(frozen=True)
class SelectLayer:
    layer_id: str | None


@dataclass(frozen=True)
class SwitchContext:
    target: str | None


@dataclass(frozen=True)
class SetViewport:
    dimensions: ImageDimensions


@dataclass(frozen=True)
class LoadComposition:
    base: TransformParameters
    layers: tuple[Layer, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


Listener = Callable[[EditorState], None]


# =============================================================================
# Store
# =============================================================================
class EditorStore:
    """Single source of truth for one editor session."""

    def __init__(
        self,
        image_path: str,
        original_dimensions: ImageDimensions,
        viewport: ImageDimensions | None = None,
        presets: Mapping[str, float] | None = None,
    ):
        self._image_path = image_path
        self._original = original_dimensions
        self._viewport = viewport or original_dimensions
        self._presets = presets
        self._base_store = ParameterStore(original_dimensions=original_dimensions)
        self._base_store.reset()
        self._registry = LayerRegistry()
        self._context = ContextSwitcher(self._base_store, self._registry)
        self._selected: str | None = None
        self._history = HistoryManager()
        self._aspect = AspectLockSolver(original_dimensions, presets)
        self._listeners: list[Listener] = []
        self._state = self._build_state()

        self._handlers: dict[type, Callable[[Any], bool]] = {
            UpdateParams: self._update_params,
            ResetParams: self._reset_params,
            ToggleFillMode: self._toggle_fill_mode,
            ApplyOverlayTransforms: self._apply_overlay_transforms,
            CommitField: self._commit_field,
            ToggleAspectLock: self._toggle_aspect_lock,
            SelectAspectPreset: self._select_aspect_preset,
            SetScale: self._set_scale,
            AddLayer: self._add_layer,
            RemoveLayer: self._remove_layer,
            UpdateLayer: self._update_layer,
            ReorderLayers: self._reorder_layers,
            DuplicateLayer: self._duplicate_layer,
            SelectLayer: self._select_layer,
            SwitchContext: self._switch_context,
            SetViewport: self._set_viewport,
            LoadComposition: self._load_composition,
            Undo: self._undo,
            Redo: self._redo,
        }

    # =========================================================================
    # Public API
    # =========================================================================
    def get_state(self) -> EditorState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; the returned callable unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: object) -> EditorState:
        """Apply *action* and notify listeners with the new state."""
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"Unknown action: {type(action).__name__}")

        before = self._snapshot(type(action).__name__)
        if handler(action):
            self._history.record(before)

        self._state = self._build_state()
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    # =========================================================================
    # Helpers
    # =========================================================================
    def _build_state(self) -> EditorState:
        return EditorState(
            image_path=self._image_path,
            original_dimensions=self._original,
            base=self._base_store.get(),
            layers=self._registry.layers,
            editing_context=self._context.editing_context,
            selected_layer_id=self._selected,
            viewport=self._viewport,
            aspect_locked=self._aspect.aspect_locked,
            active_preset=self._aspect.active_preset,
            scale=self._aspect.scale,
            can_undo=self._history.can_undo(),
            can_redo=self._history.can_redo(),
        )

    def _snapshot(self, description: str) -> Snapshot:
        return Snapshot(
            base=self._base_store.get(),
            layers=self._registry.layers,
            editing_context=self._context.editing_context,
            description=description,
        )

    def _restore(self, snapshot: Snapshot) -> None:
        self._base_store.replace(snapshot.base)
        self._registry.replace_all(snapshot.layers)
        context = snapshot.editing_context if snapshot.editing_context in self._registry else None
        self._context.switch_context(context)
        if self._selected is not None and self._selected not in self._registry:
            self._selected = None
        self._rebuild_aspect_solver()

    def _parent_dimensions(self) -> ImageDimensions:
        """Size that fill-mode axes of the active target resolve against."""
        if self._context.is_base:
            return self._viewport
        return output_dimensions(self._original, self._base_store.get(), self._viewport)

    def _target_original(self) -> ImageDimensions:
        if self._context.is_base:
            return self._original
        return self._registry.get(self._context.editing_context).original_dimensions

    def _target_dimensions(self) -> ImageDimensions:
        """Currently rendered size of the active target."""
        return output_dimensions(self._target_original(), self._context.current_params(), self._parent_dimensions())

    def _rebuild_aspect_solver(self) -> None:
        locked = self._aspect.aspect_locked
        self._aspect = AspectLockSolver(self._target_original(), self._presets, locked=locked)
        current = self._target_dimensions()
        self._aspect.capture_base(current.width, current.height)

    # =========================================================================
    # Parameter handlers
    # =========================================================================
    def _update_params(self, action: UpdateParams) -> bool:
        self._context.update_params(action.updates)
        return True

    def _reset_params(self, action: ResetParams) -> bool:
        self._context.active_store().reset()
        self._aspect.active_preset = None
        return True

    def _toggle_fill_mode(self, action: ToggleFillMode) -> bool:
        axis = Axis(action.axis)
        params = self._context.current_params()
        parent = self._parent_dimensions()
        current = self._target_dimensions()
        _, _, offset_key = AXIS_FIELDS[axis]
        updates = toggle_fill_mode(
            axis,
            params.is_full(axis),
            parent.width if axis is Axis.WIDTH else parent.height,
            current.width if axis is Axis.WIDTH else current.height,
            params.get(offset_key) or 0,
        )
        self._context.update_params(updates)
        return True

    def _apply_overlay_transforms(self, action: ApplyOverlayTransforms) -> bool:
        updates = enrich_transforms_for_fill_mode(
            action.updates, self._context.current_params(), self._parent_dimensions(),
        )
        self._context.update_params(updates)
        return True

    def _commit_field(self, action: CommitField) -> bool:
        params = self._context.current_params()
        # a fill axis has no fixed size to keep in ratio with
        coupled = not (params.is_full(Axis.WIDTH) or params.is_full(Axis.HEIGHT))
        updates = self._aspect.commit_field(action.kind, action.raw, params.width, params.height, coupled)
        self._context.update_params(updates)
        return True

    def _toggle_aspect_lock(self, action: ToggleAspectLock) -> bool:
        current = self._target_dimensions()
        self._aspect.toggle_lock(current.width, current.height)
        return False

    def _select_aspect_preset(self, action: SelectAspectPreset) -> bool:
        current = self._target_dimensions()
        updates = self._aspect.select_preset(action.key, current.width, current.height)
        self._context.update_params(updates)
        return True

    def _set_scale(self, action: SetScale) -> bool:
        self._context.update_params(self._aspect.set_scale(action.factor))
        return True

    # =========================================================================
    # Layer handlers
    # =========================================================================
    def _add_layer(self, action: AddLayer) -> bool:
        self._registry.add(action.layer)
        return True

    def _remove_layer(self, action: RemoveLayer) -> bool:
        layer_id = action.layer_id
        self._registry.index_of(layer_id)
        was_selected = self._selected == layer_id
        was_editing = self._context.editing_context == layer_id

        self._registry.remove(layer_id)
        if was_selected:
            self._selected = None
        if was_editing:
            self._context.reset_if(layer_id)
            self._rebuild_aspect_solver()
        return True

    def _update_layer(self, action: UpdateLayer) -> bool:
        self._registry.update(action.layer_id, action.changes)
        return True

    def _reorder_layers(self, action: ReorderLayers) -> bool:
        if action.from_display:
            return self._registry.reorder_display(action.from_index, action.to_index)
        return self._registry.reorder(action.from_index, action.to_index)

    def _duplicate_layer(self, action: DuplicateLayer) -> bool:
        copy = self._registry.duplicate(action.layer_id, action.new_id)
        self._selected = copy.id
        return True

    # =========================================================================
    # Selection, context and session handlers
    # =========================================================================
    def _select_layer(self, action: SelectLayer) -> bool:
        if action.layer_id is not None:
            self._registry.index_of(action.layer_id)
        self._selected = action.layer_id
        return False

    def _switch_context(self, action: SwitchContext) -> bool:
        self._context.switch_context(action.target)
        self._rebuild_aspect_solver()
        return False

    def _set_viewport(self, action: SetViewport) -> bool:
        self._viewport = action.dimensions
        return False

    def _load_composition(self, action: LoadComposition) -> bool:
        base = normalize_params(action.base)
        layers = tuple(replace(layer, transforms=normalize_params(layer.transforms)) for layer in action.layers)
        self._registry.replace_all(layers)
        self._base_store.replace(base)
        self._context.switch_context(None)
        self._selected = None
        self._rebuild_aspect_solver()
        logger.info("Loaded composition with %d layer(s)", len(action.layers))
        return True

    def _undo(self, action: Undo) -> bool:
        previous = self._history.undo(self._snapshot("undo"))
        if previous is not None:
            self._restore(previous)
        return False

    def _redo(self, action: Redo) -> bool:
        following = self._history.redo(self._snapshot("redo"))
        if following is not None:
            self._restore(following)
        return False
