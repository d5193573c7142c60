"""
Tests for LayerRegistry ordering, locking, duplication and the
display/paint index boundary.
"""
import itertools

import pytest

from imagor_editor.layers import LayerRegistry, new_layer, renderable_layers
from imagor_editor.models import ImageDimensions

from conftest import make_layer


@pytest.fixture
def registry():
    """Four layers a (bottom) .. d (top)"""
    return LayerRegistry([make_layer(i) for i in "abcd"])


def ids(registry):
    return [layer.id for layer in registry]


# ══════════════════════════════════════════════════════════════════════════
# Add / Remove / Update
# ══════════════════════════════════════════════════════════════════════════

class TestLayerCrud:

    def test_add_appends_on_top(self, registry):
        registry.add(make_layer("e"))
        assert ids(registry) == ["a", "b", "c", "d", "e"]

    def test_duplicate_id_rejected(self, registry):
        with pytest.raises(ValueError, match="already exists"):
            registry.add(make_layer("a"))

    def test_remove(self, registry):
        removed = registry.remove("b")
        assert removed.id == "b"
        assert ids(registry) == ["a", "c", "d"]

    def test_remove_unknown(self, registry):
        with pytest.raises(ValueError, match="not found"):
            registry.remove("zzz")
        assert len(registry) == 4

    def test_update_merges_fields(self, registry):
        updated = registry.update("c", {"alpha": 40, "blend_mode": "multiply"})
        assert updated.alpha == 40
        assert registry.get("c").blend_mode == "multiply"
        assert registry.get("c").x == 100

    @pytest.mark.parametrize("changes", [{"id": "x"}, {"opacity": 3}])
    def test_update_rejects_bad_fields(self, registry, changes):
        with pytest.raises(ValueError):
            registry.update("a", changes)

    def test_new_layer_defaults(self):
        layer = new_layer("assets/logo.png", ImageDimensions(200, 100), layer_id="x1")
        assert layer.name == "logo.png"
        assert (layer.x, layer.y) == ("center", "center")
        assert layer.alpha == 0
        assert layer.blend_mode == "normal"
        assert layer.visible and not layer.locked
        assert (layer.transforms.width, layer.transforms.height) == (200, 100)


# ══════════════════════════════════════════════════════════════════════════
# Reorder
# ══════════════════════════════════════════════════════════════════════════

class TestReorder:

    def test_move_is_not_a_swap(self, registry):
        assert registry.reorder(0, 2)
        assert ids(registry) == ["b", "c", "a", "d"]

    def test_move_down(self, registry):
        registry.reorder(3, 0)
        assert ids(registry) == ["d", "a", "b", "c"]

    @pytest.mark.parametrize("from_index,to_index", list(itertools.product(range(4), repeat=2)))
    def test_reorder_is_permutation(self, registry, from_index, to_index):
        before = ids(registry)
        moved = before[from_index]
        registry.reorder(from_index, to_index)
        after = ids(registry)
        assert sorted(after) == sorted(before)
        assert after[to_index] == moved
        assert [i for i in after if i != moved] == [i for i in before if i != moved]

    def test_locked_layer_cannot_move(self, registry):
        registry.update("b", {"locked": True})
        assert registry.reorder(1, 3) is False
        assert ids(registry) == ["a", "b", "c", "d"]

    def test_unlocked_layer_can_pass_locked(self, registry):
        registry.update("b", {"locked": True})
        assert registry.reorder(0, 2)
        assert ids(registry) == ["b", "c", "a", "d"]

    @pytest.mark.parametrize("from_index,to_index", [(-1, 0), (0, 4), (4, 0)])
    def test_out_of_range(self, registry, from_index, to_index):
        with pytest.raises(IndexError):
            registry.reorder(from_index, to_index)


# ══════════════════════════════════════════════════════════════════════════
# Display boundary
# ══════════════════════════════════════════════════════════════════════════

class TestDisplayOrder:

    @pytest.mark.parametrize("display,paint", [(0, 3), (1, 2), (3, 0)])
    def test_index_translation(self, registry, display, paint):
        assert registry.display_to_paint_index(display) == paint
        assert registry.paint_to_display_index(paint) == display

    def test_display_order_is_reversed(self, registry):
        assert [layer.id for layer in registry.display_order()] == ["d", "c", "b", "a"]

    def test_reorder_from_display_indices(self, registry):
        # drag the top-most row to the bottom of the panel
        registry.reorder_display(0, 3)
        assert ids(registry) == ["d", "a", "b", "c"]


# ══════════════════════════════════════════════════════════════════════════
# Duplicate & renderable
# ══════════════════════════════════════════════════════════════════════════

class TestDuplicate:

    def test_copy_is_nudged_and_renamed(self, registry):
        copy = registry.duplicate("b", new_id="b2")
        assert copy.id == "b2"
        assert (copy.x, copy.y) == (110, 210)
        assert copy.name == "B Copy"
        assert ids(registry) == ["a", "b", "b2", "c", "d"]

    def test_keyword_positions_kept(self):
        registry = LayerRegistry([make_layer("a", x="center", y="bottom")])
        copy = registry.duplicate("a")
        assert (copy.x, copy.y) == ("center", "bottom")
        assert copy.id != "a"

    def test_copy_of_locked_layer_is_unlocked(self):
        registry = LayerRegistry([make_layer("a", locked=True)])
        assert registry.duplicate("a").locked is False


class TestRenderable:

    def test_hidden_and_locked_excluded(self, registry):
        registry.update("a", {"visible": False})
        registry.update("c", {"locked": True})
        assert [layer.id for layer in registry.renderable()] == ["b", "d"]
        assert len(registry) == 4

    def test_paint_order_kept(self, registry):
        assert [layer.id for layer in renderable_layers(registry.layers)] == ["a", "b", "c", "d"]


class TestLayerFieldValidation:

    @pytest.mark.parametrize("alpha,expected", [(-5, 0), (40, 40), (250, 100)])
    def test_alpha_clamped(self, registry, alpha, expected):
        assert registry.update("a", {"alpha": alpha}).alpha == expected

    def test_numeric_position_rounded(self, registry):
        layer = registry.update("a", {"x": 12.6, "y": -4})
        assert (layer.x, layer.y) == (13, -4)

    @pytest.mark.parametrize("changes", [
        {"blend_mode": "glow"},
        {"x": "top"},
        {"y": "left"},
        {"x": True},
    ])
    def test_invalid_values_rejected(self, registry, changes):
        with pytest.raises(ValueError):
            registry.update("a", changes)
        assert registry.get("a") == make_layer("a")
