"""
Tests for template export / import through FileTemplateStorage.

Verifies:
- Adaptive templates drop the absolute base size
- Predefined templates pin the resolved, unrotated size
- Conflicts unless overwriting, invalid names rejected
- Lenient import (version / unknown parameter warnings)
- Imported values clamped and made consistent like edits
- Malformed documents raise TemplateFormatError
"""
import json

import pytest

from imagor_editor.errors import TemplateConflictError, TemplateFormatError
from imagor_editor.models import DimensionMode, ImageDimensions, ParamKind
from imagor_editor.storage import FileTemplateStorage
from imagor_editor.store import AddLayer, UpdateParams
from imagor_editor.template import TemplateCodec, template_path, validate_template_name

from conftest import PHOTO_DIMS, make_layer


@pytest.fixture
def codec(tmp_path):
    return TemplateCodec(FileTemplateStorage(tmp_path))


def read_document(tmp_path, path):
    return json.loads((tmp_path / path).read_text(encoding="utf-8"))


def minimal_document(**overrides):
    document = {
        "version": "1.0",
        "name": "Plain",
        "dimension_mode": "adaptive",
        "base_parameters": {"brightness": 10},
        "layers": [],
    }
    document.update(overrides)
    return document


# ══════════════════════════════════════════════════════════════════════════
# Naming
# ══════════════════════════════════════════════════════════════════════════

class TestNaming:

    @pytest.mark.parametrize("name", ["", "   ", "a/b", "what?", 'quote"d'])
    def test_invalid_names(self, name):
        assert validate_template_name(name) is not None

    @pytest.mark.parametrize("name", ["Banner", "hero banner 2", "logo-v1.2"])
    def test_valid_names(self, name):
        assert validate_template_name(name) is None

    @pytest.mark.parametrize("save_path,expected", [
        ("", "Banner.imagor.json"),
        ("templates", "templates/Banner.imagor.json"),
        ("/templates/web/", "templates/web/Banner.imagor.json"),
    ])
    def test_template_path(self, save_path, expected):
        assert template_path(save_path, "Banner") == expected


# ══════════════════════════════════════════════════════════════════════════
# Export
# ══════════════════════════════════════════════════════════════════════════

class TestExport:

    def test_adaptive_drops_base_size(self, codec, store, tmp_path):
        store.dispatch(UpdateParams({ParamKind.BRIGHTNESS: 10}))
        store.dispatch(AddLayer(make_layer("logo")))
        path = codec.export_template(store.get_state(), "Banner", "adaptive", save_path="templates")

        assert path == "templates/Banner.imagor.json"
        document = read_document(tmp_path, path)
        assert document["version"] == "1.0"
        assert document["dimension_mode"] == "adaptive"
        assert document["base_parameters"] == {"brightness": 10}
        assert [layer["id"] for layer in document["layers"]] == ["logo"]
        assert "predefined_dimensions" not in document
        assert document["metadata"]["created_at"]

    def test_predefined_pins_fill_size(self, codec, store, tmp_path):
        store.dispatch(UpdateParams({ParamKind.WIDTH_FULL: True, ParamKind.WIDTH_FULL_OFFSET: 100}))
        path = codec.export_template(store.get_state(), "Pinned", DimensionMode.PREDEFINED)

        document = read_document(tmp_path, path)
        assert document["predefined_dimensions"] == {"width": 700, "height": 800}
        assert document["base_parameters"]["width"] == 700
        assert document["base_parameters"]["height"] == 800
        assert "width_full" not in document["base_parameters"]

    def test_predefined_pins_unrotated_size(self, codec, store, tmp_path):
        store.dispatch(UpdateParams({ParamKind.ROTATION: 90}))
        path = codec.export_template(store.get_state(), "Turned", "predefined")
        document = read_document(tmp_path, path)
        assert document["predefined_dimensions"] == {"width": 1000, "height": 800}
        assert document["base_parameters"]["rotation"] == 90

    def test_conflict_without_overwrite(self, codec, store):
        codec.export_template(store.get_state(), "Banner", "adaptive")
        with pytest.raises(TemplateConflictError) as info:
            codec.export_template(store.get_state(), "Banner", "adaptive")
        assert info.value.template_path == "Banner.imagor.json"

    def test_overwrite_replaces_document(self, codec, store, tmp_path):
        codec.export_template(store.get_state(), "Banner", "adaptive", description="old")
        store.dispatch(UpdateParams({ParamKind.HUE: 120}))
        codec.export_template(store.get_state(), "Banner", "adaptive", description="new", overwrite=True)
        document = read_document(tmp_path, "Banner.imagor.json")
        assert document["description"] == "new"
        assert document["base_parameters"] == {"hue": 120}

    def test_invalid_name_writes_nothing(self, codec, store, tmp_path):
        with pytest.raises(ValueError):
            codec.export_template(store.get_state(), "a:b", "adaptive")
        assert list(tmp_path.iterdir()) == []


# ══════════════════════════════════════════════════════════════════════════
# Import
# ══════════════════════════════════════════════════════════════════════════

class TestImport:

    def test_round_trip_adaptive(self, codec, store):
        store.dispatch(UpdateParams({ParamKind.BRIGHTNESS: 10}))
        store.dispatch(AddLayer(make_layer("logo")))
        path = codec.export_template(store.get_state(), "Banner", "adaptive")

        result = codec.load_template(path, ImageDimensions(400, 300))
        assert result.warnings == ()
        assert result.base.brightness == 10
        assert result.base.width is None and result.base.height is None
        assert result.layers == (make_layer("logo"),)
        assert result.template.name == "Banner"

    def test_adaptive_import_clears_stored_size(self, codec):
        document = minimal_document(base_parameters={"width": 300, "height": 200})
        result = codec.import_template(document, PHOTO_DIMS)
        assert result.base.width is None
        assert result.base.height is None

    def test_predefined_import_keeps_size(self, codec):
        document = minimal_document(
            dimension_mode="predefined",
            base_parameters={"width": 300, "height": 200},
            predefined_dimensions={"width": 300, "height": 200},
        )
        result = codec.import_template(json.dumps(document), PHOTO_DIMS)
        assert (result.base.width, result.base.height) == (300, 200)
        assert result.template.predefined_dimensions == ImageDimensions(300, 200)

    def test_version_mismatch_warns(self, codec):
        result = codec.import_template(minimal_document(version="0.9"), PHOTO_DIMS)
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("version-mismatch")
        assert result.base.brightness == 10

    def test_unknown_parameters_warn_and_drop(self, codec):
        document = minimal_document(
            base_parameters={"brightness": 10, "sepia": 3},
            layers=[{**make_layer("logo").to_dict(), "transforms": {"glow": 1, "hue": 5}}],
        )
        result = codec.import_template(document, PHOTO_DIMS)
        assert result.warnings == (
            "invalid-parameter: base_parameters.sepia ignored",
            "invalid-parameter: layers[0].transforms.glow ignored",
        )
        assert result.layers[0].transforms.hue == 5

    def test_import_applies_edit_rules(self, codec):
        """Imported values obey the same clamping and exclusivity as edits"""
        document = minimal_document(
            dimension_mode="predefined",
            base_parameters={
                "width": 500, "width_full": True, "width_full_offset": 10,
                "brightness": 500, "fit_in": True, "stretch": True,
            },
        )
        base = codec.import_template(document, PHOTO_DIMS).base
        assert base.width is None
        assert base.width_full is True
        assert base.width_full_offset == 10
        assert base.brightness == 100
        assert base.fit_in is None
        assert base.stretch is True

    def test_layer_transforms_are_normalized(self, codec):
        layer = {**make_layer("logo").to_dict(), "alpha": 250, "x": 10.6,
                 "transforms": {"height": 50, "height_full": True, "hue": 900}}
        result = codec.import_template(minimal_document(layers=[layer]), PHOTO_DIMS)
        imported = result.layers[0]
        assert imported.alpha == 100
        assert imported.x == 11
        assert imported.transforms.height is None
        assert imported.transforms.height_full is True
        assert imported.transforms.hue == 360

    @pytest.mark.parametrize("changes", [
        {"blend_mode": "glow"},
        {"x": "top"},
        {"y": "left"},
    ])
    def test_invalid_layer_fields_rejected(self, codec, changes):
        layer = {**make_layer("logo").to_dict(), **changes}
        with pytest.raises(TemplateFormatError):
            codec.import_template(minimal_document(layers=[layer]), PHOTO_DIMS)

    @pytest.mark.parametrize("document", [
        "{not json",
        json.dumps([1, 2]),
        json.dumps({"name": "x", "dimension_mode": "adaptive"}),
        json.dumps(minimal_document(dimension_mode="sideways")),
        json.dumps(minimal_document(layers={"a": 1})),
        json.dumps(minimal_document(layers=[{"id": "x"}])),
        json.dumps(minimal_document(base_parameters=[])),
    ])
    def test_malformed_documents(self, codec, document):
        with pytest.raises(TemplateFormatError):
            codec.import_template(document, PHOTO_DIMS)

    def test_format_error_is_a_value_error(self, codec):
        with pytest.raises(ValueError):
            codec.import_template("{", PHOTO_DIMS)
