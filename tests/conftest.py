"""
Shared fixtures for imagor-editor tests.

Provides sample dimensions and layers, a fresh EditorStore, a config
directory redirected into tmp_path, encoded image bytes, and a Qt core
application for the preview and worker tests.
"""
import io

import pytest
from PIL import Image
from PyQt6.QtCore import QCoreApplication

from imagor_editor import settings
from imagor_editor.models import ImageDimensions, Layer, TransformParameters
from imagor_editor.store import EditorStore


# ── Sample geometry ─────────────────────────────────────────────────────

PHOTO_PATH = "photos/beach.jpg"
PHOTO_DIMS = ImageDimensions(1000, 800)
VIEWPORT = ImageDimensions(800, 600)


@pytest.fixture(scope="session")
def qapp():
    """Process-wide QCoreApplication (timers and signals need one)"""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point every persistence module at an empty config directory"""
    monkeypatch.setattr("imagor_editor.settings.config_dir", lambda: tmp_path)
    monkeypatch.setattr("imagor_editor.presets.config_dir", lambda: tmp_path)
    settings.clear()
    yield tmp_path
    settings.clear()


@pytest.fixture
def store():
    """Editor open on a 1000x800 photo inside an 800x600 viewport"""
    return EditorStore(PHOTO_PATH, PHOTO_DIMS, viewport=VIEWPORT)


def make_layer(layer_id: str, **changes) -> Layer:
    """800x600 overlay at (100, 200) with auto transforms"""
    values = dict(
        id=layer_id,
        image_path="overlay.jpg",
        original_dimensions=ImageDimensions(800, 600),
        x=100,
        y=200,
        name=layer_id.title(),
        transforms=TransformParameters(),
    )
    values.update(changes)
    return Layer(**values)


@pytest.fixture
def overlay():
    return make_layer("logo")


@pytest.fixture
def png_bytes():
    """Encoded 64x48 PNG"""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), "white").save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def png_file(tmp_path):
    """1000x800 PNG on disk"""
    path = tmp_path / "photo.png"
    Image.new("RGB", (1000, 800), "navy").save(path, "PNG")
    return path
