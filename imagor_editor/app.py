"""
Headless entry point: apply a template to an image and print the imagor URL.

Usage:
    python -m imagor_editor.app banner.imagor.json photo.jpg
    imagor-editor banner.imagor.json photo.jpg --viewport 1920x1080 --output preview.webp
    imagor-editor banner.imagor.json photo.jpg --download

The endpoint, signing secret, access token and preview limits come from
settings.json (see ``settings``).  ``--output`` fetches the preview through
the same debounced controller the editor uses and writes the bytes.
"""

import argparse
import logging
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QTimer

from imagor_editor import settings
from imagor_editor.errors import EditorError
from imagor_editor.image_io import probe_dimensions
from imagor_editor.models import ImageDimensions
from imagor_editor.pipeline import ImagorEndpoint, PipelineSerializer
from imagor_editor.presets import load_presets, preset_ratios
from imagor_editor.preview import PreviewController, PreviewResult
from imagor_editor.storage import FileTemplateStorage
from imagor_editor.store import EditorStore, LoadComposition
from imagor_editor.template import TemplateCodec

logger = logging.getLogger(__name__)


def parse_dimensions(text: str) -> ImageDimensions:
    """'1920x1080' → ImageDimensions(1920, 1080)"""
    try:
        width, height = (int(part) for part in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}") from None
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("dimensions must be positive")
    return ImageDimensions(width, height)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="imagor-editor", description=__doc__.strip().splitlines()[0])
    parser.add_argument("template", type=Path, help="template file (*.imagor.json)")
    parser.add_argument("image", type=Path, help="local copy of the source image")
    parser.add_argument("--image-key", help="image path as imagor knows it (default: file name)")
    parser.add_argument("--viewport", type=parse_dimensions, help="parent size for fill-mode axes")
    parser.add_argument("--token", help="access token appended to the URL")
    parser.add_argument("--download", action="store_true", help="build a download URL")
    parser.add_argument("--output", type=Path, help="fetch the preview and write it here")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _serializer_from_settings(token: str | None) -> PipelineSerializer:
    values = settings.get_all()
    return PipelineSerializer(
        ImagorEndpoint.from_settings(values),
        access_token=token or values.get("access_token") or None,
        preview_max=ImageDimensions(int(values["preview_max_width"]), int(values["preview_max_height"])),
    )


def _fetch_preview(store: EditorStore, serializer: PipelineSerializer, output: Path) -> int:
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    controller = PreviewController(store, serializer, debounce_ms=int(settings.get_setting("debounce_ms")))
    exit_code = 1

    def on_ready(result: PreviewResult):
        nonlocal exit_code
        output.write_bytes(result.data)
        logger.info("Wrote %dx%d preview to %s", result.dimensions.width, result.dimensions.height, output)
        exit_code = 0
        app.quit()

    def on_failed(message: str):
        logger.error("Preview failed: %s", message)
        app.quit()

    controller.preview_ready.connect(on_ready)
    controller.preview_failed.connect(on_failed)
    QTimer.singleShot(0, controller.flush)
    app.exec()
    controller.shutdown()
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        dimensions = probe_dimensions(args.image)
        store = EditorStore(
            args.image_key or args.image.name,
            dimensions,
            viewport=args.viewport,
            presets=preset_ratios(load_presets()),
        )
        codec = TemplateCodec(FileTemplateStorage(args.template.parent))
        loaded = codec.load_template(args.template.name, dimensions)
        store.dispatch(LoadComposition(loaded.base, loaded.layers))
    except (EditorError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    serializer = _serializer_from_settings(args.token)
    print(serializer.build_url(store.get_state(), download=args.download))

    if args.output:
        return _fetch_preview(store, serializer, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
