"""
Qt-free image I/O utilities.

Reads natural image dimensions without fully decoding pixels (PSD files
go through psd-tools, everything else through Pillow) and measures
preview bytes returned by the imagor service.  Safe to call from worker
threads.
"""

import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from psd_tools import PSDImage

from imagor_editor.config import IMAGE_EXTENSIONS
from imagor_editor.errors import DimensionProbeError
from imagor_editor.models import ImageDimensions

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None


def is_supported_image(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def get_image_size(path: Path) -> tuple[int, int]:
    """Get image dimensions without fully loading/compositing."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.width, psd.height
    with Image.open(path) as img:
        return img.size


def probe_dimensions(path: Path | str) -> ImageDimensions:
    """
    Natural size of the image at *path*.

    Raises DimensionProbeError with the underlying message when the file
    is missing, unsupported, or unreadable.
    """
    path = Path(path)
    if not is_supported_image(path):
        raise DimensionProbeError(f"Unsupported image type: {path.suffix or path.name}")
    try:
        width, height = get_image_size(path)
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise DimensionProbeError(f"Could not read {path.name}: {exc}") from exc
    if width <= 0 or height <= 0:
        raise DimensionProbeError(f"{path.name} has no pixels")
    logger.debug("Probed %s: %dx%d", path, width, height)
    return ImageDimensions(width, height)


def measure_image_bytes(data: bytes) -> ImageDimensions:
    """Size of an encoded image held in memory (e.g. a preview response)."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return ImageDimensions(*img.size)
    except (OSError, UnidentifiedImageError) as exc:
        raise DimensionProbeError(f"Preview is not a decodable image: {exc}") from exc
