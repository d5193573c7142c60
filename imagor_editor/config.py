"""
Application constants and configuration.

Value ranges, the fixed filter emission order, template file conventions,
and the built-in aspect presets live here.  Runtime presets are loaded from
presets.json via the presets module; runtime endpoint and preview settings
are loaded from settings.json via the settings module.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules (settings, presets).
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "imagor-editor"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# DEFAULT ASPECT PRESETS: Built-in fallback when presets.json is missing
# =============================================================================
DEFAULT_ASPECT_PRESETS = [
    {"name": "Square", "ratio_w": 1, "ratio_h": 1},
    {"name": "Landscape 4:3", "ratio_w": 4, "ratio_h": 3},
    {"name": "Landscape 3:2", "ratio_w": 3, "ratio_h": 2},
    {"name": "Widescreen 16:9", "ratio_w": 16, "ratio_h": 9},
    {"name": "Portrait 3:4", "ratio_w": 3, "ratio_h": 4},
    {"name": "Portrait 2:3", "ratio_w": 2, "ratio_h": 3},
    {"name": "Story 9:16", "ratio_w": 9, "ratio_h": 16},
]

# Two ratios closer than this count as the same preset
PRESET_RATIO_TOLERANCE = 0.01

# =============================================================================
# DEFAULT SETTINGS: Used for any key missing from settings.json
# =============================================================================
DEFAULT_SETTINGS = {
    "base_url": "http://localhost:8000",
    "secret": "",
    "signer_type": "sha1",
    "signer_truncate": 0,
    "unsafe": True,
    "access_token": "",
    "debounce_ms": 500,
    "preview_max_width": 1200,
    "preview_max_height": 1200,
}

# Delay between the last mutation and the preview fetch (milliseconds)
DEBOUNCE_MS = 500

SIGNER_TYPES = ("sha1", "sha256", "sha512")

# =============================================================================
# PARAMETER RANGES: Inputs outside these bounds are clamped, not rejected
# =============================================================================
PARAM_RANGES = {
    "brightness": (-100, 100),
    "contrast": (-100, 100),
    "saturation": (-100, 100),
    "hue": (0, 360),
    "blur": (0, 10),
    "sharpen": (0, 10),
    "trim_tolerance": (1, 50),
    "quality": (1, 100),
}

ALPHA_RANGE = (0, 100)

# Smallest rendered size of any axis (pixels)
MIN_OUTPUT_PX = 1

# =============================================================================
# PIPELINE: Fixed order of emitted filters
# =============================================================================
FILTER_ORDER = (
    "crop",
    "brightness",
    "contrast",
    "saturation",
    "hue",
    "blur",
    "sharpen",
    "round_corner",
    "grayscale",
    "rotate",
    "image",
    "format",
    "quality",
    "max_bytes",
    "proportion",
    "attachment",
)

# Output format forced on preview requests
PREVIEW_FORMAT = "webp"

OUTPUT_FORMATS = ("jpeg", "png", "webp", "avif", "gif")

H_ALIGN_VALUES = ("left", "center", "right")
V_ALIGN_VALUES = ("top", "middle", "bottom")

# Layer anchor keywords per axis
X_POSITION_KEYWORDS = ("left", "center", "right")
Y_POSITION_KEYWORDS = ("top", "center", "bottom")

BLEND_MODES = (
    "normal", "multiply", "color-burn", "darken", "screen", "color-dodge",
    "lighten", "add", "overlay", "soft-light", "hard-light", "difference",
    "exclusion", "mask", "mask-out",
)
DEFAULT_BLEND_MODE = "normal"

# Pixels added to numeric positions of a duplicated layer
DUPLICATE_OFFSET = 10

# Undo history depth
MAX_HISTORY = 50

# =============================================================================
# TEMPLATES
# =============================================================================
TEMPLATE_SUFFIX = ".imagor.json"
TEMPLATE_VERSION = "1.0"

# Characters forbidden in template names
INVALID_NAME_CHARS = frozenset('/\\:*?"<>|')

# Supported layer source extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".gif", ".psd"}
