"""
Data models shared by every editor component.

``TransformParameters`` is the full set of per-image edits; every field is
optional and ``None`` means "auto" (let the service decide).  Partial updates
are plain mappings keyed by ``ParamKind``, a closed enumeration of the
field names, so an unknown key fails loudly instead of silently creating a
new parameter.  ``Layer`` wraps an overlay image together with its own
``TransformParameters``.  All models are frozen: an update always produces a
new value, which keeps history snapshots and store states cheap to share.

This module is Qt-free.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping

from imagor_editor.config import DEFAULT_BLEND_MODE, TEMPLATE_VERSION


# =============================================================================
# Enumerations
# =============================================================================
class ParamKind(str, Enum):
    """Every transform parameter the pipeline understands."""
    WIDTH = "width"
    HEIGHT = "height"
    WIDTH_FULL = "width_full"
    WIDTH_FULL_OFFSET = "width_full_offset"
    HEIGHT_FULL = "height_full"
    HEIGHT_FULL_OFFSET = "height_full_offset"
    CROP_LEFT = "crop_left"
    CROP_TOP = "crop_top"
    CROP_RIGHT = "crop_right"
    CROP_BOTTOM = "crop_bottom"
    FILTER_CROP_LEFT = "filter_crop_left"
    FILTER_CROP_TOP = "filter_crop_top"
    FILTER_CROP_WIDTH = "filter_crop_width"
    FILTER_CROP_HEIGHT = "filter_crop_height"
    AUTO_TRIM = "auto_trim"
    TRIM_TOLERANCE = "trim_tolerance"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    HUE = "hue"
    BLUR = "blur"
    SHARPEN = "sharpen"
    ROUND_CORNER_RADIUS = "round_corner_radius"
    GRAYSCALE = "grayscale"
    FIT_IN = "fit_in"
    STRETCH = "stretch"
    SMART = "smart"
    H_ALIGN = "h_align"
    V_ALIGN = "v_align"
    H_FLIP = "h_flip"
    V_FLIP = "v_flip"
    ROTATION = "rotation"
    FORMAT = "format"
    QUALITY = "quality"
    MAX_BYTES = "max_bytes"

    @classmethod
    def coerce(cls, key: "ParamKind | str") -> "ParamKind":
        """Return *key* as a ParamKind, raising ValueError for unknown names."""
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown transform parameter: {key!r}") from None


class Axis(str, Enum):
    WIDTH = "width"
    HEIGHT = "height"


class FitMode(str, Enum):
    """How the source is resized into the requested box."""
    FILL = "fill"
    FIT_IN = "fit_in"
    STRETCH = "stretch"
    SMART = "smart"


class DimensionMode(str, Enum):
    ADAPTIVE = "adaptive"
    PREDEFINED = "predefined"


# Fill-mode field triple per axis: (size, full flag, offset)
AXIS_FIELDS = {
    Axis.WIDTH: (ParamKind.WIDTH, ParamKind.WIDTH_FULL, ParamKind.WIDTH_FULL_OFFSET),
    Axis.HEIGHT: (ParamKind.HEIGHT, ParamKind.HEIGHT_FULL, ParamKind.HEIGHT_FULL_OFFSET),
}

FIT_MODE_FIELDS = (ParamKind.FIT_IN, ParamKind.STRETCH, ParamKind.SMART)

ParamUpdates = Mapping["ParamKind | str", Any]


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class ImageDimensions:
    """Natural pixel size of an image."""
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    def to_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImageDimensions":
        return cls(int(data["width"]), int(data["height"]))


@dataclass(frozen=True)
class TransformParameters:
    """Complete edit state for one image.  ``None`` means auto."""
    width: int | None = None
    height: int | None = None
    width_full: bool | None = None
    width_full_offset: int | None = None
    height_full: bool | None = None
    height_full_offset: int | None = None
    crop_left: int | None = None
    crop_top: int | None = None
    crop_right: int | None = None
    crop_bottom: int | None = None
    filter_crop_left: int | None = None
    filter_crop_top: int | None = None
    filter_crop_width: int | None = None
    filter_crop_height: int | None = None
    auto_trim: bool | None = None
    trim_tolerance: int | None = None
    brightness: float | None = None
    contrast: float | None = None
    saturation: float | None = None
    hue: float | None = None
    blur: float | None = None
    sharpen: float | None = None
    round_corner_radius: int | None = None
    grayscale: bool | None = None
    fit_in: bool | None = None
    stretch: bool | None = None
    smart: bool | None = None
    h_align: str | None = None
    v_align: str | None = None
    h_flip: bool | None = None
    v_flip: bool | None = None
    rotation: int | None = None
    format: str | None = None
    quality: int | None = None
    max_bytes: int | None = None

    def get(self, kind: ParamKind | str) -> Any:
        """Typed accessor keyed by ParamKind."""
        return getattr(self, ParamKind.coerce(kind).value)

    def merged(self, updates: ParamUpdates) -> "TransformParameters":
        """Return a copy with *updates* applied.  Unknown keys raise ValueError."""
        changes = {ParamKind.coerce(key).value: value for key, value in updates.items()}
        return replace(self, **changes)

    def is_full(self, axis: Axis) -> bool:
        return bool(self.get(AXIS_FIELDS[axis][1]))

    @property
    def fit_mode(self) -> FitMode:
        if self.fit_in:
            return FitMode.FIT_IN
        if self.stretch:
            return FitMode.STRETCH
        if self.smart:
            return FitMode.SMART
        return FitMode.FILL

    def to_dict(self) -> dict[str, Any]:
        """Serialize the fields that are set, keyed by ParamKind value."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransformParameters":
        """Build from a mapping keyed by ParamKind values.  Unknown keys raise ValueError."""
        return cls().merged(data)


@dataclass(frozen=True)
class Layer:
    """An overlay image composited onto the base canvas."""
    id: str
    image_path: str
    original_dimensions: ImageDimensions
    x: int | str = 0
    y: int | str = 0
    alpha: int = 0  # 0 = opaque, 100 = fully transparent
    blend_mode: str = DEFAULT_BLEND_MODE
    visible: bool = True
    locked: bool = False
    name: str = ""
    transforms: TransformParameters = field(default_factory=TransformParameters)

    def merged(self, changes: Mapping[str, Any]) -> "Layer":
        """Return a copy with *changes* applied.  The id and unknown fields are rejected."""
        allowed = {f.name for f in fields(self)} - {"id"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update layer field(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "image_path": self.image_path,
            "original_dimensions": self.original_dimensions.to_dict(),
            "x": self.x,
            "y": self.y,
            "alpha": self.alpha,
            "blend_mode": self.blend_mode,
            "visible": self.visible,
            "locked": self.locked,
            "name": self.name,
            "transforms": self.transforms.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Layer":
        return cls(
            id=str(data["id"]),
            image_path=str(data["image_path"]),
            original_dimensions=ImageDimensions.from_dict(data["original_dimensions"]),
            x=data.get("x", 0),
            y=data.get("y", 0),
            alpha=int(data.get("alpha", 0)),
            blend_mode=data.get("blend_mode", DEFAULT_BLEND_MODE),
            visible=bool(data.get("visible", True)),
            locked=bool(data.get("locked", False)),
            name=data.get("name", ""),
            transforms=TransformParameters.from_dict(data.get("transforms", {})),
        )


@dataclass(frozen=True)
class Template:
    """A reusable composition persisted as ``<name>.imagor.json``."""
    name: str
    dimension_mode: DimensionMode
    base_parameters: TransformParameters
    layers: tuple[Layer, ...] = ()
    description: str = ""
    save_path: str = ""
    predefined_dimensions: ImageDimensions | None = None
    version: str = TEMPLATE_VERSION
    created_at: str = ""
