"""
Pipeline serialization: editor state → imagor request path and URL.

The path follows imagor's layout::

    [trim[:tol]/][L x T:R x B/][fit-in/][stretch/][-]W x [-]H/[h_align/][v_align/][smart/][filters:f1(..):f2(..)/]IMAGE

(without the spaces).  Filters are always emitted in ``config.FILTER_ORDER``
so that equal states give byte-identical paths, which the service's result
cache relies on.  Each visible layer becomes an ``image()`` filter whose first
argument is the layer's own nested path; a layer's fill-mode axes resolve
against the resolved size of the base canvas.

Signing uses HMAC over the path exactly as imagor verifies it; with no
secret (or ``unsafe`` set) the path is prefixed with ``unsafe/``.

This module is Qt-free.
"""

import base64
import hashlib
import hmac
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import urlencode

from imagor_editor.config import DEFAULT_BLEND_MODE, FILTER_ORDER, PREVIEW_FORMAT, SIGNER_TYPES
from imagor_editor.geometry import resolve_axis, source_dimensions
from imagor_editor.layers import renderable_layers
from imagor_editor.models import Axis, FitMode, ImageDimensions, Layer, ParamKind, TransformParameters
from imagor_editor.store import EditorState

logger = logging.getLogger(__name__)

# Image paths made of these characters only are emitted verbatim
_SAFE_IMAGE_PATH = re.compile(r"^[A-Za-z0-9._\-/]+$")
# Leading segments imagor would parse as an operation instead of the image
_RESERVED_LEADING_SEGMENT = re.compile(
    r"^(?:trim|meta|fit-in|full-fit-in|adaptive-fit-in|stretch|smart|unsafe|params"
    r"|left|right|center|top|bottom|middle|-?\d*x-?\d*)(?:/|$)"
)

# (parameter, filter name) for the adjustment filters, in emission order
_ADJUSTMENT_FILTERS = (
    (ParamKind.BRIGHTNESS, "brightness"),
    (ParamKind.CONTRAST, "contrast"),
    (ParamKind.SATURATION, "saturation"),
    (ParamKind.HUE, "hue"),
    (ParamKind.BLUR, "blur"),
    (ParamKind.SHARPEN, "sharpen"),
)


# =============================================================================
# Formatting helpers
# =============================================================================
def format_number(value: Any) -> str:
    """Render a number without a trailing ``.0``.  1.0 → '1', 0.25 → '0.25'"""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:f}".rstrip("0").rstrip(".")
    return str(value)


def _filter_rank(expression: str) -> int:
    """Position of a ``name(args)`` filter in the fixed emission order."""
    return FILTER_ORDER.index(expression.split("(", 1)[0])


def encode_image_path(path: str) -> str:
    """
    Return *path* as it may appear at the end of an imagor path.

    Paths containing characters imagor would misparse (spaces, ``?``, ``#``,
    ``&``, parentheses, commas, ...) or starting with an operation keyword
    are wrapped as ``b64:`` + unpadded URL-safe base64.
    """
    if _SAFE_IMAGE_PATH.match(path) and not _RESERVED_LEADING_SEGMENT.match(path):
        return path
    encoded = base64.urlsafe_b64encode(path.encode("utf-8")).decode("ascii").rstrip("=")
    return f"b64:{encoded}"


# =============================================================================
# Endpoint & signing
# =============================================================================
@dataclass(frozen=True)
class ImagorEndpoint:
    """Where the service lives and how requests are signed."""
    base_url: str = ""
    secret: str = ""
    signer_type: str = "sha1"
    signer_truncate: int = 0
    unsafe: bool = True

    @classmethod
    def from_settings(cls, values: Mapping[str, Any]) -> "ImagorEndpoint":
        signer_type = str(values.get("signer_type", "sha1")).lower()
        if signer_type not in SIGNER_TYPES:
            logger.warning("Unknown signer type %r, using sha1", signer_type)
            signer_type = "sha1"
        return cls(
            base_url=str(values.get("base_url", "")),
            secret=str(values.get("secret", "")),
            signer_type=signer_type,
            signer_truncate=int(values.get("signer_truncate", 0) or 0),
            unsafe=bool(values.get("unsafe", True)),
        )

    def sign(self, path: str) -> str:
        """HMAC of *path*, URL-safe base64, optionally truncated."""
        digest = hmac.new(self.secret.encode("utf-8"), path.encode("utf-8"), getattr(hashlib, self.signer_type)).digest()
        signature = base64.urlsafe_b64encode(digest).decode("ascii")
        if self.signer_truncate > 0:
            signature = signature[: self.signer_truncate]
        return signature

    def url_for(self, path: str) -> str:
        prefix = "unsafe" if self.unsafe or not self.secret else self.sign(path)
        return f"{self.base_url.rstrip('/')}/{prefix}/{path}"


# =============================================================================
# Serializer
# =============================================================================
class PipelineSerializer:
    """Turns editor state into the imagor path and the final request URL."""

    def __init__(
        self,
        endpoint: ImagorEndpoint | None = None,
        access_token: str | None = None,
        preview_max: ImageDimensions | None = None,
    ):
        self.endpoint = endpoint or ImagorEndpoint()
        self.access_token = access_token or None
        self.preview_max = preview_max

    def build_path(self, state: EditorState, *, for_preview: bool = False, download: bool = False) -> str:
        """Unsigned imagor path for *state*."""
        canvas = state.canvas_dimensions
        tail: list[str] = []

        output_format = PREVIEW_FORMAT if for_preview else state.base.format
        if output_format:
            tail.append(f"format({output_format})")
        if state.base.quality is not None:
            tail.append(f"quality({state.base.quality})")
        if state.base.max_bytes:
            tail.append(f"max_bytes({state.base.max_bytes})")
        if for_preview and self.preview_max is not None:
            scale = min(1.0, self.preview_max.width / canvas.width, self.preview_max.height / canvas.height)
            if scale < 1.0:
                tail.append(f"proportion({format_number(round(scale * 100, 2))})")
        if download:
            tail.append("attachment()")

        return self._compose(
            state.image_path,
            state.original_dimensions,
            state.base,
            state.viewport,
            layers=renderable_layers(state.layers),
            canvas=canvas,
            tail_filters=tail,
        )

    def build_url(self, state: EditorState, *, for_preview: bool = False, download: bool = False) -> str:
        """Signed (or unsafe) request URL, with the access token when configured."""
        url = self.endpoint.url_for(self.build_path(state, for_preview=for_preview, download=download))
        if self.access_token:
            url = f"{url}?{urlencode({'token': self.access_token})}"
        return url

    # =========================================================================
    # Path composition
    # =========================================================================
    def _compose(
        self,
        image_path: str,
        original: ImageDimensions,
        params: TransformParameters,
        parent: ImageDimensions | None,
        *,
        layers: Iterable[Layer] = (),
        canvas: ImageDimensions | None = None,
        tail_filters: Iterable[str] = (),
        nested: bool = False,
    ) -> str:
        parts: list[str] = []

        if params.auto_trim:
            tolerance = params.trim_tolerance
            parts.append(f"trim:{tolerance}" if tolerance and tolerance != 1 else "trim")

        if any((params.crop_left, params.crop_top, params.crop_right, params.crop_bottom)):
            left = params.crop_left or 0
            top = params.crop_top or 0
            right = original.width - (params.crop_right or 0)
            bottom = original.height - (params.crop_bottom or 0)
            parts.append(f"{left}x{top}:{right}x{bottom}")

        mode = params.fit_mode
        if mode is FitMode.FIT_IN:
            parts.append("fit-in")
        elif mode is FitMode.STRETCH:
            parts.append("stretch")

        size = self._size_segment(original, params, parent, nested)
        if size:
            parts.append(size)

        if mode is FitMode.FILL:
            if params.h_align:
                parts.append(params.h_align)
            if params.v_align:
                parts.append(params.v_align)
        elif mode is FitMode.SMART:
            parts.append("smart")

        filters = self._filters(params)
        for layer in layers:
            filters.append(self._layer_filter(layer, canvas))
        filters.extend(tail_filters)
        filters.sort(key=_filter_rank)
        if filters:
            parts.append("filters:" + ":".join(filters))

        parts.append(encode_image_path(image_path))
        path = "/".join(parts)
        return f"/{path}" if nested else path

    def _size_segment(
        self,
        original: ImageDimensions,
        params: TransformParameters,
        parent: ImageDimensions | None,
        nested: bool,
    ) -> str:
        width = resolve_axis(params, Axis.WIDTH, parent.width if parent else None)
        height = resolve_axis(params, Axis.HEIGHT, parent.height if parent else None)
        if nested and width is None and height is None:
            source = source_dimensions(original, params)
            width, height = source.width, source.height
        width = width or 0
        height = height or 0
        if not (width or height or params.h_flip or params.v_flip):
            return ""
        w = f"-{width}" if params.h_flip else str(width)
        h = f"-{height}" if params.v_flip else str(height)
        return f"{w}x{h}"

    def _filters(self, params: TransformParameters) -> list[str]:
        filters: list[str] = []
        if params.filter_crop_width and params.filter_crop_height:
            filters.append(
                f"crop({params.filter_crop_left or 0},{params.filter_crop_top or 0},"
                f"{params.filter_crop_width},{params.filter_crop_height})"
            )
        for kind, name in _ADJUSTMENT_FILTERS:
            value = params.get(kind)
            if value:
                filters.append(f"{name}({format_number(value)})")
        if params.round_corner_radius:
            filters.append(f"round_corner({params.round_corner_radius})")
        if params.grayscale:
            filters.append("grayscale()")
        if params.rotation:
            filters.append(f"rotate({params.rotation})")
        return filters

    def _layer_filter(self, layer: Layer, canvas: ImageDimensions | None) -> str:
        nested = self._compose(
            layer.image_path,
            layer.original_dimensions,
            layer.transforms,
            canvas,
            nested=True,
        )
        args = [nested, format_number(layer.x), format_number(layer.y)]
        if layer.alpha or layer.blend_mode != DEFAULT_BLEND_MODE:
            args.append(format_number(layer.alpha))
        if layer.blend_mode != DEFAULT_BLEND_MODE:
            args.append(layer.blend_mode)
        return f"image({','.join(args)})"
