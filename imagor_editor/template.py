"""
Template export and import.

A template is the whole composition (base parameters, layers, dimension
mode) stored as ``<save_path>/<name>.imagor.json``::

    {
        "version": "1.0",
        "name": "Banner",
        "description": "Hero banner with logo",
        "dimension_mode": "adaptive",
        "save_path": "templates",
        "base_parameters": {"brightness": 10, "width_full": true, ...},
        "layers": [ {...}, ... ],
        "metadata": {"created_at": "2026-01-01T12:00:00+00:00"}
    }

Adaptive templates leave out the absolute base size so they fit any image.
Predefined templates pin the size resolved at export time and also record
it as ``predefined_dimensions``.

Import is lenient where it can be: an unknown version or unknown parameter
keys produce warnings, not failures, and parameter values are clamped and
made consistent exactly as an edit would be.  Malformed JSON, missing
required fields or unusable layer values raise ``TemplateFormatError``.

This module is Qt-free.
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping

from imagor_editor.config import INVALID_NAME_CHARS, TEMPLATE_SUFFIX, TEMPLATE_VERSION
from imagor_editor.errors import TemplateConflictError, TemplateFormatError
from imagor_editor.geometry import output_dimensions
from imagor_editor.layers import normalize_layer_changes
from imagor_editor.models import (
    DimensionMode,
    ImageDimensions,
    Layer,
    ParamKind,
    Template,
    TransformParameters,
)
from imagor_editor.params import normalize_params
from imagor_editor.storage import TemplateStorage
from imagor_editor.store import EditorState

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = {"name", "dimension_mode", "base_parameters"}
_PARAM_NAMES = frozenset(kind.value for kind in ParamKind)


@dataclass(frozen=True)
class TemplateLoadResult:
    """A decoded template plus anything worth telling the user about it."""
    template: Template
    base: TransformParameters
    layers: tuple[Layer, ...]
    warnings: tuple[str, ...] = ()


# =============================================================================
# Naming
# =============================================================================
def validate_template_name(name: str) -> str | None:
    """
    Validate a template name for use as a file name.

    Returns an error string if invalid, or None if valid.
    """
    if not isinstance(name, str) or not name.strip():
        return "name must be a non-empty string"
    bad = INVALID_NAME_CHARS & set(name)
    if bad:
        return f"name contains invalid characters: {' '.join(sorted(bad))}"
    return None


def template_path(save_path: str, name: str) -> str:
    """``save_path/name.imagor.json`` with no leading or doubled slashes."""
    folder = save_path.strip("/")
    filename = f"{name.strip()}{TEMPLATE_SUFFIX}"
    return f"{folder}/{filename}" if folder else filename


# =============================================================================
# Document conversion
# =============================================================================
def template_to_document(template: Template) -> dict[str, Any]:
    document: dict[str, Any] = {
        "version": template.version,
        "name": template.name,
        "description": template.description,
        "dimension_mode": template.dimension_mode.value,
        "save_path": template.save_path,
        "base_parameters": template.base_parameters.to_dict(),
        "layers": [layer.to_dict() for layer in template.layers],
        "metadata": {"created_at": template.created_at},
    }
    if template.predefined_dimensions is not None:
        document["predefined_dimensions"] = template.predefined_dimensions.to_dict()
    return document


def _known_params(data: Any, where: str, warnings: list[str]) -> TransformParameters:
    if not isinstance(data, dict):
        raise TemplateFormatError(f"{where} must be an object")
    unknown = sorted(set(data) - _PARAM_NAMES)
    for key in unknown:
        warnings.append(f"invalid-parameter: {where}.{key} ignored")
    try:
        return normalize_params({k: v for k, v in data.items() if k in _PARAM_NAMES})
    except (TypeError, ValueError) as exc:
        raise TemplateFormatError(f"{where} has an invalid value: {exc}") from exc


def template_from_document(document: Mapping[str, Any]) -> tuple[Template, list[str]]:
    """Decode a template document, returning it with any warnings."""
    if not isinstance(document, Mapping):
        raise TemplateFormatError("Template document must be a JSON object")
    missing = _REQUIRED_KEYS - document.keys()
    if missing:
        raise TemplateFormatError(f"Template is missing keys: {', '.join(sorted(missing))}")

    warnings: list[str] = []
    version = str(document.get("version", ""))
    if version != TEMPLATE_VERSION:
        warnings.append(f"version-mismatch: template version {version or 'missing'}, expected {TEMPLATE_VERSION}")

    try:
        mode = DimensionMode(document["dimension_mode"])
    except ValueError:
        raise TemplateFormatError(f"Unknown dimension mode: {document['dimension_mode']!r}") from None

    base = _known_params(document["base_parameters"], "base_parameters", warnings)

    raw_layers = document.get("layers", [])
    if not isinstance(raw_layers, list):
        raise TemplateFormatError("layers must be a list")
    layers = []
    for i, raw in enumerate(raw_layers):
        if not isinstance(raw, dict):
            raise TemplateFormatError(f"Layer #{i + 1} must be an object")
        transforms = _known_params(raw.get("transforms", {}), f"layers[{i}].transforms", warnings)
        try:
            layer = Layer.from_dict({**raw, "transforms": {}})
            layer = layer.merged(normalize_layer_changes({
                "x": layer.x, "y": layer.y, "alpha": layer.alpha, "blend_mode": layer.blend_mode,
            }))
        except (KeyError, TypeError, ValueError) as exc:
            raise TemplateFormatError(f"Layer #{i + 1} is invalid: {exc}") from exc
        layers.append(replace(layer, transforms=transforms))

    predefined = None
    if document.get("predefined_dimensions") is not None:
        try:
            predefined = ImageDimensions.from_dict(document["predefined_dimensions"])
        except (KeyError, TypeError, ValueError) as exc:
            raise TemplateFormatError(f"predefined_dimensions is invalid: {exc}") from exc

    metadata = document.get("metadata") or {}
    template = Template(
        name=str(document["name"]),
        dimension_mode=mode,
        base_parameters=base,
        layers=tuple(layers),
        description=str(document.get("description") or ""),
        save_path=str(document.get("save_path") or ""),
        predefined_dimensions=predefined,
        version=version,
        created_at=str(metadata.get("created_at", "")) if isinstance(metadata, dict) else "",
    )
    return template, warnings


# =============================================================================
# Codec
# =============================================================================
class TemplateCodec:
    """Exports editor state as templates and loads them back."""

    def __init__(self, storage: TemplateStorage):
        self._storage = storage

    def export_template(
        self,
        state: EditorState,
        name: str,
        dimension_mode: DimensionMode | str,
        save_path: str = "",
        description: str = "",
        overwrite: bool = False,
    ) -> str:
        """
        Write the current composition as a template and return its path.

        Raises ValueError for an invalid name, TemplateConflictError when
        the file exists and *overwrite* is false, StorageError when the
        write fails.  Overwriting replaces the whole document.
        """
        error = validate_template_name(name)
        if error:
            raise ValueError(error)
        mode = DimensionMode(dimension_mode)
        path = template_path(save_path, name)

        if not overwrite and self._storage.exists(path):
            raise TemplateConflictError(path)

        base = state.base
        predefined = None
        if mode is DimensionMode.PREDEFINED:
            unrotated = replace(base, rotation=None, filter_crop_width=None, filter_crop_height=None)
            predefined = output_dimensions(state.original_dimensions, unrotated, state.viewport)
            base = replace(
                base,
                width=predefined.width,
                height=predefined.height,
                width_full=None,
                width_full_offset=None,
                height_full=None,
                height_full_offset=None,
            )
        else:
            base = replace(base, width=None, height=None)

        template = Template(
            name=name.strip(),
            dimension_mode=mode,
            base_parameters=base,
            layers=state.layers,
            description=description,
            save_path=save_path,
            predefined_dimensions=predefined,
            created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        text = json.dumps(template_to_document(template), indent=2, ensure_ascii=False)
        self._storage.write(path, text)
        logger.info("Exported %s template %r to %s", mode.value, template.name, path)
        return path

    def import_template(self, document: str | Mapping[str, Any], target: ImageDimensions) -> TemplateLoadResult:
        """
        Decode *document* for use on an image of size *target*.

        Adaptive templates come back without a base width/height so they
        resolve against *target*; predefined ones keep their pinned size.
        """
        if isinstance(document, str):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as exc:
                raise TemplateFormatError(f"Template is not valid JSON: {exc}") from exc

        template, warnings = template_from_document(document)
        base = template.base_parameters
        if template.dimension_mode is DimensionMode.ADAPTIVE:
            base = replace(base, width=None, height=None)

        for warning in warnings:
            logger.warning("Template %r: %s", template.name, warning)
        logger.debug(
            "Imported %s template %r for %dx%d target",
            template.dimension_mode.value, template.name, target.width, target.height,
        )
        return TemplateLoadResult(template, base, template.layers, tuple(warnings))

    def load_template(self, path: str, target: ImageDimensions) -> TemplateLoadResult:
        return self.import_template(self._storage.read(path), target)
