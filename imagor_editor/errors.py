"""
Exception types raised by the editor engine.

Inputs that are merely out of range are clamped instead of raising; these
exceptions cover the cases where an operation cannot complete and the
caller has to tell the user (name conflicts, unreadable documents, storage
or probe failures).
"""


class EditorError(Exception):
    """Base class for all editor failures."""


class TemplateConflictError(EditorError):
    """A template already exists at the target path and overwrite was not requested."""

    def __init__(self, template_path: str):
        super().__init__(f"Template already exists: {template_path}")
        self.template_path = template_path


class TemplateFormatError(EditorError, ValueError):
    """The template document is not valid JSON or lacks required fields."""


class StorageError(EditorError):
    """The storage collaborator failed to read or write."""


class DimensionProbeError(EditorError):
    """The natural dimensions of a source image could not be determined."""
