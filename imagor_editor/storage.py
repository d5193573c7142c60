"""
Template storage collaborator.

The codec only needs three calls (exists, read, write), described by the
``TemplateStorage`` protocol.  ``FileTemplateStorage`` implements them on
a local directory tree.  Paths are relative to its root and may not escape
it.  OS-level failures surface as ``StorageError`` carrying the original
message; nothing is retried.

This module is Qt-free.
"""

import logging
from pathlib import Path
from typing import Protocol

from imagor_editor.config import TEMPLATE_SUFFIX
from imagor_editor.errors import StorageError

logger = logging.getLogger(__name__)


class TemplateStorage(Protocol):
    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> str: ...

    def write(self, path: str, text: str) -> None: ...


class FileTemplateStorage:
    """Template documents stored as files below *root*."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        full = (root / path.lstrip("/")).resolve()
        if full != root and root not in full.parents:
            raise ValueError(f"Path escapes storage root: {path!r}")
        return full

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> str:
        full = self._resolve(path)
        try:
            return full.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

    def write(self, path: str, text: str) -> None:
        full = self._resolve(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error("Could not write %s: %s", full, exc)
            raise StorageError(f"Could not write {path}: {exc}") from exc
        logger.info("Wrote %s", full)

    def list_templates(self, folder: str = "") -> list[str]:
        """Relative paths of every template below *folder*, sorted."""
        base = self._resolve(folder)
        if not base.is_dir():
            return []
        root = self.root.resolve()
        return sorted(
            p.relative_to(root).as_posix()
            for p in base.rglob(f"*{TEMPLATE_SUFFIX}")
            if p.is_file()
        )
