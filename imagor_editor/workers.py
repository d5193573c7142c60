"""
Background natural-dimension probing for new layer sources.

Large PSDs can take a while to open, so probing runs on a QThread.  Each
request gets an increasing id and only the newest one is reported: if the
user picks another file before the first probe finishes, the older result
is dropped without a signal.
"""

import logging
from pathlib import Path
from typing import Callable

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from imagor_editor.errors import DimensionProbeError
from imagor_editor.image_io import probe_dimensions
from imagor_editor.models import ImageDimensions

logger = logging.getLogger(__name__)

Probe = Callable[[Path | str], ImageDimensions]


class DimensionProbeThread(QThread):
    """Probes one image off the UI thread."""
    probed = pyqtSignal(int, object)  # request id, ImageDimensions
    failed = pyqtSignal(int, str)

    def __init__(self, request_id: int, path: str, probe: Probe = probe_dimensions, parent=None):
        super().__init__(parent)
        self.request_id = request_id
        self.path = path
        self._probe = probe

    def run(self):
        try:
            dimensions = self._probe(self.path)
        except DimensionProbeError as exc:
            self.failed.emit(self.request_id, str(exc))
            return
        self.probed.emit(self.request_id, dimensions)


class LayerSourceLoader(QObject):
    """Resolves layer source sizes; the most recent request wins."""
    resolved = pyqtSignal(str, object)  # path, ImageDimensions
    failed = pyqtSignal(str, str)  # path, message

    def __init__(self, probe: Probe = probe_dimensions, parent=None):
        super().__init__(parent)
        self._probe = probe
        self._latest_id = 0
        self._threads: dict[int, DimensionProbeThread] = {}

    @property
    def latest_request_id(self) -> int:
        return self._latest_id

    def request(self, path: str) -> int:
        """Start probing *path* and return the request id."""
        self._latest_id += 1
        thread = DimensionProbeThread(self._latest_id, path, self._probe, self)
        thread.probed.connect(self._on_probed)
        thread.failed.connect(self._on_failed)
        thread.finished.connect(thread.deleteLater)
        self._threads[thread.request_id] = thread
        self._start(thread)
        return thread.request_id

    def _start(self, thread: DimensionProbeThread) -> None:
        thread.start()

    def _take(self, request_id: int) -> DimensionProbeThread | None:
        return self._threads.pop(request_id, None)

    def _on_probed(self, request_id: int, dimensions: ImageDimensions):
        thread = self._take(request_id)
        if request_id != self._latest_id or thread is None:
            logger.debug("Discarding stale dimension probe #%d", request_id)
            return
        self.resolved.emit(thread.path, dimensions)

    def _on_failed(self, request_id: int, message: str):
        thread = self._take(request_id)
        if request_id != self._latest_id or thread is None:
            logger.debug("Discarding stale probe failure #%d: %s", request_id, message)
            return
        logger.warning("Dimension probe failed for %s: %s", thread.path, message)
        self.failed.emit(thread.path, message)

    def shutdown(self) -> None:
        """Wait for running probes; their results are ignored."""
        self._latest_id += 1
        for thread in list(self._threads.values()):
            if thread.isRunning():
                thread.wait(500)
        self._threads.clear()
