"""
Debounced live preview.

Every store change restarts a single-shot QTimer.  When it fires, the
controller serializes the current state, gives the request the next id,
and hands the URL to a fetcher.  Fetches are never cancelled, but a
completion whose id is not the latest one issued is superseded: it is
dropped without touching the displayed preview and without reporting an
error.  Completion order therefore never matters.

State flow::

    idle → pending → fetching → applied | superseded | failed

``NetworkPreviewFetcher`` talks to the imagor service through
QNetworkAccessManager.  Anything exposing the same ``fetched``/``failed``
signals and a ``fetch(request_id, url)`` method can replace it.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from PyQt6.QtCore import QObject, QTimer, QUrl, pyqtSignal
from PyQt6.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest

from imagor_editor.config import DEBOUNCE_MS
from imagor_editor.errors import DimensionProbeError
from imagor_editor.image_io import measure_image_bytes
from imagor_editor.models import ImageDimensions
from imagor_editor.pipeline import PipelineSerializer
from imagor_editor.store import EditorState, EditorStore

logger = logging.getLogger(__name__)


class PreviewState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FETCHING = "fetching"
    APPLIED = "applied"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass(frozen=True)
class PreviewResult:
    request_id: int
    url: str
    data: bytes
    dimensions: ImageDimensions


# =============================================================================
# Network fetcher
# =============================================================================
class NetworkPreviewFetcher(QObject):
    """Fetches preview bytes over HTTP."""
    fetched = pyqtSignal(int, object)  # request id, bytes
    failed = pyqtSignal(int, str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._manager = QNetworkAccessManager(self)

    def fetch(self, request_id: int, url: str) -> None:
        reply = self._manager.get(QNetworkRequest(QUrl(url)))
        reply.finished.connect(lambda: self._on_finished(request_id, reply))

    def _on_finished(self, request_id: int, reply: QNetworkReply):
        try:
            if reply.error() != QNetworkReply.NetworkError.NoError:
                self.failed.emit(request_id, reply.errorString())
                return
            self.fetched.emit(request_id, bytes(reply.readAll()))
        finally:
            reply.deleteLater()


# =============================================================================
# Controller
# =============================================================================
class PreviewController(QObject):
    """Keeps the preview in step with the store, latest request wins."""
    state_changed = pyqtSignal(object)  # PreviewState
    preview_ready = pyqtSignal(object)  # PreviewResult
    preview_failed = pyqtSignal(str)

    def __init__(
        self,
        store: EditorStore,
        serializer: PipelineSerializer,
        fetcher: QObject | None = None,
        debounce_ms: int = DEBOUNCE_MS,
        parent=None,
    ):
        super().__init__(parent)
        self._store = store
        self._serializer = serializer
        self._fetcher = fetcher if fetcher is not None else NetworkPreviewFetcher(self)
        self._fetcher.fetched.connect(self._on_fetched)
        self._fetcher.failed.connect(self._on_failed)

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self._fire)

        self._state = PreviewState.IDLE
        self._latest_id = 0
        self._in_flight: dict[int, str] = {}
        self._applied_url: str | None = None
        self._closed = False
        self._unsubscribe = store.subscribe(self._on_store_changed)

    @property
    def state(self) -> PreviewState:
        return self._state

    @property
    def latest_request_id(self) -> int:
        return self._latest_id

    @property
    def applied_url(self) -> str | None:
        return self._applied_url

    def _set_state(self, state: PreviewState) -> None:
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)

    # =========================================================================
    # Scheduling
    # =========================================================================
    def _on_store_changed(self, state: EditorState) -> None:
        self.schedule()

    def schedule(self) -> None:
        """(Re)start the debounce timer."""
        if self._closed:
            return
        self._timer.start()
        self._set_state(PreviewState.PENDING)

    def flush(self) -> int | None:
        """Fire immediately instead of waiting for the timer."""
        self._timer.stop()
        return self._fire()

    def _fire(self) -> int | None:
        if self._closed:
            return None
        url = self._serializer.build_url(self._store.get_state(), for_preview=True)
        if url == self._applied_url and not self._in_flight:
            logger.debug("Preview URL unchanged, skipping fetch")
            self._set_state(PreviewState.APPLIED)
            return None

        self._latest_id += 1
        request_id = self._latest_id
        self._in_flight[request_id] = url
        self._set_state(PreviewState.FETCHING)
        logger.debug("Preview request #%d: %s", request_id, url)
        self._fetcher.fetch(request_id, url)
        return request_id

    # =========================================================================
    # Completion
    # =========================================================================
    def _is_current(self, request_id: int) -> bool:
        return not self._closed and request_id == self._latest_id

    def _settled_state(self, outcome: PreviewState) -> PreviewState:
        return PreviewState.PENDING if self._timer.isActive() else outcome

    def _on_fetched(self, request_id: int, data: bytes) -> PreviewState:
        url = self._in_flight.pop(request_id, None)
        if not self._is_current(request_id) or url is None:
            logger.debug("Preview request #%d superseded", request_id)
            return PreviewState.SUPERSEDED
        try:
            dimensions = measure_image_bytes(data)
        except DimensionProbeError as exc:
            return self._fail(str(exc))

        self._applied_url = url
        self._set_state(self._settled_state(PreviewState.APPLIED))
        self.preview_ready.emit(PreviewResult(request_id, url, data, dimensions))
        return PreviewState.APPLIED

    def _on_failed(self, request_id: int, message: str) -> PreviewState:
        self._in_flight.pop(request_id, None)
        if not self._is_current(request_id):
            logger.debug("Preview request #%d superseded (failed: %s)", request_id, message)
            return PreviewState.SUPERSEDED
        return self._fail(message)

    def _fail(self, message: str) -> PreviewState:
        logger.warning("Preview failed: %s", message)
        self._set_state(self._settled_state(PreviewState.FAILED))
        self.preview_failed.emit(message)
        return PreviewState.FAILED

    def shutdown(self) -> None:
        """Stop listening; late results are ignored."""
        self._closed = True
        self._timer.stop()
        self._unsubscribe()
        self._set_state(PreviewState.IDLE)
