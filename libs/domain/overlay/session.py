from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Final

from ports.capture import PhotoCapturePort
from ports.telemetry import DiagnosticKind, DiagnosticsPort
from ports.vision import Frame, FrameSourcePort, Lens
from shared.contracts.v1.diagnostics import DiagnosticEvent

from .gate import SubmitOutcome
from .pipeline import FrameAnalysisPipeline
from .state import ObservableState

LOG: Final = logging.getLogger("overlay.session")

# Sees every delivered frame before analysis; must copy what it needs and not keep the frame.
PreviewSink = Callable[[Frame], None]


class CameraSession:
    """Binds one frame source to one analysis pipeline for the session's lifetime.

    Also owns still capture (writes `capture_uri` into the state on success)
    and lens switching. close() stops the source first, then tears down the
    pipeline so any in-flight frame is released.
    """

    def __init__(
        self,
        source: FrameSourcePort,
        pipeline: FrameAnalysisPipeline,
        photo: PhotoCapturePort | None = None,
        diagnostics: DiagnosticsPort | None = None,
        preview: PreviewSink | None = None,
    ) -> None:
        self.source: Final = source
        self.pipeline: Final = pipeline
        self.photo: Final = photo
        self.diagnostics: Final = diagnostics
        self.preview = preview
        self._lock = threading.Lock()
        self._started = False
        self._closed = False

    @property
    def state(self) -> ObservableState:
        return self.pipeline.state

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("session is closed")
            if self._started:
                return
            self._started = True
        self.source.register_frame_handler(self._on_frame)
        self.source.start()
        LOG.info("camera session started (lens=%s)", self.state.snapshot().lens)

    def _on_frame(self, frame: Frame) -> SubmitOutcome:
        sink = self.preview
        if sink is not None and frame.image is not None:
            try:
                sink(frame)
            except Exception:
                LOG.exception("preview sink failed")
        return self.pipeline.on_frame_available(frame)

    def switch_lens(self) -> Lens:
        """Toggle back/front. Returns the lens in use afterwards; unchanged if the switch failed."""
        current = self.state.snapshot().lens
        lens: Lens = "front" if current == "back" else "back"
        try:
            self.source.select_lens(lens)
        except Exception as exc:
            LOG.error("switching to %s lens failed: %r", lens, exc)
            self._report("lens-switch-failure", repr(exc))
            return current
        self.state.set_lens(lens)
        LOG.info("switched to %s lens", lens)
        return lens

    def capture_photo(self) -> Future[str]:
        if self.photo is None:
            raise RuntimeError("no photo capture configured")
        fut = self.photo.capture_photo()
        fut.add_done_callback(self._on_photo_done)
        return fut

    def _on_photo_done(self, fut: Future[str]) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            LOG.error("photo capture failed: %r", exc)
            self._report("capture-failure", repr(exc))
            return
        if self._closed:
            return
        uri = fut.result()
        self.state.set_capture_uri(uri)
        LOG.info("saved photo to %s", uri)

    def _report(self, kind: DiagnosticKind, detail: str) -> None:
        if self.diagnostics is None:
            return
        try:
            self.diagnostics.report(DiagnosticEvent(kind=kind, detail=detail))
        except Exception:
            LOG.exception("diagnostics sink failed for %s", kind)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self.source.stop()
        finally:
            self.pipeline.close()
            self.pipeline.recognizer.close()
            if self.photo is not None:
                self.photo.close()
        LOG.info("camera session closed")

    def __enter__(self) -> CameraSession:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
