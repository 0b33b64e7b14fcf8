from __future__ import annotations

from adapters.camera_cv import OpenCVFrameSource
from adapters.dx_capture import MSSFrameSource
from adapters.frame_pump import FramePump
from adapters.photo_store import FilePhotoCapture
from adapters.recognition import FakeRecognitionPort
from adapters.telemetry import LoggingDiagnosticsPort, LoggingMetricsPort
from adapters.time import FakeClockPort
from domain.overlay import CameraSession, FrameAnalysisPipeline, ObservableState
from ports.capture import PhotoCapturePort
from ports.recognition import RecognitionPort
from ports.telemetry import DiagnosticsPort, MetricsPort
from ports.time import ClockPort
from ports.vision import FrameSourcePort, StillSourcePort
from shared.contracts.v1.recognition import RecognitionResult

from apps.viewer.settings import ViewerSettings


def build_source(settings: ViewerSettings) -> FramePump:
    cap = settings.capture
    if cap.adapter == "opencv":
        return OpenCVFrameSource(
            device_index=cap.device_index,
            front_device_index=cap.front_device_index,
            target_fps=cap.target_fps,
            rotation_degrees=cap.rotation_degrees,
            frame_width=cap.frame_width,
            frame_height=cap.frame_height,
        )
    if cap.adapter == "mss":
        return MSSFrameSource(
            monitor=cap.monitor,
            target_fps=cap.target_fps,
            rotation_degrees=cap.rotation_degrees,
        )
    raise ValueError(f"Unknown capture adapter: {cap.adapter}")


def build_recognizer(settings: ViewerSettings) -> RecognitionPort:
    rec = settings.recognition
    if rec.adapter == "tesseract":
        # pytesseract is imported lazily so fake runs work without it
        from adapters.ocr_tesseract import TesseractRecognizer

        return TesseractRecognizer(
            lang=rec.lang,
            config=rec.config,
            min_confidence=rec.min_confidence,
            tesseract_cmd=rec.tesseract_cmd,
        )
    if rec.adapter == "fake":
        return FakeRecognitionPort(RecognitionResult(), auto=True)
    raise ValueError(f"Unknown recognition adapter: {rec.adapter}")


def build_photo_capture(settings: ViewerSettings, still: StillSourcePort) -> PhotoCapturePort:
    return FilePhotoCapture(
        still,
        pictures_dir=settings.storage.pictures_dir,
        album=settings.storage.album,
    )


def build_session(
    settings: ViewerSettings,
    *,
    source: FrameSourcePort | None = None,
    recognizer: RecognitionPort | None = None,
    photo: PhotoCapturePort | None = None,
    diagnostics: DiagnosticsPort | None = None,
    metrics: MetricsPort | None = None,
    clock: ClockPort | None = None,
    state: ObservableState | None = None,
) -> CameraSession:
    """Wire a session from settings; any port can be swapped in (tests, demos)."""
    src = source if source is not None else build_source(settings)
    diag = diagnostics if diagnostics is not None else LoggingDiagnosticsPort()
    pipeline = FrameAnalysisPipeline(
        recognizer if recognizer is not None else build_recognizer(settings),
        state if state is not None else ObservableState(),
        diagnostics=diag,
        metrics=metrics if metrics is not None else LoggingMetricsPort(),
        clock=clock if clock is not None else FakeClockPort(),
        recognition_timeout_s=settings.recognition.timeout_s or None,
    )
    if photo is None and hasattr(src, "grab_still"):
        photo = build_photo_capture(settings, src)  # type: ignore[arg-type]
    return CameraSession(src, pipeline, photo=photo, diagnostics=diag)
