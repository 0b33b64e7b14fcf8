from .capture import PhotoCapturePort
from .recognition import RecognitionPort
from .telemetry import DiagnosticsPort, MetricsPort
from .time import ClockPort
from .vision import Frame, FrameGeometry, FrameSourcePort, StillSourcePort

__all__ = [
    "Frame",
    "FrameGeometry",
    "FrameSourcePort",
    "StillSourcePort",
    "RecognitionPort",
    "PhotoCapturePort",
    "DiagnosticsPort",
    "MetricsPort",
    "ClockPort",
]
