from .errors import FrameUnavailable, MappingPrecondition, OverlayError, RecognitionFailure
from .gate import BackpressureGate
from .mapper import effective_extent, map_fragments, map_rect, scale_factors
from .model import PublishedState
from .pipeline import FrameAnalysisPipeline
from .session import CameraSession
from .state import ObservableState

__all__ = [
    "BackpressureGate",
    "FrameAnalysisPipeline",
    "ObservableState",
    "PublishedState",
    "CameraSession",
    "map_rect",
    "map_fragments",
    "effective_extent",
    "scale_factors",
    "OverlayError",
    "FrameUnavailable",
    "RecognitionFailure",
    "MappingPrecondition",
]
