from __future__ import annotations

from dataclasses import dataclass

from ports.vision import FrameGeometry, Lens
from shared.contracts.v1.recognition import EMPTY_RESULT, RecognitionResult


@dataclass(frozen=True)
class PublishedState:
    """Immutable snapshot handed to readers; replaced wholesale on every update.

    `frame_*`/`rotation_degrees` track the latest accepted frame, while
    `result_geometry` is the geometry of the frame `recognition_result` came
    from. Renderers map boxes with `result_geometry`.
    """

    recognition_result: RecognitionResult = EMPTY_RESULT
    result_geometry: FrameGeometry | None = None
    result_frame_id: int | None = None
    frame_width: int = 0
    frame_height: int = 0
    rotation_degrees: int = 0
    frame_id: int | None = None
    capture_uri: str | None = None
    lens: Lens = "back"

    @property
    def frame_geometry(self) -> FrameGeometry:
        return FrameGeometry(self.frame_width, self.frame_height, self.rotation_degrees)

    @property
    def has_frame(self) -> bool:
        return not self.frame_geometry.is_empty()
