from __future__ import annotations

from typing import Any

import cv2

from adapters.frame_pump import FramePump
from ports.vision import Frame, Lens


class OpenCVFrameSource(FramePump):
    """Webcam frames via cv2.VideoCapture, delivered as BGRA bytes.

    Back/front lenses map to two capture device indices. A failed read is
    still delivered, as a frame with no image.
    """

    thread_name = "camera-capture"

    def __init__(
        self,
        device_index: int = 0,
        front_device_index: int | None = None,
        target_fps: float = 15.0,
        rotation_degrees: int = 0,
        frame_width: int | None = None,
        frame_height: int | None = None,
    ) -> None:
        super().__init__(target_fps=target_fps, rotation_degrees=rotation_degrees)
        self._devices: dict[Lens, int] = {
            "back": int(device_index),
            "front": int(front_device_index if front_device_index is not None else device_index),
        }
        self._frame_size = (frame_width, frame_height)
        self._cap: Any = None

    def _open_device(self, lens: Lens) -> None:
        idx = self._devices[lens]
        cap = cv2.VideoCapture(idx)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"cannot open camera device {idx}")
        w, h = self._frame_size
        if w:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        if h:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self._target_fps)
        self._cap = cap

    def _read(self) -> Frame:
        if self._cap is None:
            raise RuntimeError("device not open")
        ok, bgr = self._cap.read()
        if not ok or bgr is None:
            w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
            return self._make_frame(None, w, h)
        bgra = cv2.cvtColor(bgr, cv2.COLOR_BGR2BGRA)
        h, w = bgra.shape[:2]
        return self._make_frame(bgra.tobytes(), w, h)

    def _close_device(self) -> None:
        if self._cap is not None:
            self._cap.release()
        self._cap = None
