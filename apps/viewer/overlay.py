from __future__ import annotations

import threading
from typing import Any

import cv2
import numpy as np

from domain.overlay import PublishedState, map_fragments
from ports.vision import Frame
from shared.contracts.v1.recognition import DisplayMetrics

_CV_ROTATE = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

BOX_COLOR = (0, 0, 255)  # BGR red, as the overlay boxes
TEXT_COLOR = (255, 255, 255)


class LatestPreview:
    """Keeps a copy of the newest frame's pixels for display."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: tuple[np.ndarray, int] | None = None

    def __call__(self, frame: Frame) -> None:
        if frame.image is None:
            return
        pixels = np.frombuffer(frame.image, dtype=np.uint8).reshape(frame.height, frame.width, 4).copy()
        with self._lock:
            self._latest = (pixels, frame.rotation_degrees)

    def image(self) -> np.ndarray | None:
        with self._lock:
            latest = self._latest
        if latest is None:
            return None
        bgra, rot = latest
        bgr = cv2.cvtColor(bgra, cv2.COLOR_BGRA2BGR)
        op = _CV_ROTATE.get(rot)
        return cv2.rotate(bgr, op) if op is not None else bgr


def draw_overlay(canvas: Any, snap: PublishedState, viewport: DisplayMetrics) -> int:
    """Draw the published text boxes onto `canvas` (viewport-sized BGR). Returns boxes drawn."""
    geom = snap.result_geometry
    if geom is None or geom.is_empty():
        return 0
    drawn = 0
    for text, rect in map_fragments(snap.recognition_result, geom, viewport):
        p1 = (int(rect.left), int(rect.top))
        p2 = (int(rect.right), int(rect.bottom))
        cv2.rectangle(canvas, p1, p2, BOX_COLOR, 2)
        cv2.putText(canvas, text, (p1[0], max(0, p1[1] - 4)), cv2.FONT_HERSHEY_SIMPLEX, 0.45, TEXT_COLOR, 1)
        drawn += 1
    return drawn


def render(preview: np.ndarray | None, snap: PublishedState, viewport: DisplayMetrics) -> np.ndarray:
    w, h = int(viewport.viewport_width), int(viewport.viewport_height)
    if preview is None:
        canvas = np.zeros((h, w, 3), dtype=np.uint8)
    else:
        # stretch to fill, the same per-axis scaling the boxes use
        canvas = cv2.resize(preview, (w, h))
    draw_overlay(canvas, snap, viewport)
    status = f"{snap.frame_width}x{snap.frame_height} rot={snap.rotation_degrees} lens={snap.lens}"
    cv2.putText(canvas, status, (8, h - 10), cv2.FONT_HERSHEY_SIMPLEX, 0.5, TEXT_COLOR, 1)
    if snap.capture_uri:
        cv2.putText(canvas, snap.capture_uri, (8, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.45, TEXT_COLOR, 1)
    return canvas
