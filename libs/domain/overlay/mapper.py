"""Frame-space -> viewport-space mapping for overlay boxes.

Scaling is per-axis (fill/stretch preview), and results are never clamped to
the viewport: a box outside the frame maps outside the viewport.
"""

from __future__ import annotations

from ports.vision import ROTATIONS, FrameGeometry
from shared.contracts.v1.recognition import DisplayMetrics, RecognitionResult, Rect

from .errors import MappingPrecondition


def effective_extent(frame: FrameGeometry) -> tuple[int, int]:
    if frame.rotation_degrees not in ROTATIONS:
        raise ValueError(f"unsupported rotation: {frame.rotation_degrees}")
    return frame.effective_size()


def scale_factors(frame: FrameGeometry, viewport: DisplayMetrics) -> tuple[float, float]:
    eff_w, eff_h = effective_extent(frame)
    if eff_w <= 0 or eff_h <= 0:
        raise MappingPrecondition(
            f"cannot map from an empty frame ({frame.width}x{frame.height}); "
            "wait until a frame has been analyzed"
        )
    return viewport.viewport_width / eff_w, viewport.viewport_height / eff_h


def _scaled(rect: Rect, sx: float, sy: float) -> Rect:
    return Rect(
        left=rect.left * sx,
        top=rect.top * sy,
        right=rect.right * sx,
        bottom=rect.bottom * sy,
    )


def map_rect(rect: Rect, frame: FrameGeometry, viewport: DisplayMetrics) -> Rect:
    sx, sy = scale_factors(frame, viewport)
    return _scaled(rect, sx, sy)


def map_fragments(
    result: RecognitionResult, frame: FrameGeometry, viewport: DisplayMetrics
) -> list[tuple[str, Rect]]:
    """(text, viewport rect) for every fragment that carries a box."""
    sx, sy = scale_factors(frame, viewport)
    return [
        (frag.text, _scaled(frag.bounding_box, sx, sy))
        for frag in result.fragments
        if frag.bounding_box is not None
    ]
