from __future__ import annotations


class OverlayError(Exception):
    """Base for errors raised by the overlay core."""


class FrameUnavailable(OverlayError):
    """The source delivered a frame without a usable image."""

    def __init__(self, frame_id: int | None = None) -> None:
        super().__init__(f"frame {frame_id} has no image")
        self.frame_id = frame_id


class RecognitionFailure(OverlayError):
    """The recognition service failed (or never answered) for one frame."""

    def __init__(self, frame_id: int | None, cause: BaseException | None = None) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "no completion"
        super().__init__(f"recognition failed for frame {frame_id}: {detail}")
        self.frame_id = frame_id
        self.cause = cause


class MappingPrecondition(OverlayError, ValueError):
    """Mapping was asked for with a zero-size frame; callers must gate on frame size."""
