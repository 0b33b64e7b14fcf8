from __future__ import annotations

from ports.vision import Frame, FrameHandler, Lens


class FakeFrameSource:
    """Synchronous frame source: push() delivers a frame on the caller's thread.

    Tracks every frame it hands out so tests can check release counts.
    """

    def __init__(self, width: int = 640, height: int = 480, rotation_degrees: int = 0) -> None:
        self.width = width
        self.height = height
        self.rotation_degrees = rotation_degrees
        self.lens: Lens = "back"
        self.started = False
        self.lens_changes: list[Lens] = []
        self.frames: list[Frame] = []
        self.release_counts: dict[int, int] = {}
        self._handler: FrameHandler | None = None

    def register_frame_handler(self, handler: FrameHandler) -> None:
        self._handler = handler

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def select_lens(self, lens: Lens) -> None:
        self.lens = lens
        self.lens_changes.append(lens)

    def fps(self) -> float:
        return 0.0

    def make_frame(self, image: bytes | None = b"\x00" * 16, rotation_degrees: int | None = None) -> Frame:
        rot = self.rotation_degrees if rotation_degrees is None else rotation_degrees
        frame = Frame(image, self.width, self.height, rot, on_release=self._on_release)
        self.frames.append(frame)
        self.release_counts[frame.frame_id] = 0
        return frame

    def push(self, image: bytes | None = b"\x00" * 16, rotation_degrees: int | None = None) -> tuple[Frame, object]:
        """Create a frame and deliver it; returns (frame, handler result)."""
        frame = self.make_frame(image, rotation_degrees)
        if self._handler is None:
            frame.close()
            return frame, None
        return frame, self._handler(frame)

    def grab_still(self) -> Frame:
        return self.make_frame(b"\x80" * (self.width * self.height * 4))

    def _on_release(self, frame: Frame) -> None:
        self.release_counts[frame.frame_id] += 1
