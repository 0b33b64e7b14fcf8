from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol

Rotation = Literal[0, 90, 180, 270]
Lens = Literal["back", "front"]

ROTATIONS: tuple[int, ...] = (0, 90, 180, 270)

_frame_ids = itertools.count(1)


def next_frame_id() -> int:
    return next(_frame_ids)


@dataclass(frozen=True)
class FrameGeometry:
    width: int
    height: int
    rotation_degrees: int = 0

    def effective_size(self) -> tuple[int, int]:
        """Extent as seen by the viewer; 90/270 swap the axes."""
        if self.rotation_degrees in (90, 270):
            return self.height, self.width
        return self.width, self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


class Frame:
    """One camera frame, exclusively owned until close() is called.

    `image` holds raw BGRA bytes (row-major) or None when the source had
    nothing usable. The release hook runs on the first close() only.
    """

    __slots__ = (
        "image",
        "width",
        "height",
        "rotation_degrees",
        "frame_id",
        "ts",
        "_on_release",
        "_lock",
        "_released",
    )

    def __init__(
        self,
        image: bytes | None,
        width: int,
        height: int,
        rotation_degrees: int = 0,
        *,
        frame_id: int | None = None,
        ts: float | None = None,
        on_release: Callable[[Frame], None] | None = None,
    ) -> None:
        if rotation_degrees not in ROTATIONS:
            raise ValueError(f"rotation_degrees must be one of {ROTATIONS}, got {rotation_degrees}")
        self.image = image
        self.width = int(width)
        self.height = int(height)
        self.rotation_degrees = int(rotation_degrees)
        self.frame_id = frame_id if frame_id is not None else next_frame_id()
        self.ts = ts if ts is not None else time.monotonic()
        self._on_release = on_release
        self._lock = threading.Lock()
        self._released = False

    @property
    def geometry(self) -> FrameGeometry:
        return FrameGeometry(self.width, self.height, self.rotation_degrees)

    @property
    def released(self) -> bool:
        return self._released

    def close(self) -> bool:
        """Release the underlying buffer. Returns False if already released."""
        with self._lock:
            if self._released:
                return False
            self._released = True
            hook, self._on_release = self._on_release, None
        self.image = None
        if hook is not None:
            hook(self)
        return True

    def __enter__(self) -> Frame:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Frame(frame_id={self.frame_id}, size={self.width}x{self.height}, "
            f"rotation={self.rotation_degrees}, released={self._released})"
        )


FrameHandler = Callable[[Frame], object]


class FrameSourcePort(Protocol):
    """Live frame producer. Every delivered frame must be closed exactly once."""

    def register_frame_handler(self, handler: FrameHandler) -> None: ...
    def start(self) -> None: ...
    def stop(self) -> None: ...
    def select_lens(self, lens: Lens) -> None: ...
    def fps(self) -> float: ...


class StillSourcePort(Protocol):
    def grab_still(self) -> Frame: ...
