from __future__ import annotations

import logging
import threading
from typing import Final, Literal

from ports.vision import Frame

LOG: Final = logging.getLogger("overlay.gate")

SubmitOutcome = Literal["ACCEPTED", "DROPPED"]


class BackpressureGate:
    """One-slot gate: accept when idle, drop (and release) when busy.

    Frames arriving while a frame is in flight are never queued. The slot is
    freed by release(), which the pipeline calls after closing the frame.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: Frame | None = None
        self._closed = False
        self.accepted = 0
        self.dropped = 0

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, frame: Frame) -> SubmitOutcome:
        with self._lock:
            if not self._closed and self._in_flight is None:
                self._in_flight = frame
                self.accepted += 1
                return "ACCEPTED"
            self.dropped += 1
        # close outside the lock; the frame's release hook may be slow
        frame.close()
        return "DROPPED"

    def release(self, frame: Frame) -> None:
        with self._lock:
            if self._in_flight is not frame:
                LOG.warning("release() for %r which is not in flight", frame)
                return
            self._in_flight = None

    def close(self) -> Frame | None:
        """Stop accepting; returns the frame still in flight, if any."""
        with self._lock:
            self._closed = True
            return self._in_flight
