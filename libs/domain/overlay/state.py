from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Final

from ports.vision import FrameGeometry, Lens
from shared.contracts.v1.recognition import RecognitionResult

from .model import PublishedState

LOG: Final = logging.getLogger("overlay.state")

Subscriber = Callable[[PublishedState], None]


class ObservableState:
    """Latest-only holder for PublishedState.

    Readers grab the current reference (never a half-built object); writers
    build a new frozen snapshot under the lock and swap it in.
    """

    def __init__(self, initial: PublishedState | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = initial or PublishedState()
        self._subs: list[Subscriber] = []

    def snapshot(self) -> PublishedState:
        return self._snapshot

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subs.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subs:
                    self._subs.remove(callback)

        return _unsubscribe

    # ----- writers -----

    def record_frame(self, frame_id: int, geometry: FrameGeometry) -> PublishedState:
        return self._update(
            frame_id=frame_id,
            frame_width=geometry.width,
            frame_height=geometry.height,
            rotation_degrees=geometry.rotation_degrees,
        )

    def publish_result(
        self, frame_id: int, geometry: FrameGeometry, result: RecognitionResult
    ) -> PublishedState:
        return self._update(
            recognition_result=result,
            result_geometry=geometry,
            result_frame_id=frame_id,
        )

    def set_capture_uri(self, uri: str | None) -> PublishedState:
        return self._update(capture_uri=uri)

    def set_lens(self, lens: Lens) -> PublishedState:
        return self._update(lens=lens)

    def reset(self) -> PublishedState:
        """Drop frame and result data; keeps capture_uri and lens."""
        with self._lock:
            cur = self._snapshot
            new = PublishedState(capture_uri=cur.capture_uri, lens=cur.lens)
            self._snapshot = new
            subs = list(self._subs)
        self._notify(subs, new)
        return new

    def _update(self, **changes: Any) -> PublishedState:
        with self._lock:
            new = replace(self._snapshot, **changes)
            self._snapshot = new
            subs = list(self._subs)
        self._notify(subs, new)
        return new

    @staticmethod
    def _notify(subs: list[Subscriber], snap: PublishedState) -> None:
        for cb in subs:
            try:
                cb(snap)
            except Exception:
                LOG.exception("state subscriber %r failed", cb)
