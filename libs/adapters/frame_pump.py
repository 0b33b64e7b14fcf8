from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Final

from ports.vision import Frame, FrameHandler, Lens

LOG: Final = logging.getLogger("adapters.frame_pump")

FPS_WINDOW_S: Final = 1.0


class FramePump:
    """Background grab loop shared by the live frame sources.

    Subclasses provide _open_device/_read/_close_device. Every frame read is
    handed to the registered handler, which owns it from then on; if the
    handler raises, the pump closes the frame itself.
    """

    thread_name = "frame-pump"

    def __init__(self, target_fps: float = 15.0, rotation_degrees: int = 0) -> None:
        self._target_fps = float(target_fps)
        self._rotation = int(rotation_degrees)
        self._handler: FrameHandler | None = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._device_lock = threading.Lock()
        self._count_lock = threading.Lock()
        self._times_lock = threading.Lock()
        self._last_times: deque[float] = deque()
        self._opened = False
        self.lens: Lens = "back"
        self.delivered = 0
        self.outstanding = 0

    # ----- FrameSourcePort -----

    def register_frame_handler(self, handler: FrameHandler) -> None:
        self._handler = handler

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._ensure_open()
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.thread_name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=2.0)
        self._thread = None
        with self._device_lock:
            if self._opened:
                self._close_device()
                self._opened = False
        with self._times_lock:
            self._last_times.clear()

    def select_lens(self, lens: Lens) -> None:
        """Switch devices. On failure the previous lens is reopened and the error re-raised."""
        with self._device_lock:
            if lens == self.lens:
                return
            if not self._opened:
                self.lens = lens
                return
            previous = self.lens
            self._close_device()
            self._opened = False
            try:
                self._open_device(lens)
            except Exception:
                LOG.warning("opening %s lens failed, back to %s", lens, previous)
                try:
                    self._open_device(previous)
                    self._opened = True
                except Exception:
                    # the grab loop keeps retrying the previous lens
                    LOG.exception("reopening %s lens failed", previous)
                raise
            self._opened = True
            self.lens = lens

    def fps(self) -> float:
        with self._times_lock:
            self._trim_times(time.perf_counter())
            return float(len(self._last_times))

    # ----- StillSourcePort -----

    def grab_still(self) -> Frame:
        self._ensure_open()
        with self._device_lock:
            return self._read()

    # ----- subclass hooks -----

    def _open_device(self, lens: Lens) -> None:
        raise NotImplementedError

    def _read(self) -> Frame:
        raise NotImplementedError

    def _close_device(self) -> None:
        raise NotImplementedError

    # ----- internals -----

    def _ensure_open(self) -> None:
        with self._device_lock:
            self._open_locked()

    def _open_locked(self) -> None:
        if not self._opened:
            self._open_device(self.lens)
            self._opened = True

    def _make_frame(self, image: bytes | None, width: int, height: int) -> Frame:
        with self._count_lock:
            self.outstanding += 1
        return Frame(image, width, height, self._rotation, on_release=self._on_release)

    def _on_release(self, frame: Frame) -> None:
        with self._count_lock:
            self.outstanding -= 1

    def _mark_delivered(self, now: float) -> None:
        with self._times_lock:
            self._last_times.append(now)
            self._trim_times(now)

    def _trim_times(self, now: float) -> None:
        times = self._last_times
        while times and now - times[0] > FPS_WINDOW_S:
            times.popleft()

    def _loop(self) -> None:
        period = 1.0 / max(1e-6, self._target_fps)
        while not self._stop.is_set():
            t0 = time.perf_counter()
            try:
                with self._device_lock:
                    self._open_locked()
                    frame = self._read()
            except Exception:
                LOG.warning("%s read failed", self.thread_name, exc_info=True)
                self._stop.wait(0.1)
                continue
            self._deliver(frame)
            self._mark_delivered(time.perf_counter())
            self._stop.wait(max(0.0, period - (time.perf_counter() - t0)))

    def _deliver(self, frame: Frame) -> None:
        handler = self._handler
        self.delivered += 1
        if handler is None:
            frame.close()
            return
        try:
            handler(frame)
        except Exception:
            LOG.exception("frame handler raised for %r", frame)
            frame.close()
