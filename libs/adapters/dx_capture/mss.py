from __future__ import annotations

from typing import Any, cast

try:
    import mss  # type: ignore
except Exception:  # pragma: no cover
    mss = None

from adapters.frame_pump import FramePump
from ports.vision import Frame, Lens


class MSSFrameSource(FramePump):
    """Screen grabs as a live frame source (desktop stand-in for a camera).

    "back" maps to `monitor`, "front" to `alt_monitor`.
    """

    thread_name = "mss-capture"

    def __init__(
        self,
        monitor: int = 1,
        target_fps: float = 10.0,
        rotation_degrees: int = 0,
        alt_monitor: int | None = None,
    ) -> None:
        super().__init__(target_fps=target_fps, rotation_degrees=rotation_degrees)
        self._monitor_idx = int(monitor)
        self._alt_idx = int(alt_monitor) if alt_monitor is not None else self._monitor_idx
        self._sct: Any = None
        self._mon: dict[str, int] | None = None

    def _open_device(self, lens: Lens) -> None:
        if mss is None:
            raise RuntimeError("mss is not installed")
        sct = mss.mss()
        monitors = sct.monitors  # has attribute at runtime
        # clamp to a real monitor (monitors[0] is "all")
        idx = self._monitor_idx if lens == "back" else self._alt_idx
        if idx < 1 or idx >= len(monitors):
            idx = 1
        self._mon = cast(dict[str, int], dict(monitors[idx]))
        self._sct = sct

    def _read(self) -> Frame:
        if self._sct is None or self._mon is None:
            raise RuntimeError("device not open")
        shot: Any = self._sct.grab(self._mon)
        # Prefer BGRA if available; fall back to raw
        if hasattr(shot, "bgra"):
            bgra_bytes = bytes(shot.bgra)
        else:
            bgra_bytes = bytes(shot.raw)
        return self._make_frame(bgra_bytes, shot.width, shot.height)

    def _close_device(self) -> None:
        if self._sct is not None:
            try:
                self._sct.close()
            except Exception:
                pass
        self._sct = None
        self._mon = None
