from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Final

from adapters.imaging import bgra_to_image, upright
from ports.capture import PhotoCapturePort
from ports.vision import StillSourcePort

LOG: Final = logging.getLogger("adapters.photo_store")


def photo_name(epoch_ms: int) -> str:
    return f"IMG_{epoch_ms}.jpg"


class FilePhotoCapture(PhotoCapturePort):
    """Grabs a still from the source and writes IMG_<epoch_ms>.jpg under pictures_dir/album."""

    def __init__(
        self,
        still: StillSourcePort,
        pictures_dir: Path | str,
        album: str = "textlens",
        quality: int = 92,
    ) -> None:
        self._still = still
        self.folder = Path(pictures_dir).expanduser() / album
        self._quality = int(quality)
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="photo-store")

    def capture_photo(self) -> Future[str]:
        return self._pool.submit(self._capture)

    def _capture(self) -> str:
        with self._still.grab_still() as frame:
            if frame.image is None:
                raise RuntimeError("still capture returned no image")
            img = upright(bgra_to_image(frame.image, frame.width, frame.height), frame.rotation_degrees)
        self.folder.mkdir(parents=True, exist_ok=True)
        path = self.folder / photo_name(int(time.time() * 1000))
        img.save(path, format="JPEG", quality=self._quality)
        LOG.debug("wrote %s (%dx%d)", path, img.width, img.height)
        return path.resolve().as_uri()

    def close(self) -> None:
        self._pool.shutdown(wait=True)


class FakePhotoCapture(PhotoCapturePort):
    """Resolves immediately with a fixed URI, or fails with `error`."""

    def __init__(self, uri: str = "file:///tmp/IMG_0.jpg", error: BaseException | None = None) -> None:
        self.uri = uri
        self.error = error
        self.calls = 0

    def capture_photo(self) -> Future[str]:
        self.calls += 1
        fut: Future[str] = Future()
        if self.error is not None:
            fut.set_exception(self.error)
        else:
            fut.set_result(self.uri)
        return fut
