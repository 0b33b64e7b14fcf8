from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future


class PhotoCapturePort(ABC):
    """Still-photo capture to storage; resolves to the stored location (URI)."""

    @abstractmethod
    def capture_photo(self) -> Future[str]: ...

    def close(self) -> None:
        pass
