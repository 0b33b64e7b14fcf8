from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future

from shared.contracts.v1.recognition import RecognitionResult

from .vision import Frame


class RecognitionPort(ABC):
    """Asynchronous OCR service.

    The returned future resolves to a RecognitionResult whose boxes are in
    the upright (rotation-applied) frame orientation, or fails with the
    service's exception. Implementations must not keep `image` once the
    future is done. A future that is already running when the caller gives
    up on it cannot be cancelled; callers wait for it before the next call.
    """

    @abstractmethod
    def recognize(self, image: Frame, rotation_degrees: int) -> Future[RecognitionResult]: ...

    def close(self) -> None:
        pass
