from __future__ import annotations

import threading
from concurrent.futures import Future

from ports.recognition import RecognitionPort
from ports.vision import Frame, FrameGeometry
from shared.contracts.v1.recognition import RecognitionResult


class FakeRecognitionPort(RecognitionPort):
    """Recognizer whose futures are resolved by the test (or instantly).

    Only frame ids and geometry are recorded; the image itself is never kept.
    """

    def __init__(
        self,
        result: RecognitionResult | None = None,
        *,
        auto: bool = False,
        error: BaseException | None = None,
        running: bool = False,
    ) -> None:
        self.result = result or RecognitionResult()
        self.auto = auto
        self.error = error
        # running futures can no longer be cancelled, like an executor job already picked up
        self.running = running
        self.calls: list[tuple[int, FrameGeometry, int]] = []
        self.pending: list[Future[RecognitionResult]] = []
        self._cond = threading.Condition()

    def recognize(self, image: Frame, rotation_degrees: int) -> Future[RecognitionResult]:
        fut: Future[RecognitionResult] = Future()
        if self.running:
            fut.set_running_or_notify_cancel()
        with self._cond:
            self.calls.append((image.frame_id, image.geometry, rotation_degrees))
            if not self.auto:
                self.pending.append(fut)
            self._cond.notify_all()
        if self.auto:
            if self.error is not None:
                fut.set_exception(self.error)
            else:
                fut.set_result(self.result)
        return fut

    # Test helpers

    def wait_for_calls(self, n: int, timeout: float = 2.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.calls) >= n, timeout=timeout)

    def _take(self) -> Future[RecognitionResult]:
        with self._cond:
            if not self.pending:
                raise LookupError("no pending recognition")
            return self.pending.pop(0)

    def complete(self, result: RecognitionResult | None = None) -> None:
        self._take().set_result(result if result is not None else self.result)

    def fail(self, exc: BaseException) -> None:
        self._take().set_exception(exc)


class RaisingRecognitionPort(RecognitionPort):
    """Raises synchronously from recognize(); for failure-path tests."""

    def __init__(self, exc: BaseException | None = None) -> None:
        self.exc = exc or RuntimeError("recognizer unavailable")
        self.calls = 0

    def recognize(self, image: Frame, rotation_degrees: int) -> Future[RecognitionResult]:
        self.calls += 1
        raise self.exc
