from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Final, Literal

from ports.recognition import RecognitionPort
from ports.telemetry import DiagnosticKind, DiagnosticsPort, MetricsPort
from ports.time import ClockPort
from ports.vision import Frame
from shared.contracts.v1.diagnostics import DiagnosticEvent
from shared.contracts.v1.recognition import RecognitionResult

from .errors import FrameUnavailable, RecognitionFailure
from .gate import BackpressureGate, SubmitOutcome
from .state import ObservableState

LOG: Final = logging.getLogger("overlay.pipeline")

Settlement = Literal["success", "failure", "timeout", "teardown"]


class _InFlight:
    """Bookkeeping for the one accepted frame; settles exactly once."""

    __slots__ = ("frame", "started", "future", "timer", "settled", "lock")

    def __init__(self, frame: Frame, started: float) -> None:
        self.frame = frame
        self.started = started
        self.future: Future[RecognitionResult] | None = None
        self.timer: threading.Timer | None = None
        self.settled = False
        self.lock = threading.Lock()

    def claim(self) -> bool:
        with self.lock:
            if self.settled:
                return False
            self.settled = True
            return True


class FrameAnalysisPipeline:
    """Gate -> single analysis worker -> recognition service -> published state.

    on_frame_available() may be called from any thread. Accepted frames are
    handed to a one-thread executor, which records the frame geometry and
    starts recognition without waiting on it. Whatever ends the analysis
    (completion, failure, timeout, teardown) releases the frame and frees the
    gate exactly once. A timed-out call the service can no longer cancel keeps
    the gate busy until it finishes, so only one recognition is ever running.
    """

    def __init__(
        self,
        recognizer: RecognitionPort,
        state: ObservableState,
        *,
        diagnostics: DiagnosticsPort | None = None,
        metrics: MetricsPort | None = None,
        clock: ClockPort | None = None,
        gate: BackpressureGate | None = None,
        recognition_timeout_s: float | None = 5.0,
    ) -> None:
        self.recognizer: Final = recognizer
        self.state: Final = state
        self.diagnostics: Final = diagnostics
        self.metrics: Final = metrics
        self.clock: Final = clock
        self.gate: Final = gate or BackpressureGate()
        self._timeout = recognition_timeout_s if recognition_timeout_s else None
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="frame-analysis")
        self._lock = threading.Lock()
        self._current: _InFlight | None = None
        self._alive = True
        self._counts = {
            "unavailable": 0,
            "published": 0,
            "failed": 0,
            "timed_out": 0,
        }

    @property
    def alive(self) -> bool:
        return self._alive

    # ----- frame intake (frame source thread) -----

    def on_frame_available(self, frame: Frame) -> SubmitOutcome:
        if frame.image is None:
            self._count("unavailable")
            self._report("frame-unavailable", frame.frame_id, str(FrameUnavailable(frame.frame_id)))
            frame.close()
            return "DROPPED"

        if self.gate.submit(frame) == "DROPPED":
            self._observe("frames_dropped", 1.0)
            return "DROPPED"

        job = _InFlight(frame, self._now())
        with self._lock:
            alive = self._alive
            if alive:
                self._current = job
        if not alive:
            self._settle(job, "teardown")
            return "DROPPED"

        self._observe("frames_accepted", 1.0)
        try:
            self._worker.submit(self._analyze, job)
        except RuntimeError:
            # worker already shut down by close()
            self._settle(job, "teardown")
            return "DROPPED"
        return "ACCEPTED"

    # ----- analysis worker -----

    def _analyze(self, job: _InFlight) -> None:
        if job.settled or not self._alive:
            self._settle(job, "teardown")
            return
        frame = job.frame
        self.state.record_frame(frame.frame_id, frame.geometry)
        if job.settled:
            # close() got in first and already released the frame
            return
        try:
            future = self.recognizer.recognize(frame, frame.rotation_degrees)
        except Exception as exc:
            self._settle(job, "failure", error=exc)
            return
        job.future = future
        if self._timeout is not None:
            timer = threading.Timer(self._timeout, self._settle, args=(job, "timeout"))
            timer.daemon = True
            job.timer = timer
            timer.start()
        future.add_done_callback(lambda f: self._on_complete(job, f))

    def _on_complete(self, job: _InFlight, future: Future[RecognitionResult]) -> None:
        if future.cancelled():
            self._settle(job, "failure", error=RuntimeError("recognition cancelled"))
            return
        exc = future.exception()
        if exc is not None:
            self._settle(job, "failure", error=exc)
        else:
            self._settle(job, "success", result=future.result())

    def _settle(
        self,
        job: _InFlight,
        how: Settlement,
        *,
        result: RecognitionResult | None = None,
        error: BaseException | None = None,
    ) -> bool:
        if not job.claim():
            return False
        frame = job.frame
        try:
            if job.timer is not None:
                job.timer.cancel()
            if how == "success" and result is not None:
                self._publish(job, result)
            elif how == "failure":
                self._count("failed")
                failure = RecognitionFailure(frame.frame_id, error)
                LOG.warning("%s", failure)
                self._report("recognition-failure", frame.frame_id, str(failure))
                self._observe("recognition_failures", 1.0)
            elif how == "timeout":
                self._count("timed_out")
                if job.future is not None:
                    job.future.cancel()
                LOG.warning("recognition timed out for frame %s", frame.frame_id)
                self._report("recognition-timeout", frame.frame_id, f"no completion in {self._timeout}s")
            else:
                if job.future is not None:
                    job.future.cancel()
                LOG.debug("frame %s released at teardown", frame.frame_id)
        except Exception:
            LOG.exception("settling frame %s failed", frame.frame_id)
        finally:
            frame.close()
            fut = job.future
            if how == "timeout" and fut is not None and not fut.done():
                # the service is still working on it: keep the slot until it finishes
                fut.add_done_callback(lambda _f: self._free(job))
            else:
                self._free(job)
        return True

    def _free(self, job: _InFlight) -> None:
        self.gate.release(job.frame)
        with self._lock:
            if self._current is job:
                self._current = None

    def _publish(self, job: _InFlight, result: RecognitionResult) -> None:
        if not self._alive:
            return
        frame = job.frame
        self.state.publish_result(frame.frame_id, frame.geometry, result)
        self._count("published")
        LOG.debug("detected text (frame %s): %r", frame.frame_id, result.full_text)
        if self.clock is not None:
            self._observe("recognition_ms", (self.clock.now() - job.started) * 1000.0)

    # ----- lifecycle -----

    def flush(self, timeout: float | None = None) -> None:
        """Block until the worker has run everything queued before this call."""
        try:
            self._worker.submit(lambda: None).result(timeout=timeout)
        except RuntimeError:
            pass

    def close(self) -> None:
        """Stop accepting frames and release whatever is still in flight."""
        with self._lock:
            if not self._alive:
                return
            self._alive = False
            job = self._current
        self.gate.close()
        if job is not None:
            self._settle(job, "teardown")
        self._worker.shutdown(wait=False)
        LOG.info("analysis pipeline closed (%s)", self.stats())

    def stats(self) -> dict[str, int]:
        out = {"accepted": self.gate.accepted, "dropped": self.gate.dropped}
        with self._lock:
            out.update(self._counts)
        return out

    # ----- helpers -----

    def _count(self, key: str) -> None:
        with self._lock:
            self._counts[key] += 1

    def _now(self) -> float:
        return self.clock.now() if self.clock is not None else 0.0

    def _observe(self, name: str, value: float) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.observe(name, value)
        except Exception:
            LOG.exception("metrics sink failed for %s", name)

    def _report(self, kind: DiagnosticKind, frame_id: int | None, detail: str | None) -> None:
        if self.diagnostics is None:
            return
        try:
            self.diagnostics.report(DiagnosticEvent(kind=kind, frame_id=frame_id, detail=detail))
        except Exception:
            LOG.exception("diagnostics sink failed for %s", kind)
