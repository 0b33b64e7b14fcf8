from __future__ import annotations

import random
import threading
import time
from concurrent.futures import Future

from adapters.dx_capture import FakeFrameSource
from adapters.recognition import FakeRecognitionPort, RaisingRecognitionPort
from adapters.telemetry import FakeDiagnosticsPort, FakeMetricsPort
from adapters.time import ManualClockPort
from domain.overlay import FrameAnalysisPipeline, ObservableState
from ports.recognition import RecognitionPort
from ports.vision import Frame, FrameGeometry
from shared.contracts.v1.recognition import RecognitionResult, Rect, TextFragment

R1 = RecognitionResult(
    full_text="EXIT",
    fragments=(TextFragment(text="EXIT", bounding_box=Rect(left=1, top=2, right=3, bottom=4)),),
)


def _wait(pred, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.005)
    return pred()


def _make(recognizer: RecognitionPort | None = None, timeout: float | None = None):
    rec = recognizer or FakeRecognitionPort()
    state = ObservableState()
    diag = FakeDiagnosticsPort()
    metrics = FakeMetricsPort()
    pipe = FrameAnalysisPipeline(
        rec,
        state,
        diagnostics=diag,
        metrics=metrics,
        clock=ManualClockPort(),
        recognition_timeout_s=timeout,
    )
    src = FakeFrameSource(width=1080, height=1920, rotation_degrees=90)
    src.register_frame_handler(pipe.on_frame_available)
    return pipe, rec, state, diag, src


def _complete(pipe, rec, result=None):
    rec.complete(result)
    pipe.flush(timeout=2.0)


def test_second_frame_dropped_while_first_in_flight():
    pipe, rec, state, _diag, src = _make()
    f1, out1 = src.push()
    assert out1 == "ACCEPTED"
    assert rec.wait_for_calls(1)

    f2, out2 = src.push()
    assert out2 == "DROPPED"
    assert src.release_counts[f2.frame_id] == 1
    assert src.release_counts[f1.frame_id] == 0

    _complete(pipe, rec, R1)
    assert src.release_counts[f1.frame_id] == 1
    assert state.snapshot().recognition_result == R1
    assert len(rec.calls) == 1
    pipe.close()


def test_frame_geometry_recorded_before_recognition_completes():
    pipe, rec, state, _diag, src = _make()
    src.push()
    assert rec.wait_for_calls(1)
    snap = state.snapshot()
    assert (snap.frame_width, snap.frame_height, snap.rotation_degrees) == (1080, 1920, 90)
    assert snap.recognition_result.is_empty()
    assert rec.calls[0][2] == 90
    pipe.close()


def test_success_publishes_result_with_its_frame_geometry():
    pipe, rec, state, _diag, src = _make()
    f1, _ = src.push()
    rec.wait_for_calls(1)
    _complete(pipe, rec, R1)

    snap = state.snapshot()
    assert snap.result_frame_id == f1.frame_id
    assert snap.result_geometry == FrameGeometry(1080, 1920, 90)
    assert pipe.stats()["published"] == 1
    pipe.close()


def test_empty_result_still_releases_and_publishes():
    pipe, rec, state, _diag, src = _make()
    f1, _ = src.push()
    rec.wait_for_calls(1)
    _complete(pipe, rec, RecognitionResult())
    assert src.release_counts[f1.frame_id] == 1
    assert state.snapshot().result_frame_id == f1.frame_id
    pipe.close()


def test_failure_keeps_previous_result_and_next_frame_is_accepted():
    pipe, rec, state, diag, src = _make()
    src.push()
    rec.wait_for_calls(1)
    _complete(pipe, rec, R1)

    f2, _ = src.push()
    rec.wait_for_calls(2)
    rec.fail(RuntimeError("model crashed"))
    pipe.flush(timeout=2.0)

    assert src.release_counts[f2.frame_id] == 1
    assert state.snapshot().recognition_result == R1
    assert diag.kinds() == ["recognition-failure"]
    assert diag.records[0]["frame_id"] == f2.frame_id

    _f3, out3 = src.push()
    assert out3 == "ACCEPTED"
    pipe.close()


def test_synchronous_raise_is_a_recoverable_failure():
    rec = RaisingRecognitionPort()
    pipe, _rec, state, diag, src = _make(recognizer=rec)
    f1, out = src.push()
    assert out == "ACCEPTED"
    pipe.flush(timeout=2.0)

    assert src.release_counts[f1.frame_id] == 1
    assert "recognition-failure" in diag.kinds()
    assert state.snapshot().recognition_result.is_empty()
    _f2, out2 = src.push()
    assert out2 == "ACCEPTED"
    pipe.close()


def test_frame_without_image_is_dropped_and_reported():
    pipe, rec, _state, diag, src = _make()
    f1, out = src.push(image=None)
    assert out == "DROPPED"
    assert src.release_counts[f1.frame_id] == 1
    assert diag.kinds() == ["frame-unavailable"]
    assert rec.calls == []
    assert not pipe.gate.busy
    pipe.close()


def test_teardown_releases_in_flight_frame_and_ignores_late_completion():
    pipe, rec, state, _diag, src = _make(recognizer=FakeRecognitionPort(running=True))
    f1, _ = src.push()
    rec.wait_for_calls(1)
    pipe.close()

    assert src.release_counts[f1.frame_id] == 1
    before = state.snapshot()

    # late completion: no publish, no double release, no exception
    rec.complete(R1)
    assert state.snapshot() is before
    assert src.release_counts[f1.frame_id] == 1

    f2, out = src.push()
    assert out == "DROPPED"
    assert src.release_counts[f2.frame_id] == 1


def test_close_twice_is_harmless():
    pipe, _rec, _state, _diag, _src = _make()
    pipe.close()
    pipe.close()
    assert not pipe.alive


def test_service_that_never_answers_times_out():
    pipe, rec, state, diag, src = _make(timeout=0.05)
    f1, _ = src.push()
    rec.wait_for_calls(1)

    assert _wait(lambda: not pipe.gate.busy)
    assert src.release_counts[f1.frame_id] == 1
    assert "recognition-timeout" in diag.kinds()

    # the timed-out future was cancelled; a completion attempt must not republish
    fut = rec.pending[0]
    assert fut.cancelled()
    assert state.snapshot().recognition_result.is_empty()

    _f2, out = src.push()
    assert out == "ACCEPTED"
    pipe.close()


def test_metrics_count_accepted_and_dropped():
    pipe, rec, _state, _diag, src = _make()
    src.push()
    rec.wait_for_calls(1)
    src.push()
    src.push()
    _complete(pipe, rec, R1)
    metrics = pipe.metrics
    assert metrics.total("frames_accepted") == 1
    assert metrics.total("frames_dropped") == 2
    assert [n for n, _v, _l in metrics.samples].count("recognition_ms") == 1
    pipe.close()


class _EchoRecognizer(RecognitionPort):
    """Resolves on a helper thread; text encodes the frame it came from."""

    def __init__(self, fail_every: int = 0) -> None:
        self.fail_every = fail_every
        self.n = 0

    def recognize(self, image: Frame, rotation_degrees: int) -> Future[RecognitionResult]:
        fut: Future[RecognitionResult] = Future()
        self.n += 1
        fail = bool(self.fail_every) and self.n % self.fail_every == 0
        g = image.geometry
        text = f"{image.frame_id}:{g.width}x{g.height}:{g.rotation_degrees}"

        def finish():
            time.sleep(random.random() * 0.002)
            if fail:
                fut.set_exception(RuntimeError("flaky"))
            else:
                fut.set_result(RecognitionResult(full_text=text))

        threading.Thread(target=finish, daemon=True).start()
        return fut


def test_burst_of_frames_each_released_exactly_once_and_snapshots_consistent():
    state = ObservableState()
    pipe = FrameAnalysisPipeline(_EchoRecognizer(fail_every=3), state, recognition_timeout_s=None)
    releases: dict[int, int] = {}
    lock = threading.Lock()

    def on_release(frame: Frame) -> None:
        with lock:
            releases[frame.frame_id] = releases.get(frame.frame_id, 0) + 1

    stop = threading.Event()
    mixed: list[object] = []

    def reader():
        while not stop.is_set():
            s = state.snapshot()
            g = s.result_geometry
            if g is None:
                continue
            if s.recognition_result.full_text != f"{s.result_frame_id}:{g.width}x{g.height}:{g.rotation_degrees}":
                mixed.append(s)

    readers = [threading.Thread(target=reader) for _ in range(2)]
    for t in readers:
        t.start()

    frames = []
    for i in range(300):
        rot = (i % 4) * 90
        f = Frame(b"\x01" * 8, 640 + i % 3, 480, rot, on_release=on_release)
        frames.append(f)
        pipe.on_frame_available(f)
        if i % 7 == 0:
            time.sleep(0.001)

    assert _wait(lambda: not pipe.gate.busy)
    pipe.close()
    stop.set()
    for t in readers:
        t.join()

    assert all(releases.get(f.frame_id) == 1 for f in frames)
    assert not mixed
    stats = pipe.stats()
    assert stats["accepted"] + stats["dropped"] == 300


def test_timed_out_call_still_running_keeps_gate_busy_until_it_finishes():
    pipe, rec, state, diag, src = _make(recognizer=FakeRecognitionPort(running=True), timeout=0.05)
    f1, _ = src.push()
    rec.wait_for_calls(1)

    assert _wait(lambda: src.release_counts[f1.frame_id] == 1)
    assert "recognition-timeout" in diag.kinds()
    # frame buffer is back, but the service has not let go of the call yet
    assert pipe.gate.busy
    _f2, out = src.push()
    assert out == "DROPPED"
    assert len(rec.calls) == 1

    rec.complete(R1)
    assert _wait(lambda: not pipe.gate.busy)
    assert state.snapshot().recognition_result.is_empty()
    _f3, out3 = src.push()
    assert out3 == "ACCEPTED"
    pipe.close()


class _ClosingState(ObservableState):
    """Closes the pipeline right after the frame geometry is recorded."""

    pipe: FrameAnalysisPipeline | None = None

    def record_frame(self, frame_id, geometry):
        snap = super().record_frame(frame_id, geometry)
        if self.pipe is not None:
            self.pipe.close()
        return snap


def test_close_between_record_and_recognize_skips_recognition():
    rec = FakeRecognitionPort()
    state = _ClosingState()
    pipe = FrameAnalysisPipeline(rec, state, recognition_timeout_s=None)
    state.pipe = pipe
    src = FakeFrameSource()
    src.register_frame_handler(pipe.on_frame_available)

    f1, out = src.push()
    assert out == "ACCEPTED"
    assert _wait(lambda: src.release_counts[f1.frame_id] == 1)
    pipe.flush(timeout=2.0)
    assert rec.calls == []
    assert src.release_counts[f1.frame_id] == 1
