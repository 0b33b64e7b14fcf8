from __future__ import annotations

import pytest
from adapters.dx_capture import FakeFrameSource
from adapters.photo_store import FakePhotoCapture
from adapters.recognition import FakeRecognitionPort
from adapters.telemetry import FakeDiagnosticsPort
from domain.overlay import CameraSession, FrameAnalysisPipeline, ObservableState
from ports.vision import Frame


def _session(photo=None, preview=None, recognizer=None):
    src = FakeFrameSource()
    rec = recognizer or FakeRecognitionPort()
    diag = FakeDiagnosticsPort()
    pipe = FrameAnalysisPipeline(rec, ObservableState(), diagnostics=diag, recognition_timeout_s=None)
    session = CameraSession(src, pipe, photo=photo, diagnostics=diag, preview=preview)
    return session, src, rec, diag


def test_start_wires_source_to_pipeline():
    session, src, rec, _diag = _session()
    session.start()
    assert src.started
    _f, out = src.push()
    assert out == "ACCEPTED"
    assert rec.wait_for_calls(1)
    session.close()


def test_start_is_idempotent_and_refused_after_close():
    session, src, _rec, _diag = _session()
    session.start()
    session.start()
    session.close()
    assert not src.started
    with pytest.raises(RuntimeError):
        session.start()


def test_preview_sees_frames_before_analysis_and_its_errors_are_contained():
    seen: list[int] = []

    def preview(frame: Frame) -> None:
        seen.append(frame.frame_id)
        raise RuntimeError("display gone")

    session, src, rec, _diag = _session(preview=preview)
    session.start()
    f1, out = src.push()
    assert seen == [f1.frame_id]
    assert out == "ACCEPTED"
    # frames with no pixels are not previewed
    src.push(image=None)
    assert seen == [f1.frame_id]
    session.close()


def test_switch_lens_toggles_source_and_state():
    session, src, _rec, _diag = _session()
    assert session.switch_lens() == "front"
    assert session.state.snapshot().lens == "front"
    assert session.switch_lens() == "back"
    assert src.lens_changes == ["front", "back"]
    session.close()


def test_capture_photo_publishes_uri():
    photo = FakePhotoCapture(uri="file:///pics/IMG_1700000000000.jpg")
    session, _src, _rec, _diag = _session(photo=photo)
    fut = session.capture_photo()
    assert fut.result(timeout=1) == "file:///pics/IMG_1700000000000.jpg"
    assert session.state.snapshot().capture_uri == "file:///pics/IMG_1700000000000.jpg"
    assert photo.calls == 1
    session.close()


def test_failed_capture_is_reported_and_state_unchanged():
    photo = FakePhotoCapture(error=OSError("disk full"))
    session, _src, _rec, diag = _session(photo=photo)
    fut = session.capture_photo()
    assert isinstance(fut.exception(timeout=1), OSError)
    assert session.state.snapshot().capture_uri is None
    assert diag.kinds() == ["capture-failure"]
    session.close()


def test_capture_without_photo_port_raises():
    session, _src, _rec, _diag = _session()
    with pytest.raises(RuntimeError):
        session.capture_photo()
    session.close()


def test_close_releases_in_flight_frame_once_and_is_idempotent():
    session, src, rec, _diag = _session()
    with session:
        f1, _ = src.push()
        rec.wait_for_calls(1)
    assert session.closed
    assert src.release_counts[f1.frame_id] == 1
    session.close()
    assert src.release_counts[f1.frame_id] == 1


class _NoFrontCamera(FakeFrameSource):
    def select_lens(self, lens):
        if lens == "front":
            raise RuntimeError("cannot open camera device 1")
        super().select_lens(lens)


def test_failed_lens_switch_is_reported_and_lens_unchanged():
    src = _NoFrontCamera()
    diag = FakeDiagnosticsPort()
    pipe = FrameAnalysisPipeline(FakeRecognitionPort(), ObservableState(), recognition_timeout_s=None)
    session = CameraSession(src, pipe, diagnostics=diag)
    session.start()

    assert session.switch_lens() == "back"
    assert session.state.snapshot().lens == "back"
    assert src.lens == "back"
    assert diag.kinds() == ["lens-switch-failure"]

    # still usable afterwards
    _f, out = src.push()
    assert out == "ACCEPTED"
    session.close()
