from __future__ import annotations

import threading

from domain.overlay import ObservableState, PublishedState
from ports.vision import FrameGeometry
from shared.contracts.v1.recognition import RecognitionResult, TextFragment


def _result(tag: str) -> RecognitionResult:
    return RecognitionResult(full_text=tag, fragments=(TextFragment(text=tag),))


def test_defaults_have_no_frame_and_empty_result():
    snap = ObservableState().snapshot()
    assert isinstance(snap, PublishedState)
    assert not snap.has_frame
    assert snap.recognition_result.is_empty()
    assert snap.result_geometry is None
    assert snap.lens == "back"


def test_record_frame_keeps_previous_result():
    state = ObservableState()
    state.publish_result(1, FrameGeometry(640, 480, 0), _result("one"))
    before = state.snapshot()
    state.record_frame(2, FrameGeometry(1080, 1920, 90))
    after = state.snapshot()

    assert after is not before
    assert after.recognition_result.full_text == "one"
    assert after.result_geometry == FrameGeometry(640, 480, 0)
    assert (after.frame_width, after.frame_height, after.rotation_degrees) == (1080, 1920, 90)
    # old snapshot untouched
    assert before.frame_width == 0


def test_subscribers_see_each_new_snapshot_and_can_unsubscribe():
    state = ObservableState()
    seen: list[PublishedState] = []
    unsubscribe = state.subscribe(seen.append)
    state.set_capture_uri("file:///tmp/IMG_1.jpg")
    state.set_lens("front")
    unsubscribe()
    state.set_lens("back")

    assert [s.capture_uri for s in seen] == ["file:///tmp/IMG_1.jpg"] * 2
    assert seen[-1].lens == "front"


def test_failing_subscriber_does_not_block_others():
    state = ObservableState()
    seen: list[str | None] = []

    def boom(_snap):
        raise RuntimeError("subscriber bug")

    state.subscribe(boom)
    state.subscribe(lambda s: seen.append(s.capture_uri))
    state.set_capture_uri("file:///x.jpg")
    assert seen == ["file:///x.jpg"]
    assert state.snapshot().capture_uri == "file:///x.jpg"


def test_reset_keeps_capture_and_lens():
    state = ObservableState()
    state.set_capture_uri("file:///x.jpg")
    state.set_lens("front")
    state.publish_result(3, FrameGeometry(10, 10, 0), _result("x"))
    snap = state.reset()
    assert snap.recognition_result.is_empty()
    assert snap.capture_uri == "file:///x.jpg"
    assert snap.lens == "front"


def test_concurrent_readers_never_see_mixed_snapshots():
    state = ObservableState()
    stop = threading.Event()
    bad: list[PublishedState] = []

    def writer():
        i = 0
        while not stop.is_set():
            i += 1
            geom = FrameGeometry(100 + i, 200 + i, (i % 4) * 90)
            state.publish_result(i, geom, _result(f"{i}:{geom.width}x{geom.height}:{geom.rotation_degrees}"))

    def reader():
        while not stop.is_set():
            s = state.snapshot()
            if s.result_geometry is None:
                continue
            g = s.result_geometry
            expected = f"{s.result_frame_id}:{g.width}x{g.height}:{g.rotation_degrees}"
            if s.recognition_result.full_text != expected:
                bad.append(s)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    stop.wait(0.3)
    stop.set()
    for t in threads:
        t.join()
    assert not bad
