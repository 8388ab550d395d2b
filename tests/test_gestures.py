import threading
from types import SimpleNamespace

import pytest

from conftest import make_hand
from gestures import (
    GestureLatch,
    GestureState,
    HandLandmarks,
    LatestGesture,
    PinchHysteresis,
    interpret,
    latch_from_params,
    pinch_distance,
)


def test_no_hand_means_no_state():
    assert interpret(None) is None


def test_pinch_is_grab():
    s = interpret(make_hand(thumb=(0.50, 0.50), index=(0.53, 0.54)))
    assert s.is_grab is True


def test_open_hand_is_release():
    s = interpret(make_hand(thumb=(0.40, 0.60), index=(0.55, 0.40)))
    assert s.is_grab is False


def test_threshold_is_strict():
    hand = make_hand(thumb=(0.5, 0.5), index=(0.5, 0.625))
    assert pinch_distance(hand) == 0.125
    assert interpret(hand, pinch_threshold=0.125).is_grab is False
    assert interpret(hand, pinch_threshold=0.1251).is_grab is True


def test_hand_x_maps_to_unit_range():
    assert interpret(make_hand(index=(0.0, 0.5))).hand_x == pytest.approx(-1.0)
    assert interpret(make_hand(index=(0.5, 0.5))).hand_x == pytest.approx(0.0)
    assert interpret(make_hand(index=(1.0, 0.5))).hand_x == pytest.approx(1.0)


def test_out_of_range_coordinates_pass_through():
    s = interpret(make_hand(index=(1.2, 0.5)))
    assert s.hand_x == pytest.approx(1.4)


def test_landmarks_from_mediapipe_style_objects():
    pts = [SimpleNamespace(x=0.5, y=0.5, z=0.0) for _ in range(21)]
    pts[8] = SimpleNamespace(x=0.75, y=0.5, z=0.1)
    hand = HandLandmarks.from_points(pts)
    assert hand.index_tip[0] == pytest.approx(0.75)
    assert interpret(pts).hand_x == pytest.approx(0.5)


def test_landmark_count_is_fixed():
    with pytest.raises(ValueError):
        HandLandmarks([(0.5, 0.5)] * 20)
    with pytest.raises(ValueError):
        HandLandmarks([0.5] * 21)


def test_missing_detections_keep_last_state():
    a = make_hand(thumb=(0.5, 0.5), index=(0.52, 0.5))
    b = make_hand(thumb=(0.3, 0.5), index=(0.7, 0.2))
    latch = GestureLatch()

    emitted = [latch.update(x) for x in (a, None, None, b)]

    assert emitted[0] == interpret(a)
    assert emitted[1] == emitted[0]
    assert emitted[2] == emitted[0]
    assert emitted[3] == interpret(b)


def test_latch_starts_assembled():
    latch = GestureLatch()
    assert latch.update(None) == GestureState(is_grab=True, hand_x=0.0)
    assert GestureState.initial() == latch.state


def test_latch_reset():
    latch = GestureLatch()
    latch.update(make_hand(thumb=(0.1, 0.1), index=(0.9, 0.9)))
    assert latch.state.is_grab is False
    latch.reset()
    assert latch.state == GestureState.initial()


def test_hysteresis_holds_grab_inside_band():
    h = PinchHysteresis(on=0.08, off=0.10)
    assert h.update(0.05) is True
    assert h.update(0.09) is True
    assert h.update(0.11) is False
    assert h.update(0.09) is False
    assert h.update(0.07) is True


def test_hysteresis_rejects_inverted_band():
    with pytest.raises(ValueError):
        PinchHysteresis(on=0.10, off=0.05)


def test_latch_from_params_defaults_to_plain_threshold(small_params):
    latch = latch_from_params(small_params)
    assert latch.hysteresis is None
    assert latch.pinch_threshold == pytest.approx(0.08)

    small_params.pinch_release = 0.1
    latch = latch_from_params(small_params)
    latch.update(make_hand(thumb=(0.5, 0.5), index=(0.5, 0.55)))
    assert latch.state.is_grab is True
    latch.update(make_hand(thumb=(0.5, 0.5), index=(0.5, 0.59)))
    assert latch.state.is_grab is True


def test_latest_gesture_slot():
    slot = LatestGesture()
    assert slot.get() == GestureState.initial()
    slot.put(None)
    assert slot.seq == 0

    release = GestureState(is_grab=False, hand_x=0.25)
    slot.put(GestureState(is_grab=True, hand_x=-0.5))
    slot.put(release)
    assert slot.get() == release
    assert slot.seq == 2


def test_latest_gesture_slot_across_threads():
    slot = LatestGesture()
    last = GestureState(is_grab=False, hand_x=0.99)

    def producer():
        for i in range(200):
            slot.put(GestureState(is_grab=bool(i % 2), hand_x=i / 1000.0))
        slot.put(last)

    t = threading.Thread(target=producer)
    t.start()
    t.join()
    assert slot.get() == last
    assert slot.seq == 201


def test_landmarks_from_json_objects():
    pts = [{"x": 0.5, "y": 0.5} for _ in range(21)]
    pts[8] = {"x": 0.25, "y": 0.5, "z": 0.0}
    hand = HandLandmarks.from_points(pts)
    assert hand.index_tip[0] == pytest.approx(0.25)
    assert interpret(pts).hand_x == pytest.approx(-0.5)


def test_unreadable_landmarks_raise_value_error():
    with pytest.raises(ValueError):
        HandLandmarks.from_points([{"x": 0.5}] * 21)
    with pytest.raises(ValueError):
        HandLandmarks.from_points([None] * 21)
    with pytest.raises(ValueError):
        HandLandmarks.from_points([(0.5,)] * 21)
    with pytest.raises(ValueError):
        GestureLatch().update([{"y": 0.1}] * 21)
