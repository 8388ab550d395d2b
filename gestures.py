"""
Gesture interpretation: turns a 21-point hand landmark set into the swarm's
control signal {is_grab, hand_x}.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
import math
import threading

import numpy as np

from params import _pget

NUM_LANDMARKS = 21
THUMB_TIP = 4
INDEX_TIP = 8

# Empirical pinch threshold (normalized image units). Tunable, not derived.
PINCH_THRESHOLD = 0.08


class HandLandmarks:
    """Fixed-shape landmark set: 21 (x, y) points normalized to the image."""

    __slots__ = ("points",)

    def __init__(self, points):
        pts = np.asarray(points, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[0] != NUM_LANDMARKS or pts.shape[1] < 2:
            raise ValueError(f"expected {NUM_LANDMARKS} landmarks with (x, y), got shape {pts.shape}")
        self.points = np.ascontiguousarray(pts[:, :2])

    @classmethod
    def from_points(cls, points) -> "HandLandmarks":
        """
        Accepts (x, y[, z]) sequences, {"x": .., "y": ..} mappings (JSON) or
        MediaPipe-style objects with .x/.y. Unreadable points raise ValueError.
        """
        pts = []
        for p in points:
            try:
                if isinstance(p, Mapping):
                    x, y = p["x"], p["y"]
                elif hasattr(p, "x") and hasattr(p, "y"):
                    x, y = p.x, p.y
                else:
                    x, y = p[0], p[1]
                pts.append((float(x), float(y)))
            except (KeyError, IndexError, TypeError) as e:
                raise ValueError(f"unreadable landmark: {p!r}") from e
        return cls(pts)

    def __len__(self):
        return NUM_LANDMARKS

    def __getitem__(self, idx):
        return self.points[idx]

    @property
    def thumb_tip(self):
        return self.points[THUMB_TIP]

    @property
    def index_tip(self):
        return self.points[INDEX_TIP]


@dataclass(frozen=True)
class GestureState:
    is_grab: bool
    hand_x: float

    @classmethod
    def initial(cls) -> "GestureState":
        # Swarm starts assembled
        return cls(is_grab=True, hand_x=0.0)


def pinch_distance(landmarks: HandLandmarks) -> float:
    """Distance between thumb-tip (4) and index-tip (8)."""
    a, b = landmarks.thumb_tip, landmarks.index_tip
    return math.hypot(float(b[0] - a[0]), float(b[1] - a[1]))


def hand_x(landmarks: HandLandmarks) -> float:
    # 0..1 image x -> -1..1
    return (float(landmarks.index_tip[0]) - 0.5) * 2.0


def interpret(landmarks, pinch_threshold: float = PINCH_THRESHOLD):
    """
    Returns a GestureState, or None when no hand was detected.

    The pinch is a hard threshold, no debouncing; visual smoothness comes from
    the swarm's positional easing. Coordinates outside [0, 1] pass through.
    """
    if landmarks is None:
        return None
    if not isinstance(landmarks, HandLandmarks):
        landmarks = HandLandmarks.from_points(landmarks)
    return GestureState(
        is_grab=pinch_distance(landmarks) < pinch_threshold,
        hand_x=hand_x(landmarks),
    )


class PinchHysteresis:
    """
    Two-threshold pinch: engage below `on`, release only above `off`.
    Reduces flicker right at the threshold. Not used unless configured.
    """

    def __init__(self, on: float = PINCH_THRESHOLD, off: float = 0.10):
        if off < on:
            raise ValueError(f"release threshold {off} is below engage threshold {on}")
        self.on = float(on)
        self.off = float(off)
        self.active = None

    def reset(self):
        self.active = None

    def update(self, distance: float) -> bool:
        if self.active is None:
            self.active = distance < self.on
        elif self.active:
            self.active = distance <= self.off
        else:
            self.active = distance < self.on
        return self.active


class GestureLatch:
    """
    Holds the most recent known GestureState.

    A frame without a detection leaves the state untouched (no timeout), so a
    dropped detection never resets the formation.
    """

    def __init__(self, initial: GestureState | None = None, pinch_threshold: float = PINCH_THRESHOLD,
                 hysteresis: PinchHysteresis | None = None):
        self.state = initial if initial is not None else GestureState.initial()
        self.pinch_threshold = float(pinch_threshold)
        self.hysteresis = hysteresis

    def update(self, landmarks) -> GestureState:
        if landmarks is None:
            return self.state
        if not isinstance(landmarks, HandLandmarks):
            landmarks = HandLandmarks.from_points(landmarks)

        if self.hysteresis is not None:
            grab = self.hysteresis.update(pinch_distance(landmarks))
            self.state = GestureState(is_grab=grab, hand_x=hand_x(landmarks))
        else:
            self.state = interpret(landmarks, self.pinch_threshold)
        return self.state

    def reset(self, state: GestureState | None = None):
        self.state = state if state is not None else GestureState.initial()
        if self.hysteresis is not None:
            self.hysteresis.reset()


class LatestGesture:
    """
    Single-slot, lock-protected handoff between an inference thread and the
    render loop. Latest value wins; stale reads are fine.
    """

    def __init__(self, initial: GestureState | None = None):
        self._lock = threading.Lock()
        self._state = initial if initial is not None else GestureState.initial()
        self._seq = 0

    def put(self, state: GestureState | None):
        if state is None:
            return
        with self._lock:
            self._state = state
            self._seq += 1

    def get(self) -> GestureState:
        with self._lock:
            return self._state

    @property
    def seq(self) -> int:
        with self._lock:
            return self._seq


def latch_from_params(params) -> GestureLatch:
    thresh = float(_pget(params, "pinch_threshold", PINCH_THRESHOLD))
    release = _pget(params, "pinch_release", None)
    hyst = PinchHysteresis(on=thresh, off=float(release)) if release is not None else None
    return GestureLatch(pinch_threshold=thresh, hysteresis=hyst)
