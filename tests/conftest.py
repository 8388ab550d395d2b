import numpy as np
import pytest

from gestures import HandLandmarks
from params import Params


def make_hand(thumb=(0.5, 0.5), index=(0.6, 0.5)):
    pts = [(0.5, 0.5)] * 21
    pts[4] = thumb
    pts[8] = index
    return HandLandmarks(pts)


@pytest.fixture
def small_params():
    p = Params()
    p.num_particles = 10
    p.viewer_fps = 0
    return p


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
