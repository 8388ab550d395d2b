import numpy as np

from gestures import GestureState
from renderer3d import SwarmRenderer, hex_to_bgr
from swarm import SwarmSimulator


def test_hex_to_bgr():
    assert hex_to_bgr("#FF69B4") == (180, 105, 255)
    assert hex_to_bgr("050103") == (3, 1, 5)


def test_origin_projects_to_center():
    r = SwarmRenderer(width=200, height=100)
    sx, sy, zz = r.project(np.zeros((1, 3)))
    assert sx[0] == 100 and sy[0] == 50
    assert zz[0] == 12.0


def test_render_draws_particles(small_params, rng):
    sim = SwarmSimulator(small_params, rng=rng)
    buf = sim.advance(GestureState(is_grab=True, hand_x=0.0))

    r = SwarmRenderer(width=160, height=120, glow=False)
    img = r.render(buf)
    assert img.shape == (120, 160, 3)
    bg = np.array(r.background, dtype=np.uint8)
    assert np.any(np.any(img != bg, axis=2))


def test_inset_keeps_size():
    r = SwarmRenderer(width=320, height=240)
    img = np.zeros((240, 320, 3), dtype=np.uint8)
    cam = np.full((90, 120, 3), 255, dtype=np.uint8)
    out = r.inset(img, cam, width=80)
    assert out.shape == (240, 320, 3)
    assert out[240 - 16 - 30, 16 + 40].tolist() == [255, 255, 255]
    assert r.inset(img, None) is img
