"""
Gesture-driven particle swarm.

State:
- positions: Nx3 world units
- scales:    N   uniform scale per particle
- spins:     N   local rotation about +y (rad), only ever grows
- rotation:  one world rotation angle about +y for the whole swarm

Each advance():
- world rotation += idle + hand_x * gain
- positions ease toward the formation picked by is_grab (fixed lerp factor)
- scale snaps to the grab / release value
- every particle spins a fixed step
"""

from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from formations import FormationLibrary
from gestures import GestureState
from params import _pget


def rot_y(angle: float) -> np.ndarray:
    c, s = float(np.cos(angle)), float(np.sin(angle))
    return np.array([[c, 0.0, s],
                     [0.0, 1.0, 0.0],
                     [-s, 0.0, c]], dtype=np.float64)


def compose_instance_matrices(positions, scales, spins, out=None) -> np.ndarray:
    """
    Per-instance 4x4 transforms T(position) @ Ry(spin) @ S(scale).
    Row i belongs to particle i.
    """
    positions = np.asarray(positions)
    n = positions.shape[0]
    if out is None:
        out = np.zeros((n, 4, 4), dtype=np.float32)

    c = np.cos(spins) * scales
    s = np.sin(spins) * scales

    out[:] = 0.0
    out[:, 0, 0] = c
    out[:, 0, 2] = s
    out[:, 1, 1] = scales
    out[:, 2, 0] = -s
    out[:, 2, 2] = c
    out[:, :3, 3] = positions
    out[:, 3, 3] = 1.0
    return out


@dataclass
class SwarmTransformBuffer:
    """
    Output of one frame. Owned by the simulator and overwritten in place
    every advance(); renderers read it, never keep it.
    """
    positions: np.ndarray   # (N, 3) float32
    scales: np.ndarray      # (N,) float32
    spins: np.ndarray       # (N,) float32
    matrices: np.ndarray    # (N, 4, 4) float32
    world_rotation: float = 0.0
    is_grab: bool = True

    @classmethod
    def allocate(cls, n: int) -> "SwarmTransformBuffer":
        return cls(
            positions=np.zeros((n, 3), dtype=np.float32),
            scales=np.zeros(n, dtype=np.float32),
            spins=np.zeros(n, dtype=np.float32),
            matrices=np.zeros((n, 4, 4), dtype=np.float32),
        )

    def __len__(self):
        return len(self.positions)

    def fill(self, positions, scales, spins, world_rotation: float, is_grab: bool):
        self.positions[:] = positions
        self.scales[:] = scales
        self.spins[:] = spins
        self.world_rotation = float(world_rotation)
        self.is_grab = bool(is_grab)
        compose_instance_matrices(positions, scales, spins, out=self.matrices)
        return self

    def world_matrix(self) -> np.ndarray:
        m = np.eye(4, dtype=np.float64)
        m[:3, :3] = rot_y(self.world_rotation)
        return m

    def world_positions(self) -> np.ndarray:
        # For renderers that don't apply the swarm rotation themselves
        return self.positions.astype(np.float64) @ rot_y(self.world_rotation).T

    def to_payload(self, decimals: int = 4) -> dict:
        return {
            "type": "swarm",
            "n": len(self),
            "is_grab": self.is_grab,
            "world_rotation": round(self.world_rotation, 6),
            "positions": np.round(self.positions, decimals).ravel().tolist(),
            "scales": np.round(self.scales, decimals).tolist(),
            "spins": np.round(self.spins, decimals).tolist(),
        }


class SwarmSimulator:
    """
    Numpy swarm.

    Usage:
      sim = SwarmSimulator(params)
      buf = sim.advance(gesture_state)   # once per render tick
    """

    def __init__(self, params=None, formations: FormationLibrary | None = None, rng=None):
        self.params = params

        n = int(_pget(params, "num_particles", 4000))
        if formations is None:
            formations = FormationLibrary.build(n, params=params, rng=rng)
        self.formations = formations
        self.n = len(formations)

        self.lerp_factor = float(_pget(params, "lerp_factor", 0.08))
        self.grab_scale = float(_pget(params, "grab_scale", 0.12))
        self.release_scale = float(_pget(params, "release_scale", 0.08))
        self.spin_step = float(_pget(params, "spin_step", 0.01))
        self.idle_rotation = float(_pget(params, "idle_rotation", 0.005))
        self.hand_rotation_gain = float(_pget(params, "hand_rotation_gain", 0.05))

        self.buffer = SwarmTransformBuffer.allocate(self.n)
        self.reset()

    def reset(self):
        # Start assembled
        self.pos = self.formations.assembled.points.astype(np.float64)
        self.scale = np.full(self.n, self.grab_scale, dtype=np.float64)
        self.spin = np.zeros(self.n, dtype=np.float64)
        self.rotation = 0.0
        self.frame = 0
        self.buffer.fill(self.pos, self.scale, self.spin, self.rotation, True)

    @property
    def positions(self) -> np.ndarray:
        return self.pos

    def target_scale(self, is_grab: bool) -> float:
        return self.grab_scale if is_grab else self.release_scale

    def advance(self, state: GestureState, dt=None) -> SwarmTransformBuffer:
        # dt is accepted for driver symmetry; the easing is per frame
        is_grab = bool(state.is_grab)

        self.rotation += self.idle_rotation + float(state.hand_x) * self.hand_rotation_gain

        target = self.formations.target(is_grab).points
        self.pos += (target - self.pos) * self.lerp_factor

        self.scale.fill(self.target_scale(is_grab))
        self.spin += self.spin_step
        self.frame += 1

        return self.buffer.fill(self.pos, self.scale, self.spin, self.rotation, is_grab)


def make_simulator(params=None, formations: FormationLibrary | None = None, rng=None):
    backend = str(_pget(params, "backend", "numpy")).lower()
    if backend == "taichi":
        from swarm_ti import SwarmSimulatorTaichi
        return SwarmSimulatorTaichi(params=params, formations=formations, rng=rng)
    if backend != "numpy":
        raise ValueError(f"unknown swarm backend: {backend!r}")
    return SwarmSimulator(params=params, formations=formations, rng=rng)
