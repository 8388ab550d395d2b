# swarm_ti.py
# Taichi backend for the swarm: same API as swarm.SwarmSimulator, per-particle
# easing runs in one kernel. Useful once N grows past what numpy keeps at 60 Hz.
# pyright: reportInvalidTypeForm=false

import numpy as np
import taichi as ti

from formations import FormationLibrary
from gestures import GestureState
from params import _pget
from swarm import SwarmTransformBuffer

_TAICHI_READY = False


def ensure_ti():
    global _TAICHI_READY
    if _TAICHI_READY:
        return
    try:
        ti.init(arch=ti.cuda, device_memory_fraction=0.3)
        print("✅ Taichi CUDA (swarm)")
    except Exception:
        ti.init(arch=ti.cpu)
        print("⚠️ Taichi CPU fallback (swarm)")
    _TAICHI_READY = True


@ti.data_oriented
class SwarmSimulatorTaichi:
    """
    Keeps the numpy API:
      sim = SwarmSimulatorTaichi(params)
      buf = sim.advance(state)
    """

    def __init__(self, params=None, formations: "FormationLibrary | None" = None, rng=None):
        ensure_ti()
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

        # ---------------- Taichi fields ----------------
        self.pos_f = ti.Vector.field(3, dtype=ti.f32, shape=self.n)
        self.scale_f = ti.field(dtype=ti.f32, shape=self.n)
        self.spin_f = ti.field(dtype=ti.f32, shape=self.n)

        # Targets are uploaded once; never written again
        self.assembled_f = ti.Vector.field(3, dtype=ti.f32, shape=self.n)
        self.dispersed_f = ti.Vector.field(3, dtype=ti.f32, shape=self.n)
        self.assembled_f.from_numpy(np.asarray(formations.assembled.points, dtype=np.float32))
        self.dispersed_f.from_numpy(np.asarray(formations.dispersed.points, dtype=np.float32))

        self.buffer = SwarmTransformBuffer.allocate(self.n)
        self.reset()

    # ========================= Public controls =========================

    def reset(self):
        self._reset_kernel(self.grab_scale)
        self.rotation = 0.0
        self.frame = 0
        self._sync(True)

    @property
    def positions(self) -> np.ndarray:
        return self.pos_f.to_numpy().astype(np.float64)

    def target_scale(self, is_grab: bool) -> float:
        return self.grab_scale if is_grab else self.release_scale

    def advance(self, state: GestureState, dt=None) -> SwarmTransformBuffer:
        is_grab = bool(state.is_grab)

        self.rotation += self.idle_rotation + float(state.hand_x) * self.hand_rotation_gain
        self._step_kernel(1 if is_grab else 0, self.lerp_factor, self.target_scale(is_grab), self.spin_step)
        self.frame += 1

        return self._sync(is_grab)

    # ========================= Kernels =========================

    @ti.kernel
    def _reset_kernel(self, scale: ti.f32):
        for i in range(self.n):
            self.pos_f[i] = self.assembled_f[i]
            self.scale_f[i] = scale
            self.spin_f[i] = 0.0

    @ti.kernel
    def _step_kernel(self, is_grab: ti.i32, alpha: ti.f32, scale: ti.f32, spin_step: ti.f32):
        for i in range(self.n):
            target = self.dispersed_f[i]
            if is_grab != 0:
                target = self.assembled_f[i]
            p = self.pos_f[i]
            self.pos_f[i] = p + (target - p) * alpha
            self.scale_f[i] = scale
            self.spin_f[i] += spin_step

    def _sync(self, is_grab: bool) -> SwarmTransformBuffer:
        return self.buffer.fill(
            self.pos_f.to_numpy(),
            self.scale_f.to_numpy(),
            self.spin_f.to_numpy(),
            self.rotation,
            is_grab,
        )
