# formations.py
"""
Target point sets the swarm morphs between.

- assembled: helical cone ("tree"), deterministic in (i, n)
- dispersed: explosion cloud, random direction * random magnitude

Both are built once per run and frozen; index i of every formation belongs
to particle i.
"""

from __future__ import annotations
from dataclasses import dataclass
import math
import numpy as np

from params import _pget

ASSEMBLED = "assembled"
DISPERSED = "dispersed"


def _freeze(a: np.ndarray) -> np.ndarray:
    a = np.ascontiguousarray(a, dtype=np.float32)
    a.flags.writeable = False
    return a


def _check_count(n) -> int:
    n = int(n)
    if n < 1:
        raise ValueError(f"particle count must be >= 1, got {n}")
    return n


@dataclass(frozen=True)
class Formation:
    name: str
    points: np.ndarray  # (N, 3) float32, read-only

    def __len__(self):
        return len(self.points)

    def __getitem__(self, i):
        return self.points[i]

    def radii(self) -> np.ndarray:
        """Horizontal distance of each point from the vertical (y) axis."""
        return np.hypot(self.points[:, 0], self.points[:, 2])

    def magnitudes(self) -> np.ndarray:
        return np.linalg.norm(self.points, axis=1)


def build_assembled(n: int, turns: float = 16.0, radius: float = 2.5, height: float = 7.0) -> Formation:
    n = _check_count(n)
    ratio = np.arange(n, dtype=np.float64) / n
    angle = ratio * math.pi * turns
    r = (1.0 - ratio) * radius
    pts = np.stack([
        np.cos(angle) * r,
        ratio * height - height * 0.5,
        np.sin(angle) * r,
    ], axis=1)
    return Formation(ASSEMBLED, _freeze(pts))


def build_dispersed(n: int, rng=None, radius: float = 12.0) -> Formation:
    n = _check_count(n)
    rng = rng if rng is not None else np.random.default_rng()

    # Uniform direction on the unit sphere: z uniform in [-1, 1), azimuth uniform
    u = rng.random(n) * 2.0 - 1.0
    phi = rng.random(n) * 2.0 * math.pi
    s = np.sqrt(1.0 - u * u)
    dirs = np.stack([s * np.cos(phi), u, s * np.sin(phi)], axis=1)

    mag = rng.random(n) * radius
    pts = dirs * mag[:, None]

    # float32 rounding must not push a point onto the radius itself
    pts = pts.astype(np.float32)
    norms = np.linalg.norm(pts, axis=1)
    over = norms >= radius
    if np.any(over):
        pts[over] *= (np.nextafter(np.float32(radius), np.float32(0.0)) / norms[over])[:, None]
    return Formation(DISPERSED, _freeze(pts))


class FormationLibrary:
    """Both formations for one swarm, built once at startup."""

    def __init__(self, assembled: Formation, dispersed: Formation):
        if len(assembled) != len(dispersed):
            raise ValueError(f"formation sizes differ: {len(assembled)} vs {len(dispersed)}")
        self.assembled = assembled
        self.dispersed = dispersed

    @classmethod
    def build(cls, n: int, params=None, rng=None) -> "FormationLibrary":
        assembled = build_assembled(
            n,
            turns=float(_pget(params, "tree_turns", 16.0)),
            radius=float(_pget(params, "tree_radius", 2.5)),
            height=float(_pget(params, "tree_height", 7.0)),
        )
        dispersed = build_dispersed(n, rng=rng, radius=float(_pget(params, "dispersed_radius", 12.0)))
        return cls(assembled, dispersed)

    def __len__(self):
        return len(self.assembled)

    def target(self, is_grab: bool) -> Formation:
        return self.assembled if is_grab else self.dispersed

    def get(self, name: str) -> Formation:
        if name == ASSEMBLED:
            return self.assembled
        if name == DISPERSED:
            return self.dispersed
        raise KeyError(name)
