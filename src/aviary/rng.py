from __future__ import annotations

import math
import random

from pygame.math import Vector3


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def next_unit_sphere(self) -> Vector3:
        # uniform on the sphere: uniform z and azimuth
        z = self._random.uniform(-1.0, 1.0)
        azimuth = self._random.uniform(0.0, 2.0 * math.pi)
        ring = math.sqrt(max(0.0, 1.0 - z * z))
        return Vector3(ring * math.cos(azimuth), ring * math.sin(azimuth), z)


class LatticeNoise:
    """Smooth 3D value noise in [0, 1): random values on an integer lattice, blended with smoothstep.

    Instances are callables with the `noise3(x, y, z)` signature expected by WindSystem.
    """

    def __init__(self, seed: int, size: int = 256) -> None:
        if size <= 0 or size & (size - 1):
            raise ValueError(f"Lattice size must be a power of two, got {size}")
        rng = random.Random(seed)
        self._mask = size - 1
        self._values = [rng.random() for _ in range(size)]
        permutation = list(range(size))
        rng.shuffle(permutation)
        self._perm = permutation * 2

    def _lattice(self, ix: int, iy: int, iz: int) -> float:
        perm = self._perm
        mask = self._mask
        return self._values[perm[perm[perm[ix & mask] + (iy & mask)] + (iz & mask)]]

    def __call__(self, x: float, y: float, z: float) -> float:
        x0 = math.floor(x)
        y0 = math.floor(y)
        z0 = math.floor(z)
        tx = _smoothstep(x - x0)
        ty = _smoothstep(y - y0)
        tz = _smoothstep(z - z0)
        ix, iy, iz = int(x0), int(y0), int(z0)

        c000 = self._lattice(ix, iy, iz)
        c100 = self._lattice(ix + 1, iy, iz)
        c010 = self._lattice(ix, iy + 1, iz)
        c110 = self._lattice(ix + 1, iy + 1, iz)
        c001 = self._lattice(ix, iy, iz + 1)
        c101 = self._lattice(ix + 1, iy, iz + 1)
        c011 = self._lattice(ix, iy + 1, iz + 1)
        c111 = self._lattice(ix + 1, iy + 1, iz + 1)

        x00 = c000 + (c100 - c000) * tx
        x10 = c010 + (c110 - c010) * tx
        x01 = c001 + (c101 - c001) * tx
        x11 = c011 + (c111 - c011) * tx
        y0v = x00 + (x10 - x00) * ty
        y1v = x01 + (x11 - x01) * ty
        return y0v + (y1v - y0v) * tz


def _smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)
