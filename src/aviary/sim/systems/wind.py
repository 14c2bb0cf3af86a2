from __future__ import annotations

from typing import Callable

from pygame.math import Vector3

Noise3 = Callable[[float, float, float], float]

_EPS = 0.001
# offsets that decorrelate the three noise channels
_CHANNEL_2_OFFSET = (31.416, 47.853, 12.793)
_CHANNEL_3_OFFSET = (99.123, 65.432, 77.789)


class WindSystem:
    """Divergence-free wind field: the curl of a vector field built from three shifted noise samples."""

    def __init__(self, noise: Noise3, noise_scale: float = 0.01, time_scale: float = 0.01) -> None:
        self._noise = noise
        self.noise_scale = noise_scale
        self.time_scale = time_scale
        self.frame = 0

    def advance(self, frames: int = 1) -> None:
        self.frame += frames

    def _n1(self, x: float, y: float, z: float) -> float:
        return self._noise(x, y, z)

    def _n2(self, x: float, y: float, z: float) -> float:
        ox, oy, oz = _CHANNEL_2_OFFSET
        return self._noise(x + ox, y + oy, z + oz)

    def _n3(self, x: float, y: float, z: float) -> float:
        ox, oy, oz = _CHANNEL_3_OFFSET
        return self._noise(x + ox, y + oy, z + oz)

    def curl_at(self, position: Vector3) -> Vector3:
        t = self.frame * self.time_scale
        x = position.x * self.noise_scale + t
        y = position.y * self.noise_scale + t
        z = position.z * self.noise_scale + t
        e = _EPS
        two_e = 2.0 * e

        dn3_dy = (self._n3(x, y + e, z) - self._n3(x, y - e, z)) / two_e
        dn2_dz = (self._n2(x, y, z + e) - self._n2(x, y, z - e)) / two_e
        dn1_dz = (self._n1(x, y, z + e) - self._n1(x, y, z - e)) / two_e
        dn3_dx = (self._n3(x + e, y, z) - self._n3(x - e, y, z)) / two_e
        dn2_dx = (self._n2(x + e, y, z) - self._n2(x - e, y, z)) / two_e
        dn1_dy = (self._n1(x, y + e, z) - self._n1(x, y - e, z)) / two_e

        return Vector3(dn3_dy - dn2_dz, dn1_dz - dn3_dx, dn2_dx - dn1_dy)

    def force_at(self, position: Vector3, multiplier: float = 1.0) -> Vector3:
        curl = self.curl_at(position)
        if curl.length_squared() < 1e-6:
            return Vector3()
        return curl.normalize() * multiplier
