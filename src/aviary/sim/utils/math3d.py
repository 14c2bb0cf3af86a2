from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from pygame.math import Vector3

WORLD_X = Vector3(1.0, 0.0, 0.0)
WORLD_Y = Vector3(0.0, 1.0, 0.0)
WORLD_Z = Vector3(0.0, 0.0, 1.0)


def _safe_normalize(vector: Vector3) -> Vector3:
    magnitude_sq = vector.length_squared()
    if magnitude_sq < 1e-18:
        return Vector3()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector3(vector.x * inv, vector.y * inv, vector.z * inv)


def _clamp_length(vector: Vector3, max_length: float) -> Vector3:
    if max_length <= 0:
        return Vector3()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return Vector3(vector)
    if magnitude_sq == 0:
        return Vector3()
    return vector.normalize() * max_length


def _map_range(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    if in_max == in_min:
        return out_min
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


def _angle_between(a: Vector3, b: Vector3) -> float:
    """Unsigned angle in radians between two non-zero vectors."""
    denom = a.length() * b.length()
    if denom < 1e-18:
        return 0.0
    cos_angle = max(-1.0, min(1.0, a.dot(b) / denom))
    return math.acos(cos_angle)


def _to_array(vector: Vector3 | Sequence[float]) -> np.ndarray:
    return np.array([float(vector[0]), float(vector[1]), float(vector[2])], dtype=float)


def _to_vector(array: np.ndarray) -> Vector3:
    return Vector3(float(array[0]), float(array[1]), float(array[2]))


def _rotation_matrix(angle: float, axis: Vector3) -> np.ndarray:
    """Rodrigues rotation matrix for a right-handed rotation of `angle` radians about `axis`."""
    u = _safe_normalize(axis)
    ux, uy, uz = u.x, u.y, u.z
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    one_minus_cos = 1.0 - cos_a
    return np.array(
        [
            [cos_a + ux * ux * one_minus_cos, ux * uy * one_minus_cos - uz * sin_a, ux * uz * one_minus_cos + uy * sin_a],
            [uy * ux * one_minus_cos + uz * sin_a, cos_a + uy * uy * one_minus_cos, uy * uz * one_minus_cos - ux * sin_a],
            [uz * ux * one_minus_cos - uy * sin_a, uz * uy * one_minus_cos + ux * sin_a, cos_a + uz * uz * one_minus_cos],
        ],
        dtype=float,
    )


def _is_finite(vector: Vector3) -> bool:
    return math.isfinite(vector.x) and math.isfinite(vector.y) and math.isfinite(vector.z)
