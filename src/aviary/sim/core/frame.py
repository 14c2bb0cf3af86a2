from __future__ import annotations

import logging
from typing import Iterable, List

import numpy as np
from pygame.math import Vector3

from ..errors import InvalidBasisError
from ..utils.math3d import WORLD_X, WORLD_Y, _rotation_matrix, _safe_normalize, _to_array, _to_vector

logger = logging.getLogger(__name__)

_PARALLEL_DOT = 0.99
_DEGENERATE_LENGTH = 1e-6
_SINGULAR_DETERMINANT = 1e-12


def _basis_from_columns(x: Vector3, y: Vector3, z: Vector3) -> np.ndarray:
    return np.array(
        [
            [x.x, y.x, z.x],
            [x.y, y.y, z.y],
            [x.z, y.z, z.z],
        ],
        dtype=float,
    )


class CoordinateSystem:
    """A position plus an orthonormal basis whose columns are the local x, y and z axes in world space.

    Transforms that change the frame (rotate, translate, set_y_axis) mutate it in place and
    return it; queries (axis accessors, point transforms) always return new vectors.
    """

    __slots__ = ("_position", "_basis")

    def __init__(self, position: Vector3, basis: np.ndarray) -> None:
        self._position = Vector3(position)
        self._basis = np.array(basis, dtype=float).reshape(3, 3)

    @classmethod
    def from_origin_and_normal(cls, origin: Vector3, normal: Vector3) -> "CoordinateSystem":
        z = _safe_normalize(normal)
        # world Y is the reference "up" unless the normal is nearly parallel to it
        reference = WORLD_Y if abs(z.dot(WORLD_Y)) < _PARALLEL_DOT else WORLD_X
        x = _safe_normalize(reference.cross(z))
        y = _safe_normalize(z.cross(x))
        return cls(origin, _basis_from_columns(x, y, z))

    @classmethod
    def from_origin_normal_x_axis(cls, origin: Vector3, normal: Vector3, x_axis: Vector3) -> "CoordinateSystem":
        z = _safe_normalize(normal)
        x_hint = _safe_normalize(x_axis)
        y = z.cross(x_hint)
        if y.length() < _DEGENERATE_LENGTH:
            logger.debug("x axis hint %s is parallel to normal %s; using reference axis", x_axis, normal)
            return cls.from_origin_and_normal(origin, normal)
        y = _safe_normalize(y)
        corrected_x = _safe_normalize(y.cross(z))
        return cls(origin, _basis_from_columns(corrected_x, y, z))

    @classmethod
    def world(cls) -> "CoordinateSystem":
        return cls(Vector3(), np.identity(3))

    def copy(self) -> "CoordinateSystem":
        return CoordinateSystem(self._position, self._basis.copy())

    @property
    def position(self) -> Vector3:
        return Vector3(self._position)

    @property
    def basis(self) -> np.ndarray:
        return self._basis.copy()

    def x_axis(self, length: float = 1.0) -> Vector3:
        return _to_vector(self._basis[:, 0]) * length

    def y_axis(self, length: float = 1.0) -> Vector3:
        return _to_vector(self._basis[:, 1]) * length

    def z_axis(self, length: float = 1.0) -> Vector3:
        return _to_vector(self._basis[:, 2]) * length

    def rotate(self, angle: float, axis: Vector3 | None = None) -> "CoordinateSystem":
        """Rotate the basis by `angle` radians about `axis` (default: own z axis) in place."""
        rotation_axis = self.z_axis() if axis is None else axis
        if rotation_axis.length_squared() < 1e-18:
            return self
        self._basis = _rotation_matrix(angle, rotation_axis) @ self._basis
        return self

    def translate(self, delta: Vector3) -> "CoordinateSystem":
        self._position += delta
        return self

    def move_to(self, position: Vector3) -> "CoordinateSystem":
        self._position = Vector3(position)
        return self

    def set_y_axis(self, new_y: Vector3) -> "CoordinateSystem":
        """Point the y axis along `new_y` while keeping z, then re-orthogonalise x and y."""
        z = self.z_axis()
        x = new_y.cross(z)
        if x.length() < _DEGENERATE_LENGTH:
            x = WORLD_X.cross(z)
            if x.length() < _DEGENERATE_LENGTH:
                x = WORLD_Y.cross(z)
        x = _safe_normalize(x)
        y = _safe_normalize(z.cross(x))
        self._basis = _basis_from_columns(x, y, z)
        return self

    def transform_local_point_to_world(self, local_point: Vector3) -> Vector3:
        return _to_vector(self._basis @ _to_array(local_point)) + self._position

    def transform_local_points_to_world(self, local_points: Iterable[Vector3]) -> List[Vector3]:
        return [self.transform_local_point_to_world(point) for point in local_points]

    def transform_points_to(self, target: "CoordinateSystem", points: Iterable[Vector3]) -> List[Vector3]:
        return CoordinateSystem.transform_points_between(self, target, points)

    @staticmethod
    def transform_points_between(
        source: "CoordinateSystem", target: "CoordinateSystem", points: Iterable[Vector3]
    ) -> List[Vector3]:
        """Re-express points given relative to `source` as points relative to `target`.

        Each point is taken into source-local coordinates with the inverse source basis,
        then placed with the target basis and position. Raises InvalidBasisError if the
        source basis is singular.
        """
        if abs(np.linalg.det(source._basis)) < _SINGULAR_DETERMINANT:
            raise InvalidBasisError("Cannot transform points through a singular basis")
        source_inverse = np.linalg.inv(source._basis)
        source_origin = _to_array(source._position)
        target_origin = _to_array(target._position)
        transformed: List[Vector3] = []
        for point in points:
            local = source_inverse @ (_to_array(point) - source_origin)
            transformed.append(_to_vector(target._basis @ local + target_origin))
        return transformed

    def __repr__(self) -> str:
        return (
            f"CoordinateSystem(position={tuple(self._position)}, "
            f"x={tuple(self.x_axis())}, y={tuple(self.y_axis())}, z={tuple(self.z_axis())})"
        )
