from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, List, Optional

from pygame.math import Vector2, Vector3

from ..errors import ConfigurationError
from ..geometry.shapes import Line, ScreenLine

if TYPE_CHECKING:
    from ...config import CameraConfig


class Camera:
    """Perspective projector from world space to viewport pixels.

    The view basis is derived from position, focus and up hint on every call to
    `project`, so repositioning or retargeting takes effect immediately.
    """

    def __init__(
        self,
        viewport_width: float,
        viewport_height: float,
        position: Vector3 | None = None,
        focus: Vector3 | None = None,
        up: Vector3 | None = None,
        fov_degrees: float = 60.0,
        near: float = 1.0,
    ) -> None:
        self._position = Vector3(1000.0, 1000.0, 500.0) if position is None else Vector3(position)
        self._focus = Vector3() if focus is None else Vector3(focus)
        self._up = Vector3(0.0, 0.0, 1.0) if up is None else Vector3(up)
        self._fov = math.radians(60.0)
        self._near = near
        self.set_field_of_view(fov_degrees)
        self._viewport_width = 1.0
        self._viewport_height = 1.0
        self._aspect = 1.0
        self.resize_viewport(viewport_width, viewport_height)

    @classmethod
    def from_config(cls, config: CameraConfig) -> "Camera":
        return cls(
            config.viewport_width,
            config.viewport_height,
            position=Vector3(config.position),
            focus=Vector3(config.focus),
            up=Vector3(config.up),
            fov_degrees=config.fov_degrees,
            near=config.near_plane,
        )

    @property
    def position(self) -> Vector3:
        return Vector3(self._position)

    @property
    def focus(self) -> Vector3:
        return Vector3(self._focus)

    @property
    def up(self) -> Vector3:
        return Vector3(self._up)

    @property
    def fov_radians(self) -> float:
        return self._fov

    @property
    def near_plane(self) -> float:
        return self._near

    @property
    def aspect_ratio(self) -> float:
        return self._aspect

    @property
    def viewport_width(self) -> float:
        return self._viewport_width

    @property
    def viewport_height(self) -> float:
        return self._viewport_height

    def reposition(self, position: Vector3) -> None:
        self._position = Vector3(position)

    def retarget(self, focus: Vector3) -> None:
        self._focus = Vector3(focus)

    def set_field_of_view(self, degrees: float) -> None:
        if not 0.0 < degrees < 180.0:
            raise ConfigurationError(f"Field of view must be between 0 and 180 degrees, got {degrees}")
        self._fov = math.radians(degrees)

    def resize_viewport(self, width: float, height: float) -> None:
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Viewport must have a positive size, got {width}x{height}")
        self._viewport_width = width
        self._viewport_height = height
        self._aspect = width / height

    def view_basis(self) -> tuple[Vector3, Vector3, Vector3] | None:
        """Return (right, up, forward) for the current pose, or None when the pose is degenerate."""
        forward = self._focus - self._position
        if forward.length_squared() < 1e-18:
            return None
        forward.normalize_ip()
        right = forward.cross(self._up)
        if right.length_squared() < 1e-18:
            return None
        right.normalize_ip()
        cam_up = right.cross(forward)
        cam_up.normalize_ip()
        return right, cam_up, forward

    def project(self, point: Vector3) -> Optional[Vector2]:
        basis = self.view_basis()
        if basis is None:
            return None
        right, cam_up, forward = basis

        relative = Vector3(point) - self._position
        cam_x = relative.dot(right)
        cam_y = relative.dot(cam_up)
        cam_z = relative.dot(forward)

        # behind the camera or on the near plane
        if cam_z <= self._near:
            return None

        f = 1.0 / math.tan(self._fov / 2.0)
        ndc_x = (cam_x * f) / (self._aspect * cam_z)
        ndc_y = (cam_y * f) / cam_z

        screen_x = (ndc_x + 1.0) * self._viewport_width / 2.0
        screen_y = (1.0 - ndc_y) * self._viewport_height / 2.0
        return Vector2(screen_x, screen_y)

    def project_segments(self, lines: Iterable[Line]) -> List[ScreenLine]:
        """Project both endpoints of every line; lines with an unprojectable endpoint are dropped, not clipped."""
        projected: List[ScreenLine] = []
        for line in lines:
            start = self.project(line.start)
            if start is None:
                continue
            end = self.project(line.end)
            if end is None:
                continue
            projected.append(ScreenLine(start, end))
        return projected
