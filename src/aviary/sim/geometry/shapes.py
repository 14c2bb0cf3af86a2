from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from pygame.math import Vector2, Vector3

from ..core.frame import CoordinateSystem
from ..errors import ConfigurationError

MIN_RENDER_SEGMENTS = 8


@dataclass(slots=True)
class Line:
    start: Vector3
    end: Vector3

    def length(self) -> float:
        return self.start.distance_to(self.end)


@dataclass(slots=True)
class ScreenLine:
    start: Vector2
    end: Vector2


class Circle:
    def __init__(self, center: Vector3, radius: float, normal: Vector3, render_segments: int = 16) -> None:
        self.center = Vector3(center)
        self.radius = radius
        self.normal = Vector3(normal)
        self._render_segments = MIN_RENDER_SEGMENTS
        self.render_segments = render_segments

    @property
    def render_segments(self) -> int:
        return self._render_segments

    @render_segments.setter
    def render_segments(self, segments: int) -> None:
        if segments < MIN_RENDER_SEGMENTS:
            raise ConfigurationError(f"A circle must be rendered with at least {MIN_RENDER_SEGMENTS} segments")
        self._render_segments = int(segments)

    def frame(self) -> CoordinateSystem:
        return CoordinateSystem.from_origin_and_normal(self.center, self.normal)

    def points(self) -> List[Vector3]:
        step = 2.0 * math.pi / self._render_segments
        local_points = [
            Vector3(math.cos(i * step) * self.radius, math.sin(i * step) * self.radius, 0.0)
            for i in range(self._render_segments)
        ]
        return self.frame().transform_local_points_to_world(local_points)

    def segments(self) -> List[Line]:
        points = self.points()
        return [Line(points[i], points[(i + 1) % len(points)]) for i in range(len(points))]
