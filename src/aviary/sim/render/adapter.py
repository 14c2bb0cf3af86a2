from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Sequence

from pygame.math import Vector3

from ..core.frame import CoordinateSystem
from ..geometry.shapes import Line, ScreenLine

if TYPE_CHECKING:
    from ..core.agent import Agent
    from ..core.camera import Camera


def frame_axes(frame: CoordinateSystem, length: float = 1.0) -> List[Line]:
    origin = frame.position
    return [
        Line(Vector3(origin), origin + frame.x_axis(length)),
        Line(Vector3(origin), origin + frame.y_axis(length)),
        Line(Vector3(origin), origin + frame.z_axis(length)),
    ]


def world_axes(length: float) -> List[Line]:
    return frame_axes(CoordinateSystem.world(), length)


def polyline(points: Sequence[Vector3]) -> List[Line]:
    return [Line(Vector3(points[i]), Vector3(points[i + 1])) for i in range(len(points) - 1)]


class AgentRenderer:
    """Turns agents into drawable world-space lines and projects them through a camera.

    The agent glyph is a cross in the agent's local frame: a long bar along the
    heading (x) and a short bar across it (y).
    """

    def __init__(
        self,
        glyph_length: float = 20.0,
        glyph_width: float = 10.0,
        draw_trails: bool = True,
        axes_length: float | None = None,
    ) -> None:
        self.glyph_length = glyph_length
        self.glyph_width = glyph_width
        self.draw_trails = draw_trails
        self.axes_length = axes_length

    def glyph(self, agent: Agent) -> List[Line]:
        local_points = [
            Vector3(0.0, self.glyph_width, 0.0),
            Vector3(0.0, -self.glyph_width, 0.0),
            Vector3(self.glyph_length, 0.0, 0.0),
            Vector3(-self.glyph_length, 0.0, 0.0),
        ]
        points = agent.frame.transform_local_points_to_world(local_points)
        return [Line(points[0], points[1]), Line(points[2], points[3])]

    def trail(self, agent: Agent) -> List[Line]:
        return polyline([agent.position, *agent.recent_positions])

    def lines_for(self, agent: Agent) -> List[Line]:
        lines = self.glyph(agent)
        if self.draw_trails:
            lines.extend(self.trail(agent))
        if self.axes_length is not None:
            lines.extend(frame_axes(agent.frame, self.axes_length))
        return lines

    def project(self, agents: Iterable[Agent], camera: Camera) -> List[ScreenLine]:
        projected: List[ScreenLine] = []
        for agent in agents:
            projected.extend(camera.project_segments(self.lines_for(agent)))
        return projected
