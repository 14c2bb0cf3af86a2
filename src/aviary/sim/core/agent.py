from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Deque, Iterable, Optional, Sequence

from pygame.math import Vector3

from ...config import AgentPhysics, default_agent_physics
from ..systems import physics as physics_system
from ..systems import steering
from ..types.speed import UNIT_SPEED, SpeedSpec
from ..utils.math3d import WORLD_X, WORLD_Z
from .frame import CoordinateSystem

if TYPE_CHECKING:
    from ...rng import DeterministicRng


@dataclass(slots=True, eq=False)
class Agent:
    id: int
    frame: CoordinateSystem
    physics: AgentPhysics = field(default_factory=default_agent_physics)
    velocity: Vector3 = field(default_factory=Vector3)
    acceleration: Vector3 = field(default_factory=Vector3)
    aggregate_steer: Vector3 = field(default_factory=Vector3)
    age: int = 0
    wander_angle: float = 0.0
    recent_positions: Deque[Vector3] = field(init=False)
    previous_forward: Optional[Vector3] = field(default=None, init=False)
    previous_up: Optional[Vector3] = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.recent_positions = deque(maxlen=max(1, self.physics.history_length))

    @classmethod
    def create(
        cls,
        agent_id: int,
        position: Vector3,
        physics: AgentPhysics | None = None,
        heading: Vector3 | None = None,
        up: Vector3 | None = None,
        velocity: Vector3 | None = None,
    ) -> "Agent":
        """Build an agent whose frame has x along `heading` and z along `up`.

        The physics values are copied so agents never share one AgentPhysics instance.
        """
        props = default_agent_physics() if physics is None else replace(physics)
        forward = Vector3(WORLD_X) if heading is None else Vector3(heading)
        up_axis = Vector3(WORLD_Z) if up is None else Vector3(up)
        frame = CoordinateSystem.from_origin_normal_x_axis(position, up_axis, forward)
        return cls(
            id=agent_id,
            frame=frame,
            physics=props,
            velocity=Vector3() if velocity is None else Vector3(velocity),
        )

    @property
    def position(self) -> Vector3:
        return self.frame.position

    @property
    def forward(self) -> Vector3:
        return self.frame.x_axis()

    @property
    def up(self) -> Vector3:
        return self.frame.z_axis()

    @property
    def speed(self) -> float:
        return self.velocity.length()

    @property
    def expired(self) -> bool:
        return self.age >= self.physics.life_expectancy

    def apply_force(self, force: Vector3) -> None:
        self.acceleration += force / self.physics.mass

    def apply_aggregate_steer_force(self) -> None:
        steering.apply_aggregate_steer_force(self)

    def update(self) -> "Agent":
        physics_system.integrate(self)
        return self

    def steer(self, direction: Vector3, multiplier: SpeedSpec = UNIT_SPEED) -> None:
        steering.steer(self, direction, multiplier)

    def accumulate_steer(self, direction: Vector3, multiplier: SpeedSpec = UNIT_SPEED) -> None:
        steering.accumulate_steer(self, direction, multiplier)

    def seek(self, target: Vector3, multiplier: SpeedSpec = UNIT_SPEED) -> None:
        steering.seek(self, target, multiplier)

    def arrive(self, target: Vector3) -> None:
        steering.arrive(self, target)

    def avoid(self, target: Vector3, desired_closest_distance: float = 100.0, multiplier: SpeedSpec = UNIT_SPEED) -> None:
        steering.avoid(self, target, desired_closest_distance, multiplier)

    def separate(self, neighbor_positions: Iterable[Vector3], multiplier: float = 0.5) -> None:
        steering.separate(self, neighbor_positions, multiplier)

    def align(self, neighbor_velocities: Iterable[Vector3], multiplier: float = 5.0) -> None:
        steering.align(self, neighbor_velocities, multiplier)

    def cohere(self, neighbor_positions: Iterable[Vector3], multiplier: float = 5.0) -> None:
        steering.cohere(self, neighbor_positions, multiplier)

    def flock(
        self,
        neighbor_positions: Iterable[Vector3],
        neighbor_velocities: Iterable[Vector3],
        separate_multiplier: float = 0.5,
        align_multiplier: float = 0.5,
        cohere_multiplier: float = 5.0,
    ) -> None:
        steering.flock(
            self,
            neighbor_positions,
            neighbor_velocities,
            separate_multiplier,
            align_multiplier,
            cohere_multiplier,
        )

    def wander(
        self,
        rng: DeterministicRng,
        radius: float = 50.0,
        forward_ratio: float = 0.9,
        max_adjustment: float = steering.DEFAULT_WANDER_ADJUSTMENT,
    ) -> None:
        steering.wander(self, rng, radius, forward_ratio, max_adjustment)

    def steer_to_within_bounds(self, minimum: Sequence[float], maximum: Sequence[float]) -> None:
        steering.steer_to_within_bounds(self, minimum, maximum)
