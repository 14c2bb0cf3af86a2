from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, Sequence

from pygame.math import Vector3

from ..types.speed import UNIT_SPEED, SpeedSpec
from ..utils.math3d import _clamp_length, _map_range, _safe_normalize

if TYPE_CHECKING:
    from ...rng import DeterministicRng
    from ..core.agent import Agent

_MIN_AVOID_DISTANCE = 0.001
_ARRIVE_BUFFER_FRAMES = 3.0
DEFAULT_WANDER_ADJUSTMENT = 2.0 * math.pi / 10.0


def steer(agent: Agent, direction: Vector3, multiplier: SpeedSpec = UNIT_SPEED) -> None:
    if direction.length_squared() == 0:
        return
    agent.apply_force(direction * multiplier.resolve(agent.physics.max_velocity))


def accumulate_steer(agent: Agent, direction: Vector3, multiplier: SpeedSpec = UNIT_SPEED) -> None:
    """Add a Reynolds steer (desired velocity minus current velocity) to the agent's aggregate steer."""
    if direction.length_squared() == 0:
        return
    desired = direction * multiplier.resolve(agent.physics.max_velocity)
    agent.aggregate_steer += desired - agent.velocity


def apply_aggregate_steer_force(agent: Agent) -> None:
    agent.apply_force(_clamp_length(agent.aggregate_steer, agent.physics.max_steer_force))
    agent.aggregate_steer = Vector3()


def seek(agent: Agent, target: Vector3, multiplier: SpeedSpec = UNIT_SPEED) -> None:
    steer(agent, target - agent.position, multiplier)


def arrive(agent: Agent, target: Vector3) -> None:
    """Seek `target` at max velocity, ramping the desired speed down inside the stopping radius."""
    props = agent.physics
    offset = target - agent.position
    distance = offset.length()
    direction = _safe_normalize(offset)

    max_accel = props.max_steer_force / props.mass
    if max_accel <= 0:
        return
    decel_radius = (props.max_velocity * props.max_velocity) / (2.0 * max_accel)
    decel_radius += _ARRIVE_BUFFER_FRAMES * props.max_velocity

    if distance < decel_radius:
        desired = direction * _map_range(distance, 0.0, decel_radius, 0.0, props.max_velocity)
    else:
        desired = direction * props.max_velocity
    agent.apply_force(_clamp_length(desired - agent.velocity, props.max_steer_force))


def avoid(
    agent: Agent,
    target: Vector3,
    desired_closest_distance: float,
    multiplier: SpeedSpec = UNIT_SPEED,
) -> None:
    position = agent.position
    distance = position.distance_to(target)
    if distance > desired_closest_distance:
        return
    away = _safe_normalize(position - target)
    distance = max(distance, _MIN_AVOID_DISTANCE)
    closeness_ratio = distance / desired_closest_distance
    steer(agent, away / closeness_ratio, multiplier)


def separate(agent: Agent, neighbor_positions: Iterable[Vector3], multiplier: float = 0.5) -> None:
    position = agent.position
    desired = agent.physics.desired_separation
    total = Vector3()
    distance_sum = 0.0
    count = 0
    for other in neighbor_positions:
        distance = position.distance_to(other)
        if 0 < distance < desired:
            total += _safe_normalize(position - other) / distance
            distance_sum += distance
            count += 1
    if count == 0:
        return
    total /= count
    total *= distance_sum / count
    steer(agent, total, SpeedSpec.fixed(multiplier))


def align(agent: Agent, neighbor_velocities: Iterable[Vector3], multiplier: float = 5.0) -> None:
    total = Vector3()
    count = 0
    for velocity in neighbor_velocities:
        total += velocity
        count += 1
    if count == 0:
        return
    steer(agent, total / count, SpeedSpec.fixed(multiplier))


def cohere(agent: Agent, neighbor_positions: Iterable[Vector3], multiplier: float = 5.0) -> None:
    total = Vector3()
    count = 0
    for position in neighbor_positions:
        total += position
        count += 1
    if count == 0:
        return
    seek(agent, total / count, SpeedSpec.fixed(multiplier))


def flock(
    agent: Agent,
    neighbor_positions: Iterable[Vector3],
    neighbor_velocities: Iterable[Vector3],
    separate_multiplier: float = 0.5,
    align_multiplier: float = 0.5,
    cohere_multiplier: float = 5.0,
) -> None:
    positions = list(neighbor_positions)
    separate(agent, positions, separate_multiplier)
    align(agent, neighbor_velocities, align_multiplier)
    cohere(agent, positions, cohere_multiplier)


def wander(
    agent: Agent,
    rng: DeterministicRng,
    radius: float = 50.0,
    forward_ratio: float = 0.9,
    max_adjustment: float = DEFAULT_WANDER_ADJUSTMENT,
) -> None:
    """Seek a point on a circle ahead of the agent, then drift that point's angle at random.

    The circle lies in the agent's heading plane (frame x and y) and is centred
    `radius * forward_ratio` along the velocity; a resting agent centres it on itself.
    """
    position = agent.position
    center = Vector3(position)
    if agent.velocity.length_squared() > 0:
        center += _safe_normalize(agent.velocity) * (radius * forward_ratio)
    angle = agent.wander_angle
    offset = agent.frame.x_axis() * math.cos(angle) + agent.frame.y_axis() * math.sin(angle)
    seek(agent, center + offset * radius, SpeedSpec.max_velocity())
    agent.wander_angle = angle + rng.next_range(-max_adjustment, max_adjustment)


def steer_to_within_bounds(agent: Agent, minimum: Sequence[float], maximum: Sequence[float]) -> None:
    """Steer back into the box [minimum, maximum] at max velocity; no force while inside it.

    Each axis outside the box has its velocity component replaced by the offset to the
    violated face, the other axes keep the current velocity.
    """
    position = agent.position
    desired = Vector3(agent.velocity)
    outside = False
    for axis in range(3):
        if position[axis] < minimum[axis]:
            desired[axis] = minimum[axis] - position[axis]
            outside = True
        elif position[axis] > maximum[axis]:
            desired[axis] = maximum[axis] - position[axis]
            outside = True
    if not outside:
        return
    seek(agent, position + desired, SpeedSpec.max_velocity())
