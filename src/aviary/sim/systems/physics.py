from __future__ import annotations

from typing import TYPE_CHECKING, Deque, Optional

from pygame.math import Vector3

from ..utils.math3d import _angle_between, _clamp_length, _safe_normalize

if TYPE_CHECKING:
    from ..core.agent import Agent

_REST_SPEED = 1e-5
_DEGENERATE_LENGTH = 1e-6


def calculate_target_pitch(
    previous_forward: Optional[Vector3],
    previous_up: Optional[Vector3],
    current_forward: Vector3,
    current_up: Vector3,
) -> Vector3:
    """Up vector that carries the previous roll/bank through the turn from previous to current forward.

    The previous up is projected onto the turn plane and made perpendicular to the new
    forward direction. Without a usable turn (no history, unchanged heading, or a
    projection that vanishes) the current up is kept.
    """
    if previous_forward is None or previous_up is None:
        return Vector3(current_up)
    plane_normal = previous_forward.cross(current_forward)
    if plane_normal.length() < _DEGENERATE_LENGTH:
        return Vector3(current_up)
    plane_normal.normalize_ip()
    projected_up = previous_up - plane_normal * previous_up.dot(plane_normal)
    target = current_forward.cross(projected_up).cross(current_forward)
    if target.length() < _DEGENERATE_LENGTH:
        return Vector3(current_up)
    return target.normalize()


def record_position(history: Deque[Vector3], position: Vector3) -> None:
    """Push `position` to the front of the bounded history unless it repeats the newest entry."""
    if history and history[0] == position:
        return
    history.appendleft(Vector3(position))


def apply_friction(agent: Agent) -> None:
    coefficient = agent.physics.friction_coefficient
    if coefficient is None or agent.velocity.length_squared() == 0:
        return
    # never strong enough to reverse the velocity in one step
    magnitude = min(coefficient, agent.velocity.length() * agent.physics.mass)
    agent.apply_force(_safe_normalize(agent.velocity) * -magnitude)


def _track_orientation(agent: Agent) -> None:
    frame = agent.frame
    current_up = frame.z_axis()
    if agent.velocity.length_squared() > _REST_SPEED * _REST_SPEED:
        current_forward = _safe_normalize(agent.velocity)
    else:
        current_forward = frame.x_axis()

    target_up = calculate_target_pitch(agent.previous_forward, agent.previous_up, current_forward, current_up)
    angle = _angle_between(current_up, target_up)
    if angle > 1e-9:
        axis = current_up.cross(target_up)
        if axis.length() > _DEGENERATE_LENGTH:
            frame.rotate(min(angle, agent.physics.max_pitch_adjustment), axis)

    if agent.velocity.length_squared() > _REST_SPEED * _REST_SPEED:
        # keep z, swing x onto the heading
        frame.set_y_axis(frame.z_axis().cross(current_forward))

    agent.previous_forward = current_forward
    agent.previous_up = frame.z_axis()


def integrate(agent: Agent) -> None:
    props = agent.physics
    apply_friction(agent)

    agent.acceleration = _clamp_length(agent.acceleration, props.max_steer_force)
    agent.velocity = _clamp_length(agent.velocity + agent.acceleration, props.max_velocity)

    record_position(agent.recent_positions, agent.frame.position)
    agent.frame.translate(agent.velocity)
    _track_orientation(agent)

    agent.acceleration = Vector3()
    if agent.velocity.length() < _REST_SPEED:
        agent.velocity = Vector3()
    agent.age += 1
