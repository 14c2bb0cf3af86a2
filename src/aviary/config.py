from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass(slots=True)
class AgentPhysics:
    """Physical limits of one agent. Every field is required; use default_agent_physics() for the stock values."""

    mass: float
    max_velocity: float
    max_steer_force: float
    max_pitch_adjustment: float
    friction_coefficient: Optional[float]
    desired_separation: float
    life_expectancy: int
    history_length: int


def default_agent_physics() -> AgentPhysics:
    """A fresh AgentPhysics with the stock values; each call returns an independent instance."""
    return AgentPhysics(
        mass=10.0,
        max_velocity=10.0,
        max_steer_force=10.0,
        max_pitch_adjustment=math.pi / 36.0,
        friction_coefficient=None,
        desired_separation=40.0,
        life_expectancy=10_000,
        history_length=20,
    )


@dataclass
class CameraConfig:
    viewport_width: float = 1200.0
    viewport_height: float = 1200.0
    position: tuple[float, float, float] = (1000.0, 1000.0, 500.0)
    focus: tuple[float, float, float] = (0.0, 0.0, 0.0)
    up: tuple[float, float, float] = (0.0, 0.0, 1.0)
    fov_degrees: float = 60.0
    near_plane: float = 1.0


@dataclass
class FlockingConfig:
    neighbor_distance: float = 60.0
    separation_weight: float = 2.0
    alignment_weight: float = 0.5
    cohesion_weight: float = 0.05
    attractor: tuple[float, float, float] = (0.0, 0.0, 0.0)
    attractor_weight: float = 0.002
    # None lets every agent feel the attractor
    attractor_awareness: Optional[float] = None
    wander_enabled: bool = False
    wander_radius: float = 50.0
    wander_forward_ratio: float = 0.9
    wander_max_adjustment: float = 2.0 * math.pi / 10.0
    # both corners are needed to keep agents inside a box
    bounds_min: Optional[tuple[float, float, float]] = None
    bounds_max: Optional[tuple[float, float, float]] = None


@dataclass
class WindConfig:
    enabled: bool = True
    multiplier: float = 0.5
    noise_scale: float = 0.01
    time_scale: float = 0.01


@dataclass
class RenderConfig:
    glyph_length: float = 20.0
    glyph_width: float = 10.0
    draw_trails: bool = True
    draw_world_axes: bool = False
    axis_length: float = 100.0


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    initial_population: int = 150
    max_population: int = 300
    spawn_radius: float = 200.0
    initial_speed: float = 2.0
    respawn_expired: bool = True
    octree_capacity: int = 4
    seed: int = 42
    config_version: str = "v1"
    agent: AgentPhysics = field(default_factory=default_agent_physics)
    flocking: FlockingConfig = field(default_factory=FlockingConfig)
    wind: WindConfig = field(default_factory=WindConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2
    # oldest unacknowledged snapshots are dropped past this many
    snapshot_queue_limit: int = 120


def load_config(raw: dict) -> SimulationConfig:
    def _triple(
        value: tuple[float, ...] | list[float] | None,
        default: Optional[tuple[float, float, float]],
    ) -> Optional[tuple[float, float, float]]:
        if isinstance(value, (tuple, list)) and len(value) == 3:
            return (float(value[0]), float(value[1]), float(value[2]))
        return default

    agent_values = asdict(default_agent_physics())
    agent_values.update(raw.get("agent", {}))
    agent = AgentPhysics(**agent_values)

    flocking_raw = dict(raw.get("flocking", {}))
    default_flocking = FlockingConfig()
    flocking_raw["attractor"] = _triple(flocking_raw.get("attractor"), default_flocking.attractor)
    for key in ("bounds_min", "bounds_max"):
        if flocking_raw.get(key) is not None:
            flocking_raw[key] = _triple(flocking_raw[key], None)
            if flocking_raw[key] is None:
                raise ValueError(f"flocking.{key} needs three components")
    flocking = FlockingConfig(**flocking_raw)

    camera_raw = dict(raw.get("camera", {}))
    default_camera = CameraConfig()
    for key in ("position", "focus", "up"):
        camera_raw[key] = _triple(camera_raw.get(key), getattr(default_camera, key))
    camera = CameraConfig(**camera_raw)

    wind = WindConfig(**raw.get("wind", {}))
    render = RenderConfig(**raw.get("render", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"agent", "flocking", "camera", "wind", "render"}}
    return SimulationConfig(agent=agent, flocking=flocking, wind=wind, camera=camera, render=render, **sim_values)
