from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector3

from ...config import SimulationConfig
from ...rng import DeterministicRng, LatticeNoise
from ..render.adapter import AgentRenderer, world_axes
from ..systems import lifecycle, metrics as metrics_system
from ..systems.wind import WindSystem
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotCamera, SnapshotMetadata
from ..types.speed import SpeedSpec
from .agent import Agent
from .camera import Camera
from .collection import AgentCollection

logger = logging.getLogger(__name__)

_NOISE_RNG_SALT = 0x5EED_CAFE_F00D_0001


def _derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


class World:
    """Simulation driver: owns the flock, camera and wind, and advances them one tick at a time.

    Everything it needs comes from the SimulationConfig passed in; there is no shared global state.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._noise = LatticeNoise(_derive_stream_seed(config.seed, _NOISE_RNG_SALT))
        self._wind = WindSystem(self._noise, config.wind.noise_scale, config.wind.time_scale)
        self._camera = Camera.from_config(config.camera)
        self._renderer = AgentRenderer(
            glyph_length=config.render.glyph_length,
            glyph_width=config.render.glyph_width,
            draw_trails=config.render.draw_trails,
        )
        self._collection = AgentCollection(capacity=config.octree_capacity)
        self._next_id = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def agents(self) -> List[Agent]:
        return self._collection.agents

    @property
    def collection(self) -> AgentCollection:
        return self._collection

    @property
    def camera(self) -> Camera:
        return self._camera

    @property
    def wind(self) -> WindSystem:
        return self._wind

    @property
    def renderer(self) -> AgentRenderer:
        return self._renderer

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._rng.reset()
        self._wind.frame = 0
        self._collection = AgentCollection(capacity=self._config.octree_capacity)
        self._next_id = 0
        self._metrics = None
        self._bootstrap_population()

    def _bootstrap_population(self) -> None:
        count = min(self._config.initial_population, self._config.max_population)
        spawned, self._next_id = lifecycle.replenish([], count, self._config, self._rng, self._next_id)
        self._collection.add(spawned, rebuild_index=False)
        logger.info("Seeded world with %d agents (seed=%d)", len(spawned), self._config.seed)

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config
        flocking = config.flocking
        collection = self._collection
        collection.reset_counters()

        collection.flock(
            flocking.separation_weight,
            flocking.alignment_weight,
            flocking.cohesion_weight,
            neighbor_distance=flocking.neighbor_distance,
        )
        if flocking.attractor_weight > 0.0:
            collection.seek(
                Vector3(flocking.attractor),
                SpeedSpec.fixed(flocking.attractor_weight),
                awareness_distance=flocking.attractor_awareness,
            )
        if flocking.wander_enabled:
            collection.wander(
                self._rng,
                flocking.wander_radius,
                flocking.wander_forward_ratio,
                flocking.wander_max_adjustment,
            )
        if flocking.bounds_min is not None and flocking.bounds_max is not None:
            collection.steer_to_within_bounds(flocking.bounds_min, flocking.bounds_max)
        if config.wind.enabled and config.wind.multiplier > 0.0:
            collection.apply_wind(self._wind, config.wind.multiplier)
        self._wind.advance()

        expired = collection.update()

        spawned: List[Agent] = []
        if config.respawn_expired and expired:
            spawned, self._next_id = lifecycle.replenish(
                collection.agents, config.initial_population, config, self._rng, self._next_id
            )
            for agent in spawned:
                agent.age = 0
            collection.add(spawned, rebuild_index=False)

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick,
            len(spawned),
            len(expired),
            collection.neighbor_checks,
            duration_ms,
            metrics_system.population_stats(collection.agents),
        )
        return self._metrics

    def project_lines(self) -> List[List[float]]:
        screen_lines = self._renderer.project(self._collection.agents, self._camera)
        if self._config.render.draw_world_axes:
            screen_lines.extend(self._camera.project_segments(world_axes(self._config.render.axis_length)))
        return [[line.start.x, line.start.y, line.end.x, line.end.y] for line in screen_lines]

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(
                tick, 0, 0, 0, 0.0, metrics_system.population_stats(self._collection.agents)
            )
        agents: List[Dict[str, Any]] = []
        for agent in self._collection.agents:
            position = agent.position
            velocity = agent.velocity
            forward = agent.forward
            up = agent.up
            agents.append(
                {
                    "id": agent.id,
                    "x": position.x,
                    "y": position.y,
                    "z": position.z,
                    "vx": velocity.x,
                    "vy": velocity.y,
                    "vz": velocity.z,
                    "speed": velocity.length(),
                    "forward": [forward.x, forward.y, forward.z],
                    "up": [up.x, up.y, up.z],
                    "age": agent.age,
                    "expired": agent.expired,
                }
            )
        camera = self._camera
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=agents,
            lines=self.project_lines(),
            camera=SnapshotCamera(
                position=list(camera.position),
                focus=list(camera.focus),
                fov_degrees=math.degrees(camera.fov_radians),
                viewport_width=camera.viewport_width,
                viewport_height=camera.viewport_height,
            ),
            metadata=SnapshotMetadata(
                sim_dt=self._config.time_step,
                tick_rate=1.0 / self._config.time_step if self._config.time_step > 0 else 0.0,
                seed=self._config.seed,
                config_version=self._config.config_version,
            ),
        )
