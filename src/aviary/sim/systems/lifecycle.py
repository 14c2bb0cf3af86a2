from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Tuple

from pygame.math import Vector3

from ..core.agent import Agent

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ...rng import DeterministicRng


def is_expired(agent: Agent) -> bool:
    return agent.age >= agent.physics.life_expectancy


def partition_expired(agents: Iterable[Agent]) -> Tuple[List[Agent], List[Agent]]:
    """Split agents into (alive, expired), preserving order."""
    alive: List[Agent] = []
    expired: List[Agent] = []
    for agent in agents:
        (expired if is_expired(agent) else alive).append(agent)
    return alive, expired


def spawn_agent(agent_id: int, config: SimulationConfig, rng: DeterministicRng) -> Agent:
    offset = rng.next_unit_sphere() * (config.spawn_radius * rng.next_float() ** (1.0 / 3.0))
    position = Vector3(config.flocking.attractor) + offset
    heading = rng.next_unit_sphere()
    velocity = heading * config.initial_speed
    agent = Agent.create(agent_id, position, physics=config.agent, heading=heading, velocity=velocity)
    if config.agent.life_expectancy > 1:
        # stagger ages so a freshly seeded population does not expire in one tick
        agent.age = int(rng.next_range(0.0, config.agent.life_expectancy * 0.5))
    return agent


def replenish(
    agents: List[Agent],
    target_population: int,
    config: SimulationConfig,
    rng: DeterministicRng,
    next_id: int,
) -> Tuple[List[Agent], int]:
    """Spawn agents until `target_population` is reached. Returns (new agents, next free id)."""
    spawned: List[Agent] = []
    missing = min(target_population, config.max_population) - len(agents)
    for _ in range(max(0, missing)):
        spawned.append(spawn_agent(next_id, config, rng))
        next_id += 1
    return spawned, next_id
