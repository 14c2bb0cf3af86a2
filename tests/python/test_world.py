from __future__ import annotations

from dataclasses import replace

from pytest import approx

from aviary.config import RenderConfig, SimulationConfig, default_agent_physics
from aviary.sim.core.world import World


def run_steps(config: SimulationConfig, steps: int):
    world = World(config)
    history = []
    for tick in range(steps):
        metrics = world.step(tick)
        history.append(
            (
                metrics.population,
                metrics.spawned,
                metrics.expired,
                metrics.neighbor_checks,
                round(metrics.average_speed, 6),
                round(metrics.average_age, 6),
            )
        )
    positions = [tuple(round(c, 6) for c in agent.position) for agent in world.agents]
    return history, positions


def test_deterministic_steps(small_config):
    result_a = run_steps(small_config, 30)
    # recreate config to ensure RNG resets
    config_b = replace(small_config, agent=replace(small_config.agent))
    result_b = run_steps(config_b, 30)
    assert result_a == result_b


def test_reset_restores_the_seeded_population(small_config):
    world = World(small_config)
    initial = [tuple(agent.position) for agent in world.agents]
    for tick in range(5):
        world.step(tick)

    world.reset()

    assert [tuple(agent.position) for agent in world.agents] == initial
    assert [agent.id for agent in world.agents] == list(range(small_config.initial_population))


def test_expired_agents_are_replaced(small_config):
    config = replace(small_config, agent=replace(default_agent_physics(), life_expectancy=6))
    world = World(config)

    spawned_total = 0
    expired_total = 0
    for tick in range(12):
        metrics = world.step(tick)
        spawned_total += metrics.spawned
        expired_total += metrics.expired
        assert metrics.population == config.initial_population

    assert expired_total > 0
    assert spawned_total == expired_total
    assert len({agent.id for agent in world.agents}) == config.initial_population
    assert all(not agent.expired for agent in world.agents)


def test_population_dies_out_without_respawning(small_config):
    config = replace(
        small_config,
        respawn_expired=False,
        agent=replace(default_agent_physics(), life_expectancy=4),
    )
    world = World(config)

    for tick in range(5):
        metrics = world.step(tick)

    assert metrics.population == 0
    assert world.agents == []
    assert world.step(5).neighbor_checks == 0


def test_speeds_stay_within_limits(small_config):
    world = World(small_config)
    for tick in range(20):
        world.step(tick)

    limit = small_config.agent.max_velocity
    assert all(agent.speed <= limit + 1e-9 for agent in world.agents)


def test_snapshot_contains_metadata_agents_and_lines(small_config):
    config = replace(small_config, time_step=0.5, render=RenderConfig(draw_world_axes=True))
    world = World(config)
    world.step(0)

    snapshot = world.snapshot(1)

    assert snapshot.metadata.sim_dt == approx(0.5)
    assert snapshot.metadata.tick_rate == approx(2.0)
    assert snapshot.metadata.seed == config.seed
    assert snapshot.metrics.population == len(world.agents)
    assert snapshot.camera.fov_degrees == approx(60.0)
    assert snapshot.camera.position == [1000.0, 1000.0, 500.0]

    payload = snapshot.agents[0]
    for key in ["id", "x", "y", "z", "vx", "vy", "vz", "speed", "forward", "up", "age"]:
        assert key in payload
    assert payload["x"] == approx(world.agents[0].position.x)

    assert snapshot.lines
    assert all(len(line) == 4 for line in snapshot.lines)


def test_snapshot_before_first_step_has_metrics(small_config):
    world = World(small_config)

    snapshot = world.snapshot(0)

    assert snapshot.metrics.population == small_config.initial_population
    assert snapshot.metrics.neighbor_checks == 0


def test_wander_and_bounds_are_wired_into_the_step(small_config):
    flocking = replace(
        small_config.flocking,
        wander_enabled=True,
        bounds_min=(-20.0, -20.0, -20.0),
        bounds_max=(20.0, 20.0, 20.0),
    )
    config = replace(small_config, flocking=flocking)
    world_a = World(config)
    world_b = World(replace(config, agent=replace(config.agent)))

    for tick in range(5):
        world_a.step(tick)
        world_b.step(tick)

    assert all(agent.wander_angle != 0.0 for agent in world_a.agents)
    assert [agent.position for agent in world_a.agents] == [agent.position for agent in world_b.agents]
