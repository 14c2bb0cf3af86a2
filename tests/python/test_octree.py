from __future__ import annotations

import math

import pytest
from pygame.math import Vector3

from aviary.rng import DeterministicRng
from aviary.sim.core.agent import Agent
from aviary.sim.core.octree import Octree
from aviary.sim.errors import ConfigurationError


def _random_points(count: int, seed: int, spread: float = 100.0) -> list[Vector3]:
    rng = DeterministicRng(seed)
    points = [
        Vector3(rng.next_range(-spread, spread), rng.next_range(-spread, spread), rng.next_range(-spread, spread))
        for _ in range(count)
    ]
    # a few exact duplicates to stress subdivision
    points.extend(Vector3(points[i]) for i in range(0, count, 25))
    return points


def _brute_force(points: list[Vector3], center: Vector3, radius: float) -> set[int]:
    return {id(p) for p in points if p.distance_squared_to(center) <= radius * radius}


@pytest.mark.parametrize("capacity", [1, 4, 16])
def test_query_radius_matches_bruteforce(capacity):
    points = _random_points(200, seed=5)
    tree = Octree(points, capacity=capacity)

    centers = [points[0], points[17], points[150], Vector3(), Vector3(99.0, -99.0, 0.0)]
    for center in centers:
        for radius in (0.0, 1.0, 12.5, 40.0, 400.0):
            found = {id(p) for p in tree.query_radius(center, radius)}
            assert found == _brute_force(points, center, radius)


def test_every_point_is_indexed_once():
    points = _random_points(120, seed=9)
    tree = Octree(points, capacity=2)

    assert len(tree) == len(points)
    assert sorted(id(p) for p in tree.items()) == sorted(id(p) for p in points)


def test_insert_outside_bounds_expands_without_losing_items():
    points = _random_points(20, seed=3, spread=10.0)
    tree = Octree(points, capacity=4)
    far = [Vector3(500.0, -300.0, 40.0), Vector3(-1000.0, 0.0, 0.0)]

    for point in far:
        tree.insert(point)

    everything = points + far
    assert len(tree) == len(everything)
    assert {id(p) for p in tree.items()} == {id(p) for p in everything}
    assert tree.query_radius(Vector3(-1000.0, 0.0, 0.0), 1.0) == [far[1]]
    assert tree.root.contains(far[0]) and tree.root.contains(far[1])


def test_expand_to_fit_preserves_identity_set():
    points = _random_points(50, seed=21, spread=5.0)
    tree = Octree(points)
    before = {id(p) for p in tree.items()}
    half_before = tree.root.half_extent

    tree.expand_to_fit(Vector3(1e4, -1e4, 1e4))

    assert {id(p) for p in tree.items()} == before
    assert tree.root.half_extent > half_before
    assert tree.root.contains(Vector3(1e4, -1e4, 1e4))


def test_single_point_excludes_itself_but_finds_coincident_agents():
    agent = Agent.create(0, Vector3(1.0, 2.0, 3.0))
    twin = Agent.create(1, Vector3(1.0, 2.0, 3.0))
    tree = Octree([agent])

    assert tree.query_neighbors(agent, 0.0) == []
    found = tree.query_neighbors(twin, 0.0)
    assert len(found) == 1 and found[0] is agent


def test_coincident_points_beyond_capacity_are_all_kept():
    points = [Vector3(7.0, 7.0, 7.0) for _ in range(50)]
    tree = Octree(points, capacity=2)

    assert len(tree.query_radius(Vector3(7.0, 7.0, 7.0), 0.0)) == 50
    assert tree.depth() <= 24


def test_invalid_construction_and_queries():
    with pytest.raises(ConfigurationError):
        Octree([])
    with pytest.raises(ConfigurationError):
        Octree([Vector3()], capacity=0)
    with pytest.raises(ValueError):
        Octree([Vector3(math.nan, 0.0, 0.0)])

    tree = Octree.from_points([Vector3(), Vector3(1.0, 0.0, 0.0)])
    assert tree.query_radius(Vector3(), -1.0) == []
