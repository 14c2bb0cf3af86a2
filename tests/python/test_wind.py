from __future__ import annotations

import math

import pytest
from pygame.math import Vector3
from pytest import approx

from aviary.rng import DeterministicRng, LatticeNoise
from aviary.sim.systems.wind import WindSystem
from aviary.sim.types.speed import SpeedMode, SpeedSpec


def test_flat_noise_produces_no_wind():
    wind = WindSystem(lambda x, y, z: 0.5)

    assert wind.force_at(Vector3(10.0, 20.0, 30.0), 3.0) == Vector3()


def test_curl_of_linear_noise():
    wind = WindSystem(lambda x, y, z: y)

    curl = wind.curl_at(Vector3(1.0, 2.0, 3.0))
    force = wind.force_at(Vector3(1.0, 2.0, 3.0), 2.0)

    assert curl.x == approx(1.0, abs=1e-6)
    assert curl.y == approx(0.0, abs=1e-6)
    assert curl.z == approx(-1.0, abs=1e-6)
    assert force.length() == approx(2.0)
    assert force.x == approx(math.sqrt(2.0), abs=1e-6)


def test_advance_moves_the_time_coordinate():
    samples = []
    wind = WindSystem(lambda x, y, z: samples.append((x, y, z)) or 0.0, noise_scale=1.0, time_scale=0.5)

    wind.curl_at(Vector3())
    first = samples[0]
    samples.clear()
    wind.advance(2)
    wind.curl_at(Vector3())

    assert wind.frame == 2
    assert samples[0][0] == approx(first[0] + 1.0)


def test_lattice_noise_is_smooth_and_seeded():
    noise_a = LatticeNoise(7)
    noise_b = LatticeNoise(7)

    assert noise_a(1.25, 2.5, -3.75) == noise_b(1.25, 2.5, -3.75)
    assert 0.0 <= noise_a(0.3, 0.7, 0.1) < 1.0
    assert noise_a(4.0, 5.0, 6.0) == approx(noise_a(4.0001, 5.0, 6.0), abs=1e-3)

    with pytest.raises(ValueError):
        LatticeNoise(7, size=100)

    wind = WindSystem(noise_a, noise_scale=0.05)
    force = wind.force_at(Vector3(12.0, -7.0, 3.0), 1.5)
    assert force.length() == approx(0.0) or force.length() == approx(1.5)


def test_rng_is_reproducible_after_reset():
    rng = DeterministicRng(99)
    first = [rng.next_float() for _ in range(3)]
    direction = rng.next_unit_sphere()

    rng.reset()

    assert [rng.next_float() for _ in range(3)] == first
    assert direction.length() == approx(1.0)
    assert 0 <= rng.next_int(5) < 5


def test_speed_spec_resolution():
    assert SpeedSpec.fixed(2.5).resolve(10.0) == 2.5
    assert SpeedSpec.max_velocity().resolve(10.0) == 10.0
    assert SpeedSpec.max_velocity().mode is SpeedMode.MAX_VELOCITY
    assert SpeedSpec() == SpeedSpec.fixed(1.0)
