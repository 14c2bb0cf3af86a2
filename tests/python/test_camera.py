from __future__ import annotations

import math

import pytest
from pygame.math import Vector3
from pytest import approx

from aviary.config import CameraConfig
from aviary.sim.core.camera import Camera
from aviary.sim.errors import ConfigurationError
from aviary.sim.geometry.shapes import Line


def _axis_camera() -> Camera:
    # looks along +Y from y=-100 with Z up
    return Camera(800, 600, position=Vector3(0.0, -100.0, 0.0), focus=Vector3(), up=Vector3(0.0, 0.0, 1.0))


def test_default_camera_projects_focus_to_viewport_center():
    camera = Camera.from_config(CameraConfig())

    point = camera.project(Vector3())

    assert point is not None
    assert point.x == approx(600.0, abs=0.5)
    assert point.y == approx(600.0, abs=0.5)


def test_axis_aligned_camera_center_and_orientation():
    camera = _axis_camera()

    center = camera.project(Vector3(0.0, 50.0, 0.0))
    right = camera.project(Vector3(10.0, 0.0, 0.0))
    above = camera.project(Vector3(0.0, 0.0, 10.0))

    assert center.x == approx(400.0, abs=0.5)
    assert center.y == approx(300.0, abs=0.5)
    assert right.x > 400.0
    assert right.y == approx(300.0, abs=0.5)
    # screen y grows downwards
    assert above.y < 300.0


def test_field_of_view_scales_projection():
    camera = _axis_camera()
    camera.set_field_of_view(90.0)

    point = camera.project(Vector3(10.0, 0.0, 0.0))

    # f = 1, depth 100, aspect 4/3
    assert point.x == approx((10.0 / (100.0 * 800.0 / 600.0) + 1.0) * 400.0)


@pytest.mark.parametrize(
    "point",
    [
        Vector3(0.0, -99.5, 0.0),
        Vector3(0.0, -99.0, 0.0),
        Vector3(0.0, -100.0, 0.0),
        Vector3(0.0, -200.0, 30.0),
    ],
)
def test_points_on_or_behind_near_plane_are_not_projected(point):
    assert _axis_camera().project(point) is None


def test_project_segments_drops_partially_hidden_lines():
    camera = _axis_camera()
    lines = [
        Line(Vector3(0.0, 0.0, 0.0), Vector3(10.0, 0.0, 0.0)),
        Line(Vector3(0.0, 0.0, 0.0), Vector3(0.0, -200.0, 0.0)),
    ]

    projected = camera.project_segments(lines)

    assert len(projected) == 1
    assert projected[0].start.x == approx(400.0, abs=0.5)


def test_degenerate_pose_projects_nothing():
    camera = _axis_camera()
    camera.retarget(camera.position)
    assert camera.project(Vector3(0.0, 10.0, 0.0)) is None

    camera = Camera(100, 100, position=Vector3(0.0, 0.0, 10.0), focus=Vector3(), up=Vector3(0.0, 0.0, 1.0))
    assert camera.view_basis() is None
    assert camera.project(Vector3()) is None


def test_reposition_takes_effect_on_next_projection():
    camera = _axis_camera()
    before = camera.project(Vector3(10.0, 0.0, 0.0))

    camera.reposition(Vector3(10.0, -100.0, 0.0))
    camera.retarget(Vector3(10.0, 0.0, 0.0))
    after = camera.project(Vector3(10.0, 0.0, 0.0))

    assert before.x > 400.0
    assert after.x == approx(400.0, abs=0.5)


def test_resize_viewport_updates_aspect_and_rejects_empty_sizes():
    camera = _axis_camera()

    camera.resize_viewport(1000, 500)
    assert camera.aspect_ratio == approx(2.0)
    assert camera.project(Vector3()).x == approx(500.0, abs=0.5)

    with pytest.raises(ConfigurationError):
        camera.resize_viewport(0, 10)
    with pytest.raises(ConfigurationError):
        Camera(10, -1)


@pytest.mark.parametrize("degrees", [0.0, -30.0, 180.0, 270.0, float("nan")])
def test_field_of_view_outside_open_range_is_rejected(degrees):
    camera = _axis_camera()

    with pytest.raises(ConfigurationError):
        camera.set_field_of_view(degrees)
    with pytest.raises(ConfigurationError):
        Camera(800, 600, fov_degrees=degrees)

    # the rejected value leaves the previous projection intact
    assert camera.fov_radians == approx(math.radians(60.0))
    assert camera.project(Vector3(0.0, 50.0, 0.0)).x == approx(400.0, abs=0.5)
