import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from aviary.app import server
from aviary.app.server import SimulationController
from aviary.config import SimulationConfig
from aviary.sim.errors import ConfigurationError


class _RecordingClient:
    def __init__(self) -> None:
        self.messages: list[str] = []

    async def send_text(self, payload: str) -> None:
        self.messages.append(payload)


class _ClosedClient:
    async def send_text(self, payload: str) -> None:
        raise WebSocketDisconnect(code=1001)


def _controller() -> SimulationController:
    return SimulationController(SimulationConfig(initial_population=8, spawn_radius=40.0))


def test_snapshot_queue_ack_cleanup() -> None:
    controller = _controller()

    async def exercise() -> None:
        controller.tick = 1
        await controller._broadcast_snapshot()
        controller.tick = 2
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [2]

    asyncio.run(exercise())


def test_snapshot_queue_stays_bounded_without_clients() -> None:
    controller = SimulationController(SimulationConfig(initial_population=8, spawn_radius=40.0), queue_limit=5)

    async def exercise() -> None:
        for tick in range(200):
            controller.tick = tick
            await controller._broadcast_snapshot()

    asyncio.run(exercise())

    assert [item.tick for item in controller._snapshot_queue] == [195, 196, 197, 198, 199]


def test_late_client_receives_only_the_retained_snapshots() -> None:
    controller = SimulationController(SimulationConfig(initial_population=4, spawn_radius=40.0), queue_limit=3)
    client = _RecordingClient()

    async def exercise() -> None:
        for tick in range(10):
            controller.tick = tick
            await controller._broadcast_snapshot()
        await controller._send_pending_snapshots(client)

    asyncio.run(exercise())

    assert [json.loads(message)["tick"] for message in client.messages] == [7, 8, 9]


def test_broadcast_sends_snapshots_and_drops_closed_clients() -> None:
    controller = _controller()
    live = _RecordingClient()
    closed = _ClosedClient()
    controller.clients.update({live, closed})

    asyncio.run(controller._broadcast_snapshot())

    assert closed not in controller.clients
    assert live in controller.clients
    message = json.loads(live.messages[0])
    assert message["type"] == "snapshot"
    assert len(message["payload"]["agents"]) == 8
    assert message["payload"]["camera"]["viewport_width"] == 1200.0
    assert all(len(line) == 4 for line in message["payload"]["lines"])


def test_toggle_pause_flips_running_state() -> None:
    controller = _controller()

    assert asyncio.run(controller.toggle_pause()) is True
    assert controller.running
    assert asyncio.run(controller.toggle_pause()) is False
    assert not controller.running


def test_update_camera_changes_projection_inputs() -> None:
    controller = _controller()

    asyncio.run(
        controller.update_camera(position=[0, -500, 0], focus=[0, 0, 0], fov_degrees=45.0, viewport=[800, 400])
    )

    camera = controller.world.camera
    assert tuple(camera.position) == (0.0, -500.0, 0.0)
    assert camera.aspect_ratio == pytest.approx(2.0)
    assert controller.world.snapshot(0).camera.fov_degrees == pytest.approx(45.0)

    with pytest.raises(ConfigurationError):
        asyncio.run(controller.update_camera(viewport=[0, 10]))
    with pytest.raises(ConfigurationError):
        asyncio.run(controller.update_camera(focus=[1, 2]))
    with pytest.raises(ConfigurationError):
        asyncio.run(controller.update_camera(fov_degrees=0))

    # the loop keeps stepping and broadcasting after the rejected field of view
    controller.world.step(1)
    asyncio.run(controller._broadcast_snapshot())
    assert controller.world.snapshot(1).camera.fov_degrees == pytest.approx(45.0)


def test_reset_rewinds_the_tick() -> None:
    controller = _controller()
    controller.world.step(0)
    controller.tick = 1

    asyncio.run(controller.reset())

    assert controller.tick == 0
    assert all(agent.age < controller.config.agent.life_expectancy for agent in controller.world.agents)


def test_http_controls() -> None:
    client = TestClient(server.app)

    status = client.get("/api/status").json()
    assert "running" in status and "camera" in status

    before = server.controller.running
    assert client.post("/api/control/toggle").json() == {"running": not before}
    client.post("/api/control/toggle")

    assert client.post("/api/control/speed", json={"multiplier": 50}).json() == {"multiplier": 5.0}

    response = client.post("/api/camera", json={"fov_degrees": 30.0})
    assert response.status_code == 200
    assert response.json()["fov_degrees"] == pytest.approx(30.0)

    assert client.post("/api/camera", json={"viewport": [0, 0]}).status_code == 400
    assert client.post("/api/camera", json={"fov_degrees": 0}).status_code == 400
    assert client.get("/api/status").json()["camera"]["fov_degrees"] == pytest.approx(30.0)
