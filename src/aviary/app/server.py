from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pygame.math import Vector3

from ..config import AppConfig, SimulationConfig
from ..logging_config import setup_logging
from ..sim.core.world import World
from ..sim.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


def _vector_or_none(value: Optional[Sequence[float]]) -> Optional[Vector3]:
    if value is None:
        return None
    if len(value) != 3:
        raise ConfigurationError(f"Expected three components, got {list(value)!r}")
    return Vector3(float(value[0]), float(value[1]), float(value[2]))


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, queue_limit: int = 120):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, queue_limit))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def toggle_pause(self) -> bool:
        self.running = not self.running
        logger.info("Simulation %s at tick %d", "resumed" if self.running else "paused", self.tick)
        return self.running

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def update_camera(
        self,
        position: Optional[Sequence[float]] = None,
        focus: Optional[Sequence[float]] = None,
        fov_degrees: Optional[float] = None,
        viewport: Optional[Sequence[float]] = None,
    ) -> None:
        new_position = _vector_or_none(position)
        new_focus = _vector_or_none(focus)
        async with self._lock:
            camera = self.world.camera
            if viewport is not None:
                if len(viewport) != 2:
                    raise ConfigurationError(f"Viewport needs width and height, got {list(viewport)!r}")
                camera.resize_viewport(float(viewport[0]), float(viewport[1]))
            if new_position is not None:
                camera.reposition(new_position)
            if new_focus is not None:
                camera.retarget(new_focus)
            if fov_degrees is not None:
                camera.set_field_of_view(float(fov_degrees))

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.step(self.tick)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "lines": snapshot.lines,
                "camera": asdict(snapshot.camera),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        async with self._lock:
            queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.debug("Dropping disconnected client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Aviary Flocking Simulation")
_app_config = AppConfig()
controller = SimulationController(
    _app_config.simulation,
    _app_config.broadcast_interval,
    queue_limit=_app_config.snapshot_queue_limit,
)


@app.on_event("startup")
async def _startup() -> None:
    setup_logging()
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.world.agents),
            "metrics": asdict(snapshot.metrics),
            "camera": asdict(snapshot.camera),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/toggle")
async def toggle_simulation() -> JSONResponse:
    running = await controller.toggle_pause()
    return JSONResponse({"running": running})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/camera")
async def set_camera(payload: dict) -> JSONResponse:
    try:
        await controller.update_camera(
            position=payload.get("position"),
            focus=payload.get("focus"),
            fov_degrees=payload.get("fov_degrees"),
            viewport=payload.get("viewport"),
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(asdict(controller.world.snapshot(controller.tick).camera))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
            elif payload.get("type") == "toggle":
                await controller.toggle_pause()
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
