from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    lines: List[List[float]]
    camera: "SnapshotCamera"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotCamera:
    position: List[float]
    focus: List[float]
    fov_degrees: float
    viewport_width: float
    viewport_height: float


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
