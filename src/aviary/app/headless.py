from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..logging_config import setup_logging
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "spawned",
    "expired",
    "avg_speed",
    "avg_age",
    "neighbor_checks",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "spawned",
    "expired",
    "avg_speed",
    "avg_age",
    "neighbor_checks",
    "tick_ms",
    "spawned_per_agent",
    "expired_per_agent",
    "neighbor_checks_per_agent",
    "tick_ms_per_agent",
    "max_speed",
    "centroid_x",
    "centroid_y",
    "centroid_z",
    "spread",
    "distance_to_attractor",
    "octree_depth",
    "visible_segments",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.spawned,
        metrics.expired,
        f"{metrics.average_speed:.4f}",
        f"{metrics.average_age:.4f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        spawned_per_agent = 0.0
        expired_per_agent = 0.0
        neighbor_checks_per_agent = 0.0
        tick_ms_per_agent = 0.0
        max_speed = 0.0
        centroid = (0.0, 0.0, 0.0)
        spread = 0.0
        distance_to_attractor = 0.0
        octree_depth = 0
        visible_segments = 0
    else:
        spawned_per_agent = metrics.spawned / population
        expired_per_agent = metrics.expired / population
        neighbor_checks_per_agent = metrics.neighbor_checks / population
        tick_ms_per_agent = tick_ms / population

        sum_x = sum_y = sum_z = 0.0
        max_speed = 0.0
        positions = []
        for agent in world.agents:
            position = agent.position
            positions.append(position)
            sum_x += position.x
            sum_y += position.y
            sum_z += position.z
            speed = agent.speed
            if speed > max_speed:
                max_speed = speed
        centroid = (sum_x / population, sum_y / population, sum_z / population)

        spread_sq = 0.0
        for position in positions:
            dx = position.x - centroid[0]
            dy = position.y - centroid[1]
            dz = position.z - centroid[2]
            spread_sq += dx * dx + dy * dy + dz * dz
        spread = math.sqrt(spread_sq / population)

        ax, ay, az = world.config.flocking.attractor
        distance_to_attractor = math.sqrt(
            (centroid[0] - ax) ** 2 + (centroid[1] - ay) ** 2 + (centroid[2] - az) ** 2
        )
        octree_depth = world.collection.index_depth
        visible_segments = len(world.project_lines())

    return [
        metrics.tick,
        population,
        metrics.spawned,
        metrics.expired,
        f"{metrics.average_speed:.4f}",
        f"{metrics.average_age:.4f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
        f"{spawned_per_agent:.4f}",
        f"{expired_per_agent:.4f}",
        f"{neighbor_checks_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        f"{max_speed:.4f}",
        f"{centroid[0]:.4f}",
        f"{centroid[1]:.4f}",
        f"{centroid[2]:.4f}",
        f"{spread:.4f}",
        f"{distance_to_attractor:.4f}",
        octree_depth,
        visible_segments,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def _load_config(config_path: Optional[Path], seed: Optional[int]) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 1000,
    config_path: Optional[Path] = None,
) -> None:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = _load_config(config_path, seed)
    world = World(config)
    logger.info("Running %d headless steps (seed=%d, format=%s)", steps, config.seed, log_mode)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    population_series: list[float] = []
    speed_series: list[float] = []
    neighbor_checks_series: list[float] = []
    total_spawned = 0
    total_expired = 0

    try:
        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            total_spawned += metrics.spawned
            total_expired += metrics.expired

            if summary_path:
                tick_ms_series.append(tick_ms)
                population_series.append(float(metrics.population))
                speed_series.append(metrics.average_speed)
                neighbor_checks_series.append(float(metrics.neighbor_checks))

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info("Finished %d steps: %d spawned, %d expired", steps, total_spawned, total_expired)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "totals": {"spawned": total_spawned, "expired": total_expired},
            "tick_ms": _summary_stats(tick_ms_series),
            "population": _summary_stats(population_series),
            "average_speed": _summary_stats(speed_series),
            "neighbor_checks": _summary_stats(neighbor_checks_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "population": _summary_stats(population_series[tail_slice]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless aviary flocking simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with simulation settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=1000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
