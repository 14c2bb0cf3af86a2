from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..types.metrics import TickMetrics

if TYPE_CHECKING:
    from ..core.agent import Agent


def population_stats(agents: Sequence[Agent]) -> tuple[int, float, float]:
    population = len(agents)
    if population == 0:
        return 0, 0.0, 0.0
    speed_sum = 0.0
    age_sum = 0.0
    for agent in agents:
        speed_sum += agent.velocity.length()
        age_sum += agent.age
    return population, speed_sum / population, age_sum / population


def create_metrics(
    tick: int,
    spawned: int,
    expired: int,
    neighbor_checks: int,
    duration_ms: float,
    stats: tuple[int, float, float],
) -> TickMetrics:
    population, avg_speed, avg_age = stats
    return TickMetrics(
        tick=tick,
        population=population,
        spawned=spawned,
        expired=expired,
        neighbor_checks=neighbor_checks,
        average_speed=avg_speed,
        average_age=avg_age,
        tick_duration_ms=duration_ms,
    )
