from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Union

from pygame.math import Vector3

from ..systems import lifecycle
from ..systems.steering import DEFAULT_WANDER_ADJUSTMENT
from ..types.speed import UNIT_SPEED, SpeedSpec
from .agent import Agent
from .octree import Octree

if TYPE_CHECKING:
    from ...rng import DeterministicRng
    from ..systems.wind import WindSystem

logger = logging.getLogger(__name__)

Targets = Union[Vector3, Sequence[Vector3]]


def _as_list(targets: Targets) -> List[Vector3]:
    if isinstance(targets, Vector3):
        return [targets]
    return list(targets)


class AgentCollection:
    """Owns a set of agents and a lazily rebuilt octree snapshot of their positions.

    The octree is dropped on every update(); the next neighbour or awareness query
    rebuilds it from the integrated positions.
    """

    def __init__(self, agents: Optional[Iterable[Agent]] = None, capacity: int = 4) -> None:
        self.agents: List[Agent] = list(agents) if agents is not None else []
        self.capacity = capacity
        self._index: Optional[Octree] = None
        self.neighbor_checks = 0
        # depth of the most recently built octree, kept after invalidation
        self.index_depth = 0

    def __len__(self) -> int:
        return len(self.agents)

    def __iter__(self):
        return iter(self.agents)

    @property
    def index(self) -> Optional[Octree]:
        if self._index is None and self.agents:
            self.build_index()
        return self._index

    @property
    def index_is_stale(self) -> bool:
        return self._index is None

    def add(self, agents: Union[Agent, Iterable[Agent]], rebuild_index: bool = True) -> "AgentCollection":
        # When adding agents one at a time in a loop, pass rebuild_index=False and call build_index() once.
        if isinstance(agents, Agent):
            self.agents.append(agents)
        else:
            self.agents.extend(agents)
        if rebuild_index:
            self.build_index()
        else:
            self._index = None
        return self

    def build_index(self) -> None:
        if not self.agents:
            self._index = None
            return
        self._index = Octree(self.agents, capacity=self.capacity)
        self.index_depth = self._index.depth()
        logger.debug("Rebuilt octree over %d agents (depth %d)", len(self.agents), self.index_depth)

    def invalidate_index(self) -> None:
        self._index = None

    def update(self) -> List[Agent]:
        """Integrate every agent, drop the expired ones and invalidate the index. Returns the expired agents."""
        for agent in self.agents:
            agent.update()
        self.agents, expired = lifecycle.partition_expired(self.agents)
        self._index = None
        return expired

    def reset_counters(self) -> None:
        self.neighbor_checks = 0

    # Broadcast forces

    def apply_force(self, force: Vector3) -> None:
        for agent in self.agents:
            agent.apply_force(force)

    def apply_wind(self, wind: WindSystem, multiplier: float = 1.0) -> None:
        for agent in self.agents:
            agent.apply_force(wind.force_at(agent.position, multiplier))

    def apply_aggregate_steer_force(self) -> None:
        for agent in self.agents:
            agent.apply_aggregate_steer_force()

    def wander(
        self,
        rng: DeterministicRng,
        radius: float = 50.0,
        forward_ratio: float = 0.9,
        max_adjustment: float = DEFAULT_WANDER_ADJUSTMENT,
    ) -> None:
        for agent in self.agents:
            agent.wander(rng, radius, forward_ratio, max_adjustment)

    def steer_to_within_bounds(self, minimum: Sequence[float], maximum: Sequence[float]) -> None:
        for agent in self.agents:
            agent.steer_to_within_bounds(minimum, maximum)

    # Targeted behaviours

    def _agents_aware_of(self, target: Vector3, awareness_distance: Optional[float]) -> List[Agent]:
        if awareness_distance is None:
            return self.agents
        index = self.index
        if index is None:
            return []
        self.neighbor_checks += 1
        return index.query_radius(target, awareness_distance)

    def seek(
        self,
        targets: Targets,
        multiplier: SpeedSpec = UNIT_SPEED,
        awareness_distance: Optional[float] = None,
    ) -> None:
        for target in _as_list(targets):
            for agent in self._agents_aware_of(target, awareness_distance):
                agent.seek(target, multiplier)

    def steer(self, directions: Targets, multiplier: SpeedSpec = UNIT_SPEED) -> None:
        for direction in _as_list(directions):
            for agent in self.agents:
                agent.steer(direction, multiplier)

    def arrive(self, targets: Targets, awareness_distance: Optional[float] = None) -> None:
        for target in _as_list(targets):
            for agent in self._agents_aware_of(target, awareness_distance):
                agent.arrive(target)

    def avoid(
        self,
        targets: Targets,
        desired_closest_distance: float,
        multiplier: SpeedSpec = UNIT_SPEED,
        awareness_distance: Optional[float] = None,
    ) -> None:
        for target in _as_list(targets):
            for agent in self._agents_aware_of(target, awareness_distance):
                agent.avoid(target, desired_closest_distance, multiplier)

    # Neighbour behaviours

    def _neighborhoods(self, neighbor_distance: float) -> List[tuple[Agent, List[Agent]]]:
        index = self.index
        if index is None:
            return []
        neighborhoods = []
        for agent in self.agents:
            neighborhoods.append((agent, index.query_neighbors(agent, neighbor_distance)))
        self.neighbor_checks += len(neighborhoods)
        return neighborhoods

    def separate(self, multiplier: float = 0.5, neighbor_distance: float = 50.0) -> None:
        for agent, neighbors in self._neighborhoods(neighbor_distance):
            agent.separate([other.position for other in neighbors], multiplier)

    def align(self, multiplier: float = 5.0, neighbor_distance: float = 50.0) -> None:
        for agent, neighbors in self._neighborhoods(neighbor_distance):
            agent.align([Vector3(other.velocity) for other in neighbors], multiplier)

    def cohere(self, multiplier: float = 5.0, neighbor_distance: float = 50.0) -> None:
        for agent, neighbors in self._neighborhoods(neighbor_distance):
            agent.cohere([other.position for other in neighbors], multiplier)

    def flock(
        self,
        separate_multiplier: float = 0.5,
        align_multiplier: float = 0.5,
        cohere_multiplier: float = 5.0,
        neighbor_distance: float = 50.0,
    ) -> None:
        for agent, neighbors in self._neighborhoods(neighbor_distance):
            agent.flock(
                [other.position for other in neighbors],
                [Vector3(other.velocity) for other in neighbors],
                separate_multiplier,
                align_multiplier,
                cohere_multiplier,
            )
