from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence

from pygame.math import Vector3

from ..errors import ConfigurationError
from ..utils.math3d import _is_finite

logger = logging.getLogger(__name__)

_BOUNDS_PADDING = 1.1
_MIN_HALF_EXTENT = 1.0
_MAX_DEPTH = 24


def _item_position(item: Any) -> Vector3:
    if isinstance(item, Vector3):
        return item
    return item.position


class OctreeNode:
    __slots__ = ("center", "half_extent", "capacity", "depth", "items", "positions", "children")

    def __init__(self, center: Vector3, half_extent: float, capacity: int = 4, depth: int = 0) -> None:
        self.center = Vector3(center)
        self.half_extent = half_extent
        self.capacity = capacity
        self.depth = depth
        self.items: List[Any] = []
        self.positions: List[Vector3] = []
        self.children: Optional[List["OctreeNode"]] = None

    def contains(self, point: Vector3) -> bool:
        c = self.center
        h = self.half_extent
        return (
            c.x - h <= point.x < c.x + h
            and c.y - h <= point.y < c.y + h
            and c.z - h <= point.z < c.z + h
        )

    def insert(self, item: Any, position: Vector3) -> bool:
        if not self.contains(position):
            return False

        if len(self.items) < self.capacity or self.depth >= _MAX_DEPTH:
            self.items.append(item)
            self.positions.append(position)
            return True

        if self.children is None:
            self.subdivide()

        for child in self.children:
            if child.insert(item, position):
                return True

        # Floating point rounding can leave a point on a seam that no child claims; keep it here.
        self.items.append(item)
        self.positions.append(position)
        return True

    def subdivide(self) -> None:
        quarter = self.half_extent / 2.0
        cx, cy, cz = self.center.x, self.center.y, self.center.z
        self.children = [
            OctreeNode(
                Vector3(cx + dx * quarter, cy + dy * quarter, cz + dz * quarter),
                quarter,
                self.capacity,
                self.depth + 1,
            )
            for dx in (-1, 1)
            for dy in (-1, 1)
            for dz in (-1, 1)
        ]

    def intersects_sphere(self, center: Vector3, radius: float) -> bool:
        dist_sq = 0.0
        h = self.half_extent
        for value, box_center in ((center.x, self.center.x), (center.y, self.center.y), (center.z, self.center.z)):
            low = box_center - h
            high = box_center + h
            if value < low:
                dist_sq += (value - low) ** 2
            elif value > high:
                dist_sq += (value - high) ** 2
        return dist_sq <= radius * radius

    def query_radius(self, center: Vector3, radius_sq: float, radius: float, found: List[Any]) -> List[Any]:
        if not self.intersects_sphere(center, radius):
            return found
        for item, position in zip(self.items, self.positions):
            if position.distance_squared_to(center) <= radius_sq:
                found.append(item)
        if self.children is not None:
            for child in self.children:
                child.query_radius(center, radius_sq, radius, found)
        return found

    def walk(self) -> Iterator[tuple[Any, Vector3]]:
        yield from zip(self.items, self.positions)
        if self.children is not None:
            for child in self.children:
                yield from child.walk()

    def max_depth(self) -> int:
        if self.children is None:
            return self.depth
        return max(child.max_depth() for child in self.children)


class Octree:
    """Axis-aligned octree over items with a 3D position.

    Items may be bare Vector3 points or any object exposing `.position`; positions are
    read once at insertion, so the tree is a snapshot and must be rebuilt after items move.
    """

    def __init__(
        self,
        items: Sequence[Any],
        capacity: int = 4,
        position_of: Callable[[Any], Vector3] = _item_position,
    ) -> None:
        if not items:
            raise ConfigurationError("Cannot construct an octree with no items")
        if capacity < 1:
            raise ConfigurationError(f"Octree capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._position_of = position_of
        self._count = 0

        positions = [Vector3(position_of(item)) for item in items]
        for position in positions:
            if not _is_finite(position):
                raise ValueError(f"Cannot index non-finite position {tuple(position)}")
        low = Vector3(positions[0])
        high = Vector3(positions[0])
        for position in positions:
            low.x = min(low.x, position.x)
            low.y = min(low.y, position.y)
            low.z = min(low.z, position.z)
            high.x = max(high.x, position.x)
            high.y = max(high.y, position.y)
            high.z = max(high.z, position.z)

        center = (low + high) / 2.0
        size = max(high.x - low.x, high.y - low.y, high.z - low.z) * _BOUNDS_PADDING
        half_extent = max(size / 2.0, _MIN_HALF_EXTENT)
        self.root = OctreeNode(center, half_extent, capacity)

        for item, position in zip(items, positions):
            self._insert_at(item, position)

    def __len__(self) -> int:
        return self._count

    def items(self) -> List[Any]:
        return [item for item, _ in self.root.walk()]

    def depth(self) -> int:
        return self.root.max_depth()

    def insert(self, item: Any) -> bool:
        return self._insert_at(item, Vector3(self._position_of(item)))

    def _insert_at(self, item: Any, position: Vector3) -> bool:
        if not self.root.contains(position):
            self.expand_to_fit(position)
        inserted = self.root.insert(item, position)
        if inserted:
            self._count += 1
        return inserted

    def expand_to_fit(self, point: Vector3) -> None:
        """Grow the root by doubling until it contains `point`, keeping every indexed item."""
        if not _is_finite(point):
            raise ValueError(f"Cannot expand octree to non-finite point {tuple(point)}")
        while not self.root.contains(point):
            old_root = self.root
            old_center = old_root.center
            half = old_root.half_extent
            new_center = Vector3(
                old_center.x + (half if point.x >= old_center.x else -half),
                old_center.y + (half if point.y >= old_center.y else -half),
                old_center.z + (half if point.z >= old_center.z else -half),
            )
            self.root = OctreeNode(new_center, half * 2.0, self.capacity)
            self.root.subdivide()
            for item, position in list(old_root.walk()):
                self.root.insert(item, position)
            logger.debug("Octree root expanded to half extent %.3f around %s", self.root.half_extent, new_center)

    def query_radius(self, center: Vector3, radius: float, exclude: Any = None) -> List[Any]:
        if radius < 0:
            return []
        found = self.root.query_radius(Vector3(center), radius * radius, radius, [])
        if exclude is not None:
            found = [item for item in found if item is not exclude]
        return found

    def query_neighbors(self, target: Any, radius: float) -> List[Any]:
        """Items within `radius` of `target`; an indexed target is excluded by identity."""
        if isinstance(target, Vector3):
            return self.query_radius(target, radius)
        return self.query_radius(self._position_of(target), radius, exclude=target)

    @classmethod
    def from_points(cls, points: Iterable[Vector3], capacity: int = 4) -> "Octree":
        return cls(list(points), capacity=capacity)
