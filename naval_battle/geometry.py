"""
Grid geometry for the naval tactics simulator.

This module implements the line tests used to decide who can hit whom:
- Integer grid positions with a configurable distance metric
- Rays from a shooter through a target cell, with point projection
  returning (perpendicular distance, ray parameter t)
- Blocking tests (a point strictly between origin and destination)
- A 4-connected integer grid walk for exact line-of-sight checks

Everything here is pure: no state, no randomness.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Collection, Iterator, Tuple


# =============================================================================
# CONSTANTS
# =============================================================================

# Tolerance for colinearity and ray parameter comparisons.
# Grid points are integers so exact colinear points project to ~0 distance.
GEOMETRY_EPSILON = 1e-6


# =============================================================================
# ENUMS
# =============================================================================

class DistanceMetric(Enum):
    """Distance metric used for scoring and separation checks."""
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"


# =============================================================================
# POSITION
# =============================================================================

@dataclass(frozen=True, order=True)
class Position:
    """
    Integer cell on the battle grid.

    Attributes:
        x: Column index (0 = side A's edge)
        y: Row index
    """
    x: int
    y: int

    def __str__(self) -> str:
        return f"({self.x},{self.y})"

    def __add__(self, other: Position) -> Position:
        return Position(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Position) -> Position:
        return Position(self.x - other.x, self.y - other.y)

    def manhattan_to(self, other: Position) -> int:
        """Manhattan (L1) distance to another cell."""
        return abs(self.x - other.x) + abs(self.y - other.y)

    def euclidean_to(self, other: Position) -> float:
        """Straight-line distance to another cell."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def distance_to(
        self,
        other: Position,
        metric: DistanceMetric = DistanceMetric.EUCLIDEAN
    ) -> float:
        """
        Distance to another cell under the given metric.

        Args:
            other: Target cell
            metric: Metric to apply

        Returns:
            Distance as a float
        """
        if metric is DistanceMetric.MANHATTAN:
            return float(self.manhattan_to(other))
        return self.euclidean_to(other)

    def in_bounds(self, map_size: int) -> bool:
        """Check whether the cell lies on a map_size x map_size grid."""
        return 0 <= self.x < map_size and 0 <= self.y < map_size


# =============================================================================
# RAY
# =============================================================================

@dataclass(frozen=True)
class Ray:
    """
    Line of fire from an origin through a destination.

    The ray parameter t is 0 at the origin and 1 at the destination;
    values above 1 lie beyond the destination.

    Attributes:
        origin: Start cell (the shooter)
        direction: Destination minus origin
    """
    origin: Position
    direction: Position

    @classmethod
    def between(cls, start: Position, end: Position) -> Ray:
        """Build the ray that starts at `start` and passes through `end`."""
        return cls(origin=start, direction=end - start)

    @property
    def destination(self) -> Position:
        return self.origin + self.direction

    @property
    def is_degenerate(self) -> bool:
        """True when origin and destination coincide."""
        return self.direction.x == 0 and self.direction.y == 0

    def project(self, point: Position) -> Tuple[float, float]:
        """
        Project a point onto the ray.

        Args:
            point: Cell to project

        Returns:
            (perpendicular distance from the ray's line, parameter t)
        """
        return distance_and_projection(self, point)

    def is_colinear(self, point: Position, epsilon: float = GEOMETRY_EPSILON) -> bool:
        distance, _ = self.project(point)
        return distance < epsilon

    def is_past_origin(self, point: Position, epsilon: float = GEOMETRY_EPSILON) -> bool:
        """Point lies on the ray's line ahead of the origin (t > epsilon)."""
        distance, t = self.project(point)
        return distance < epsilon and t > epsilon

    def is_between(self, point: Position, epsilon: float = GEOMETRY_EPSILON) -> bool:
        """Point lies on the segment strictly between origin and destination."""
        distance, t = self.project(point)
        return distance < epsilon and epsilon < t < 1.0


def distance_and_projection(ray: Ray, point: Position) -> Tuple[float, float]:
    """
    Perpendicular distance of a point from a ray and its ray parameter.

    For a degenerate ray (origin == destination) the parameter is 0 and the
    distance is the plain distance from the origin.

    Args:
        ray: Ray to project onto
        point: Cell to project

    Returns:
        Tuple of (distance, t)
    """
    dx = ray.direction.x
    dy = ray.direction.y
    px = point.x - ray.origin.x
    py = point.y - ray.origin.y

    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px, py), 0.0

    t = (px * dx + py * dy) / length_sq
    # |cross(d, p)| / |d| is the perpendicular distance
    distance = abs(dx * py - dy * px) / math.sqrt(length_sq)
    return distance, t


def is_blocking(
    start: Position,
    end: Position,
    point: Position,
    epsilon: float = GEOMETRY_EPSILON
) -> bool:
    """
    Check whether `point` sits strictly between `start` and `end`.

    Args:
        start: Shooter cell
        end: Target cell
        point: Candidate blocker
        epsilon: Tolerance

    Returns:
        True if point blocks the segment
    """
    return Ray.between(start, end).is_between(point, epsilon)


# =============================================================================
# GRID WALK
# =============================================================================

def grid_line(start: Position, end: Position) -> Iterator[Position]:
    """
    Walk the grid cells from start to end, one axis step at a time.

    Yields 1 + |dx| + |dy| cells, beginning with start and ending with end.
    Consecutive cells share an edge, so a ship cannot be slipped past
    diagonally.
    """
    x, y = start.x, start.y
    dx = abs(end.x - start.x)
    dy = abs(end.y - start.y)
    x_inc = 1 if end.x > start.x else -1
    y_inc = 1 if end.y > start.y else -1
    error = dx - dy
    dx *= 2
    dy *= 2

    for _ in range(1 + abs(end.x - start.x) + abs(end.y - start.y)):
        yield Position(x, y)
        if error > 0:
            x += x_inc
            error -= dy
        else:
            y += y_inc
            error += dx


def has_line_of_sight(
    start: Position,
    end: Position,
    occupied: Collection[Position]
) -> bool:
    """
    Exact integer line-of-sight test.

    Args:
        start: Observer cell (ignored if occupied)
        end: Target cell (may be occupied)
        occupied: Cells holding ships

    Returns:
        False if any occupied cell other than start and end lies on the walk
    """
    for cell in grid_line(start, end):
        if cell == start or cell == end:
            continue
        if cell in occupied:
            return False
    return True
