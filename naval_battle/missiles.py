"""
Missile catalog: damage footprints per missile kind.

A footprint is the set of grid cells a missile damages around its target.
Footprints depend only on (kind, target, map size), so they are memoised.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import FrozenSet, Tuple

from .geometry import Position


class MissileKind(Enum):
    """Missile variants and their relative damage offsets."""
    CROSS = "cross"
    SQUARE = "square"

    @property
    def offsets(self) -> Tuple[Tuple[int, int], ...]:
        return _OFFSETS[self]


_OFFSETS = {
    # Plus shape: centre and the four edge neighbours
    MissileKind.CROSS: ((0, 0), (1, 0), (0, 1), (-1, 0), (0, -1)),
    # 3x3 block
    MissileKind.SQUARE: tuple(
        (dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)
    ),
}


@lru_cache(maxsize=None)
def damage_area(kind: MissileKind, target: Position, map_size: int) -> FrozenSet[Position]:
    """
    Cells damaged by a missile of `kind` aimed at `target`.

    Args:
        kind: Missile variant
        target: Aim point
        map_size: Grid side length; cells outside the grid are dropped

    Returns:
        Frozen set of damaged cells
    """
    cells = (Position(target.x + dx, target.y + dy) for dx, dy in kind.offsets)
    return frozenset(cell for cell in cells if cell.in_bounds(map_size))
