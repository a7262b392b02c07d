"""
Unit model: ships and the read-only views handed to planners.

A Ship owns its mutable battle state (health, ammo per missile kind,
position). Only the game state machine mutates ships; planners receive
frozen ShipView snapshots so a decision can never change the board.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional

from .config import ShipClassSpec, SimulationConfig
from .geometry import Position
from .missiles import MissileKind
from .strategy import StrategyParams


class Side(Enum):
    """The two opposing fleets."""
    A = "A"
    B = "B"

    @property
    def opponent(self) -> Side:
        return Side.B if self is Side.A else Side.A

    @property
    def label(self) -> str:
        return "Player 1" if self is Side.A else "Player 2"


def reachable_cells(position: Position, move_range: int, map_size: int) -> FrozenSet[Position]:
    """
    Cells within Manhattan distance `move_range` of `position`, on the grid.

    The current cell is always included when it is on the grid.
    """
    cells = set()
    for dx in range(-move_range, move_range + 1):
        span = move_range - abs(dx)
        for dy in range(-span, span + 1):
            cell = Position(position.x + dx, position.y + dy)
            if cell.in_bounds(map_size):
                cells.add(cell)
    return frozenset(cells)


# =============================================================================
# SHIP VIEW
# =============================================================================

@dataclass(frozen=True)
class ShipView:
    """
    Immutable snapshot of a ship used during decision making.

    Attributes:
        ship_id: Unique ship identifier (e.g. "A3")
        side: Owning side
        ship_class: Class name
        position: Cell at snapshot time
        health: Current hull points
        move_range: Manhattan movement radius
        ammo: Remaining missiles per kind (read-only)
        reachable: Cells the ship could occupy after its next move
    """
    ship_id: str
    side: Side
    ship_class: str
    position: Position
    health: int
    move_range: int
    ammo: Mapping[MissileKind, int]
    reachable: FrozenSet[Position]

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    @property
    def total_ammo(self) -> int:
        return sum(self.ammo.values())

    def has_ammo(self, kind: Optional[MissileKind] = None) -> bool:
        if kind is None:
            return self.total_ammo > 0
        return self.ammo.get(kind, 0) > 0

    def value(self, params: StrategyParams) -> float:
        """Worth of the ship: weighted health plus weighted missile count."""
        return self.health * params.health_weight + self.total_ammo * params.missile_weight


# =============================================================================
# SHIP
# =============================================================================

class Ship:
    """
    A single ship with mutable battle state.

    Ships are created once per match with their class stats and are never
    removed from their fleet; a ship with zero health is dead and inert.

    Attributes:
        ship_id: Unique identifier
        side: Owning side
        ship_class: Class name
        max_health: Starting hull points
        health: Current hull points
        move_range: Manhattan movement radius
        ammo: Remaining missiles per kind
        map_size: Grid size used to clip reachable moves
    """

    def __init__(
        self,
        ship_id: str,
        side: Side,
        spec: ShipClassSpec,
        map_size: int,
        position: Optional[Position] = None
    ) -> None:
        self.ship_id = ship_id
        self.side = side
        self.ship_class = spec.name
        self.max_health = spec.max_health
        self.health = spec.max_health
        self.move_range = spec.move_range
        self.ammo: Dict[MissileKind, int] = {
            MissileKind.CROSS: spec.cross_ammo,
            MissileKind.SQUARE: spec.square_ammo,
        }
        self.map_size = map_size
        self._position = position
        self._reachable: Optional[FrozenSet[Position]] = None

    def __repr__(self) -> str:
        return (
            f"Ship({self.ship_id}, {self.ship_class}, hp={self.health}/{self.max_health}, "
            f"pos={self._position})"
        )

    @property
    def position(self) -> Position:
        if self._position is None:
            raise RuntimeError(f"Ship {self.ship_id} has not been placed")
        return self._position

    @property
    def is_placed(self) -> bool:
        return self._position is not None

    @property
    def is_dead(self) -> bool:
        return self.health <= 0

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    @property
    def total_ammo(self) -> int:
        return sum(self.ammo.values())

    def has_ammo(self, kind: Optional[MissileKind] = None) -> bool:
        if kind is None:
            return self.total_ammo > 0
        return self.ammo[kind] > 0

    def set_position(self, position: Position) -> None:
        """Move the ship; the cached reachable set is dropped."""
        self._position = position
        self._reachable = None

    def reachable_moves(self) -> FrozenSet[Position]:
        """
        Cells within Manhattan move range of the current position.

        Returns:
            Frozen set of on-grid cells (empty for a dead ship)
        """
        if self.is_dead:
            return frozenset()
        if self._reachable is None:
            self._reachable = reachable_cells(self.position, self.move_range, self.map_size)
        return self._reachable

    def apply_damage(self, amount: int) -> int:
        """
        Remove hull points, never going below zero.

        Args:
            amount: Damage to apply

        Returns:
            Hull points actually removed
        """
        if amount < 0:
            raise ValueError("Damage must be non-negative")
        before = self.health
        self.health = max(0, self.health - amount)
        return before - self.health

    def consume_ammo(self, kind: MissileKind) -> bool:
        """
        Spend one missile of the given kind.

        Returns:
            True if a missile was available and has been spent
        """
        if self.ammo[kind] > 0:
            self.ammo[kind] -= 1
            return True
        return False

    def value(self, params: StrategyParams) -> float:
        """Worth of the ship: weighted health plus weighted missile count."""
        return self.health * params.health_weight + self.total_ammo * params.missile_weight

    def view(self) -> ShipView:
        """Frozen snapshot of the current state."""
        return ShipView(
            ship_id=self.ship_id,
            side=self.side,
            ship_class=self.ship_class,
            position=self.position,
            health=self.health,
            move_range=self.move_range,
            ammo=MappingProxyType(dict(self.ammo)),
            reachable=self.reachable_moves(),
        )


# =============================================================================
# FLEET FACTORY
# =============================================================================

def build_fleet(side: Side, config: SimulationConfig) -> List[Ship]:
    """
    Create the unplaced ships of one side from the configured composition.

    Ship ids are the side letter plus a 1-based index in fleet order.
    """
    composition = config.fleet_a if side is Side.A else config.fleet_b
    ships: List[Ship] = []
    for class_name, count in composition:
        spec = config.ship_class(class_name)
        for _ in range(count):
            ships.append(Ship(f"{side.value}{len(ships) + 1}", side, spec, config.map_size))
    return ships
