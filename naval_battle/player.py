"""
Players: a fleet, its strategy weights, and its planner.

A Player owns the ships of one side for the lifetime of a match. It knows
how to deploy them and how to turn frozen views of the board into orders,
but it never applies orders itself; the Game does that.
"""

from __future__ import annotations

import random
from typing import List, Optional, Sequence

from .config import SimulationConfig
from .geometry import Position
from .planner import AttackOrder, MoveChoice, TacticalPlanner
from .ships import Ship, ShipView, Side, build_fleet
from .strategy import StrategyParams


class PlacementError(RuntimeError):
    """No legal deployment cell was found: the grid is too small or the fleet too dense."""


class Player:
    """
    One side of a match.

    Attributes:
        side: Which fleet this player commands
        params: Strategy weights, fixed for the match
        config: Simulation settings
        ships: Fleet in deployment order
        planner: Decision engine using `params`
    """

    def __init__(
        self,
        side: Side,
        config: SimulationConfig,
        params: Optional[StrategyParams] = None,
        ships: Optional[List[Ship]] = None
    ) -> None:
        self.side = side
        self.config = config
        self.params = params or StrategyParams()
        self.ships = ships if ships is not None else build_fleet(side, config)
        self.planner = TacticalPlanner(self.params, config)

    def __repr__(self) -> str:
        return f"Player({self.side.value}, live={len(self.live_ships())}/{len(self.ships)})"

    # -------------------------------------------------------------------------
    # Fleet state
    # -------------------------------------------------------------------------

    def live_ships(self) -> List[Ship]:
        return [s for s in self.ships if s.is_alive]

    def views(self) -> List[ShipView]:
        """Snapshots of the live, placed ships."""
        return [s.view() for s in self.ships if s.is_alive and s.is_placed]

    def is_defeated(self) -> bool:
        return all(s.is_dead for s in self.ships)

    def has_ammo(self) -> bool:
        """True if any live ship still holds a missile of either kind."""
        return any(s.has_ammo() for s in self.live_ships())

    def total_health(self) -> int:
        return sum(s.health for s in self.live_ships())

    def get_ship(self, ship_id: str) -> Optional[Ship]:
        for ship in self.ships:
            if ship.ship_id == ship_id:
                return ship
        return None

    # -------------------------------------------------------------------------
    # Deployment
    # -------------------------------------------------------------------------

    def can_place(self, cell: Position) -> bool:
        """A cell is free if it keeps min_separation from every placed live friendly ship."""
        if not cell.in_bounds(self.config.map_size):
            return False
        for ship in self.ships:
            if not ship.is_placed or ship.is_dead:
                continue
            if ship.position.distance_to(cell, self.config.distance_metric) < self.config.min_separation:
                return False
        return True

    def random_home_cell(self, rng: random.Random) -> Position:
        """Uniform cell inside this side's home band (A: left edge, B: right edge)."""
        offset = rng.randrange(self.config.home_width)
        x = offset if self.side is Side.A else self.config.map_size - 1 - offset
        y = rng.randrange(self.config.map_size)
        return Position(x, y)

    def place_ships(self, rng: random.Random) -> List[Ship]:
        """
        Deploy every unplaced ship at a random legal cell of the home band.

        Args:
            rng: Random source

        Returns:
            Ships placed by this call, in order

        Raises:
            PlacementError: a ship found no legal cell within
                config.placement_attempts draws
        """
        placed: List[Ship] = []
        for ship in self.ships:
            if ship.is_placed:
                continue
            for _ in range(self.config.placement_attempts):
                cell = self.random_home_cell(rng)
                if self.can_place(cell):
                    ship.set_position(cell)
                    placed.append(ship)
                    break
            else:
                raise PlacementError(
                    f"Could not place {ship.ship_id} for side {self.side.value} after "
                    f"{self.config.placement_attempts} attempts "
                    f"(map_size={self.config.map_size}, fleet size={len(self.ships)})"
                )
        return placed

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def plan_attacks(self, enemy_views: Sequence[ShipView]) -> List[AttackOrder]:
        """
        Decide one attack per armed live ship against a frozen enemy snapshot.

        Ships are independent here: no decision changes the board.
        """
        if not self.has_ammo():
            return []
        ally_views = self.views()
        orders: List[AttackOrder] = []
        for view in ally_views:
            order = self.planner.choose_attack(view, ally_views, enemy_views)
            if order is not None:
                orders.append(order)
        return orders

    def plan_move(self, ship: Ship, enemy_views: Sequence[ShipView]) -> Optional[MoveChoice]:
        """Choose a destination for one ship against current friendly positions."""
        return self.planner.choose_move(ship.view(), self.views(), enemy_views)
