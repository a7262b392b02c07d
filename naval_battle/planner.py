"""
Decision engine: weighted move and attack scoring for one player.

The planner is parameterised by a StrategyParams vector and only ever reads
ShipView snapshots, so every evaluation is a pure function of its inputs.

Move scoring rewards (or penalises, depending on sign) proximity to enemies
and allies, blocking enemy lines of fire onto allies, and standing in an
open enemy line of fire. Attack scoring estimates where each enemy may move
next and values every cell of an enemy's reachable set equally.

Sentinels: "no valid move", "no valid attack" and "attack vetoed" are all
represented by None, never by a magic score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .config import SimulationConfig
from .geometry import Position, Ray
from .missiles import MissileKind, damage_area
from .ships import ShipView
from .strategy import StrategyParams


# =============================================================================
# DECISIONS
# =============================================================================

@dataclass(frozen=True)
class MoveChoice:
    """Destination chosen for a ship during a move phase."""
    ship_id: str
    destination: Position
    score: float


@dataclass(frozen=True)
class AttackOrder:
    """
    Attack committed during a decide phase and resolved later.

    Attributes:
        ship_id: Shooter
        origin: Shooter position when the order was given
        target: Aim cell
        kind: Missile kind to spend
        score: Score the order was chosen with
    """
    ship_id: str
    origin: Position
    target: Position
    kind: MissileKind
    score: float

    def __str__(self) -> str:
        return f"{self.ship_id} -> {self.target} [{self.kind.value}] ({self.score:.2f})"


def _live(ships: Iterable[ShipView]) -> List[ShipView]:
    return [s for s in ships if s.is_alive]


# =============================================================================
# PLANNER
# =============================================================================

class TacticalPlanner:
    """
    Chooses moves and attacks for the ships of one side.

    Usage:
        planner = TacticalPlanner(params, config)
        order = planner.choose_attack(ship_view, ally_views, enemy_views)
        move = planner.choose_move(ship_view, ally_views, enemy_views)

    `allies` always means the views of the planner's own side; the ship being
    planned for may or may not be included, it is skipped by id.
    """

    def __init__(self, params: StrategyParams, config: SimulationConfig) -> None:
        self.params = params
        self.config = config
        self.epsilon = config.geometry_epsilon

    def _distance(self, a: Position, b: Position) -> float:
        return a.distance_to(b, self.config.distance_metric)

    def ship_value(self, ship: ShipView) -> float:
        return ship.value(self.params)

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    def is_legal_destination(
        self,
        ship: ShipView,
        cell: Position,
        allies: Sequence[ShipView]
    ) -> bool:
        """
        A cell is legal if it is on the grid, not held by a live friendly
        ship, and at least min_separation away from every other live
        friendly ship.
        """
        if not cell.in_bounds(self.config.map_size):
            return False
        for ally in allies:
            if ally.ship_id == ship.ship_id or not ally.is_alive:
                continue
            if ally.position == cell:
                return False
            if self._distance(ally.position, cell) < self.config.min_separation:
                return False
        return True

    def count_blocked_lines(
        self,
        ship: ShipView,
        move: Position,
        allies: Sequence[ShipView],
        enemies: Sequence[ShipView]
    ) -> int:
        """Number of (enemy, ally) lines of fire that `move` would sit inside."""
        count = 0
        for enemy in _live(enemies):
            for ally in _live(allies):
                if ally.ship_id == ship.ship_id:
                    continue
                if Ray.between(enemy.position, ally.position).is_between(move, self.epsilon):
                    count += 1
        return count

    def is_directly_targeted(
        self,
        ship: ShipView,
        move: Position,
        allies: Sequence[ShipView],
        enemies: Sequence[ShipView]
    ) -> bool:
        """
        True if some enemy has an unobstructed line of fire onto `move`.

        Any live ship other than the moving ship and the enemy itself that
        sits strictly between the enemy and `move` obstructs that line.
        """
        live_enemies = _live(enemies)
        others = [s for s in _live(allies) if s.ship_id != ship.ship_id] + live_enemies

        for enemy in live_enemies:
            ray = Ray.between(enemy.position, move)
            obstructed = any(
                other.ship_id != enemy.ship_id and ray.is_between(other.position, self.epsilon)
                for other in others
            )
            if not obstructed:
                return True
        return False

    def evaluate_move(
        self,
        ship: ShipView,
        move: Position,
        allies: Sequence[ShipView],
        enemies: Sequence[ShipView]
    ) -> float:
        """
        Score a candidate destination.

        Args:
            ship: Ship being moved
            move: Candidate destination
            allies: Views of the planner's side
            enemies: Views of the opposing side

        Returns:
            Weighted score (higher is better)
        """
        params = self.params
        floor = self.config.min_score_distance

        enemy_distance_score = sum(
            params.enemy_distance_weight / max(self._distance(move, e.position), floor)
            for e in _live(enemies)
        )
        ally_distance_score = sum(
            params.ally_distance_weight / max(self._distance(move, a.position), floor)
            for a in _live(allies)
            if a.ship_id != ship.ship_id
        )

        value = self.ship_value(ship)
        block_count = self.count_blocked_lines(ship, move, allies, enemies)
        target_count = 1 if self.is_directly_targeted(ship, move, allies, enemies) else 0

        return (
            enemy_distance_score
            + ally_distance_score
            + block_count * params.block_weight * value
            + target_count * params.target_weight * value
        )

    def choose_move(
        self,
        ship: ShipView,
        allies: Sequence[ShipView],
        enemies: Sequence[ShipView]
    ) -> Optional[MoveChoice]:
        """
        Pick the best legal destination for a ship.

        Returns:
            The chosen move, or None when no legal destination scores above
            the threshold (the ship then stays where it is)
        """
        if not ship.is_alive:
            return None

        best: Optional[MoveChoice] = None
        for move in sorted(ship.reachable):
            if not self.is_legal_destination(ship, move, allies):
                continue
            score = self.evaluate_move(ship, move, allies, enemies)
            if score <= self.params.attack_threshold:
                continue
            if best is None or score > best.score:
                best = MoveChoice(ship.ship_id, move, score)
        return best

    # -------------------------------------------------------------------------
    # Attack
    # -------------------------------------------------------------------------

    def candidate_targets(self, enemies: Sequence[ShipView]) -> List[Position]:
        """Union of every live enemy's reachable cells, in a stable order."""
        cells = set()
        for enemy in _live(enemies):
            cells.update(enemy.reachable)
        return sorted(cells)

    def cell_weights(self, enemies: Sequence[ShipView]) -> Dict[Position, float]:
        """
        Expected enemy value per cell, assuming each enemy moves to any of
        its reachable cells with equal probability.

        An enemy with no reachable cells contributes nothing.
        """
        weights: Dict[Position, float] = {}
        for enemy in _live(enemies):
            if not enemy.reachable:
                continue
            share = self.ship_value(enemy) / len(enemy.reachable)
            for cell in enemy.reachable:
                weights[cell] = weights.get(cell, 0.0) + share
        return weights

    def is_path_clear(
        self,
        ship: ShipView,
        target: Position,
        allies: Sequence[ShipView]
    ) -> bool:
        """No live ally other than the shooter sits strictly between shooter and target."""
        ray = Ray.between(ship.position, target)
        for ally in _live(allies):
            if ally.ship_id == ship.ship_id:
                continue
            if ray.is_between(ally.position, self.epsilon):
                return False
        return True

    def would_hit_ally(
        self,
        target: Position,
        kind: MissileKind,
        allies: Sequence[ShipView]
    ) -> bool:
        """The footprint covers a live friendly ship (the shooter included)."""
        area = damage_area(kind, target, self.config.map_size)
        return any(ally.position in area for ally in _live(allies))

    def line_score(
        self,
        ship: ShipView,
        target: Position,
        weights: Dict[Position, float]
    ) -> float:
        """Value of every enemy cell lying on the line of fire past the shooter."""
        ray = Ray.between(ship.position, target)
        return sum(
            weight for cell, weight in weights.items()
            if ray.is_past_origin(cell, self.epsilon)
        )

    def footprint_score(
        self,
        target: Position,
        kind: MissileKind,
        weights: Dict[Position, float]
    ) -> float:
        """Expected enemy value caught inside the footprint."""
        area = damage_area(kind, target, self.config.map_size)
        return sum(weights.get(cell, 0.0) for cell in area)

    def evaluate_attack(
        self,
        ship: ShipView,
        target: Position,
        kind: MissileKind,
        allies: Sequence[ShipView],
        enemies: Sequence[ShipView]
    ) -> Optional[float]:
        """
        Score firing a missile of `kind` from `ship` at `target`.

        Returns:
            The score, or None when the shot is forbidden (blocked by an
            ally, footprint covers an ally, or no missile of that kind left)
        """
        if not ship.has_ammo(kind):
            return None
        if not self.is_path_clear(ship, target, allies):
            return None
        if self.would_hit_ally(target, kind, allies):
            return None

        weights = self.cell_weights(enemies)
        return self.footprint_score(target, kind, weights) + self.line_score(ship, target, weights)

    def choose_attack(
        self,
        ship: ShipView,
        allies: Sequence[ShipView],
        enemies: Sequence[ShipView]
    ) -> Optional[AttackOrder]:
        """
        Pick the best (target, missile kind) pair for a ship.

        Only cells some enemy can reach next move are considered.

        Returns:
            The order, or None if nothing scores above both the threshold
            and zero
        """
        if not ship.is_alive or not ship.has_ammo():
            return None

        kinds = [kind for kind in MissileKind if ship.has_ammo(kind)]
        weights = self.cell_weights(enemies)
        best: Optional[AttackOrder] = None

        for target in self.candidate_targets(enemies):
            if not self.is_path_clear(ship, target, allies):
                continue
            total_score = self.line_score(ship, target, weights)
            for kind in kinds:
                if self.would_hit_ally(target, kind, allies):
                    continue
                score = self.footprint_score(target, kind, weights) + total_score
                if score <= self.params.attack_threshold:
                    continue
                if best is None or score > best.score:
                    best = AttackOrder(ship.ship_id, ship.position, target, kind, score)

        # Never fire for a non-positive score, whatever the threshold
        if best is None or best.score <= 0:
            return None
        return best
