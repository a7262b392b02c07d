"""
Turn-resolution state machine for the naval tactics simulator.

A match runs in fixed phases:

    PLACEMENT_A -> PLACEMENT_B ->
    [ A_ATTACK_DECIDE -> B_MOVE -> A_ATTACK_RESOLVE -> (check)
      B_ATTACK_DECIDE -> A_MOVE -> B_ATTACK_RESOLVE -> round += 1 -> (check) ]*
    -> FINISHED

Attacks are decided against the enemy's pre-move positions and resolved
against its post-move positions: the missile is already in flight while the
target repositions. The Game is the only component that mutates ships;
players and planners work from frozen views.

Every state change is recorded as a GameEvent and forwarded to registered
callbacks, which is how narration and external logging observe a match.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import SimulationConfig
from .geometry import Position, Ray
from .missiles import damage_area
from .planner import AttackOrder
from .player import Player
from .ships import Ship, Side
from .strategy import StrategyParams


# =============================================================================
# ENUMS
# =============================================================================

class GamePhase(Enum):
    """Phases of the turn-resolution state machine."""
    PLACEMENT_A = auto()
    PLACEMENT_B = auto()
    A_ATTACK_DECIDE = auto()
    B_MOVE = auto()
    A_ATTACK_RESOLVE = auto()
    B_ATTACK_DECIDE = auto()
    A_MOVE = auto()
    B_ATTACK_RESOLVE = auto()
    FINISHED = auto()


_NEXT_PHASE = {
    GamePhase.PLACEMENT_A: GamePhase.PLACEMENT_B,
    GamePhase.PLACEMENT_B: GamePhase.A_ATTACK_DECIDE,
    GamePhase.A_ATTACK_DECIDE: GamePhase.B_MOVE,
    GamePhase.B_MOVE: GamePhase.A_ATTACK_RESOLVE,
    GamePhase.A_ATTACK_RESOLVE: GamePhase.B_ATTACK_DECIDE,
    GamePhase.B_ATTACK_DECIDE: GamePhase.A_MOVE,
    GamePhase.A_MOVE: GamePhase.B_ATTACK_RESOLVE,
    GamePhase.B_ATTACK_RESOLVE: GamePhase.A_ATTACK_DECIDE,
}


class Winner(Enum):
    """Final outcome of a match."""
    SIDE_A = "A"
    SIDE_B = "B"
    DRAW = "draw"


class TerminationReason(Enum):
    """Why a match stopped."""
    ROUND_LIMIT = "round_limit"
    FLEET_DESTROYED = "fleet_destroyed"
    AMMO_EXHAUSTED = "ammo_exhausted"


class GameEventType(Enum):
    """Types of events emitted during a match."""
    MATCH_STARTED = auto()
    SHIP_PLACED = auto()
    ATTACK_PLANNED = auto()
    SHIP_MOVED = auto()
    MISSILE_FIRED = auto()
    MISSILE_BLOCKED = auto()
    DAMAGE_TAKEN = auto()
    SHIP_DESTROYED = auto()
    PHASE_COMPLETED = auto()
    ROUND_COMPLETED = auto()
    MATCH_ENDED = auto()


# =============================================================================
# EVENTS AND RESULTS
# =============================================================================

@dataclass
class GameEvent:
    """
    An event that occurred during a match.

    Attributes:
        event_type: The type of event
        round: Round counter when the event occurred
        phase: Phase that produced the event
        side: Side the event concerns (if applicable)
        ship_id: Ship involved (if applicable)
        target_id: Second ship involved (if applicable)
        data: Additional event-specific data
    """
    event_type: GameEventType
    round: int
    phase: GamePhase
    side: Optional[Side] = None
    ship_id: Optional[str] = None
    target_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def __str__(self) -> str:
        ship_str = f"[{self.ship_id}]" if self.ship_id else ""
        target_str = f" -> {self.target_id}" if self.target_id else ""
        return f"R{self.round} {self.phase.name} {ship_str} {self.event_type.name}{target_str}"


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome record of one match; the only artifact the search loop consumes.

    Attributes:
        rounds: Rounds played
        ships_remaining_a: Live ships of side A
        ships_remaining_b: Live ships of side B
        health_remaining_a: Summed hull points of side A's live ships
        health_remaining_b: Summed hull points of side B's live ships
        winner: SIDE_A, SIDE_B or DRAW
        duration_s: Wall-clock duration of the match
    """
    rounds: int
    ships_remaining_a: int
    ships_remaining_b: int
    health_remaining_a: int
    health_remaining_b: int
    winner: Winner
    duration_s: float

    def ships_remaining(self, side: Side) -> int:
        return self.ships_remaining_a if side is Side.A else self.ships_remaining_b

    def health_remaining(self, side: Side) -> int:
        return self.health_remaining_a if side is Side.A else self.health_remaining_b

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rounds": self.rounds,
            "ships_remaining": {"A": self.ships_remaining_a, "B": self.ships_remaining_b},
            "health_remaining": {"A": self.health_remaining_a, "B": self.health_remaining_b},
            "winner": self.winner.value,
            "duration_s": self.duration_s,
        }


def determine_winner(
    ships_a: int,
    ships_b: int,
    health_a: int,
    health_b: int
) -> Winner:
    """More live ships wins; ties go to summed health; exact ties are a draw."""
    if ships_a != ships_b:
        return Winner.SIDE_A if ships_a > ships_b else Winner.SIDE_B
    if health_a != health_b:
        return Winner.SIDE_A if health_a > health_b else Winner.SIDE_B
    return Winner.DRAW


# =============================================================================
# GAME
# =============================================================================

class Game:
    """
    A single match between two players.

    Usage:
        game = Game(config, params_a, params_b, seed=7)
        game.add_event_callback(print)
        result = game.run()

    Attributes:
        config: Simulation settings
        rng: Random source (placement only)
        player_a: Side A
        player_b: Side B
        round: Completed rounds
        phase: Next phase to execute
        pending_orders: Decided but unresolved attacks per side
        events: Event log (empty when record_events is False)
        termination_reason: Why the match ended, once it has
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        params_a: Optional[StrategyParams] = None,
        params_b: Optional[StrategyParams] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        record_events: bool = True
    ) -> None:
        """
        Initialize a match.

        Args:
            config: Simulation settings (defaults apply if omitted)
            params_a: Strategy weights for side A
            params_b: Strategy weights for side B
            seed: Seed for a fresh random source
            rng: Explicit random source (takes precedence over seed)
            record_events: Keep the in-memory event log
        """
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else random.Random(seed)
        self.player_a = Player(Side.A, self.config, params_a)
        self.player_b = Player(Side.B, self.config, params_b)

        self.round = 0
        self.phase = GamePhase.PLACEMENT_A
        self.pending_orders: Dict[Side, List[AttackOrder]] = {Side.A: [], Side.B: []}
        self.termination_reason: Optional[TerminationReason] = None
        self.result: Optional[MatchResult] = None

        self.record_events = record_events
        self.events: List[GameEvent] = []
        self._event_callbacks: List[Callable[[GameEvent], None]] = []
        self._started_at: Optional[float] = None

    def player(self, side: Side) -> Player:
        return self.player_a if side is Side.A else self.player_b

    @property
    def is_over(self) -> bool:
        return self.phase is GamePhase.FINISHED

    # -------------------------------------------------------------------------
    # Event Logging
    # -------------------------------------------------------------------------

    def add_event_callback(self, callback: Callable[[GameEvent], None]) -> None:
        """
        Register a callback to be called for each game event.

        Callbacks observe only; an exception raised by a callback is reported
        and does not affect the match.
        """
        self._event_callbacks.append(callback)

    def remove_event_callback(self, callback: Callable[[GameEvent], None]) -> None:
        """Remove an event callback."""
        if callback in self._event_callbacks:
            self._event_callbacks.remove(callback)

    def _log_event(
        self,
        event_type: GameEventType,
        side: Optional[Side] = None,
        ship_id: Optional[str] = None,
        target_id: Optional[str] = None,
        data: Optional[dict] = None
    ) -> GameEvent:
        """Log a game event and notify callbacks."""
        event = GameEvent(
            event_type=event_type,
            round=self.round,
            phase=self.phase,
            side=side,
            ship_id=ship_id,
            target_id=target_id,
            data=data or {}
        )
        if self.record_events:
            self.events.append(event)

        for callback in self._event_callbacks:
            try:
                callback(event)
            except Exception as e:
                print(f"[GAME] Event callback error: {e}")

        return event

    def get_events_by_type(self, event_type: GameEventType) -> List[GameEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def get_events_for_ship(self, ship_id: str) -> List[GameEvent]:
        return [e for e in self.events if e.ship_id == ship_id or e.target_id == ship_id]

    # -------------------------------------------------------------------------
    # Main Loop
    # -------------------------------------------------------------------------

    def run(self) -> MatchResult:
        """Play the match to completion and return its result."""
        while not self.is_over:
            self.step()
        assert self.result is not None
        return self.result

    def step(self) -> GamePhase:
        """
        Execute the current phase and advance the state machine.

        Returns:
            The phase that was executed
        """
        if self.is_over:
            raise RuntimeError("Match is already finished")

        if self._started_at is None:
            self._started_at = time.perf_counter()
            self._log_event(GameEventType.MATCH_STARTED, data={
                "map_size": self.config.map_size,
                "max_rounds": self.config.max_rounds,
            })

        executed = self.phase
        handlers = {
            GamePhase.PLACEMENT_A: lambda: self._place(Side.A),
            GamePhase.PLACEMENT_B: lambda: self._place(Side.B),
            GamePhase.A_ATTACK_DECIDE: lambda: self._decide_attacks(Side.A),
            GamePhase.B_MOVE: lambda: self._move(Side.B),
            GamePhase.A_ATTACK_RESOLVE: lambda: self._resolve_attacks(Side.A),
            GamePhase.B_ATTACK_DECIDE: lambda: self._decide_attacks(Side.B),
            GamePhase.A_MOVE: lambda: self._move(Side.A),
            GamePhase.B_ATTACK_RESOLVE: lambda: self._resolve_attacks(Side.B),
        }
        handlers[executed]()
        self._log_event(GameEventType.PHASE_COMPLETED)

        if executed is GamePhase.B_ATTACK_RESOLVE:
            self.round += 1
            self._log_event(GameEventType.ROUND_COMPLETED)

        if executed in (
            GamePhase.PLACEMENT_B, GamePhase.A_ATTACK_RESOLVE, GamePhase.B_ATTACK_RESOLVE
        ):
            reason = self._check_termination()
            if reason is not None:
                self._finish(reason)
                return executed

        self.phase = _NEXT_PHASE[executed]
        return executed

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _place(self, side: Side) -> None:
        for ship in self.player(side).place_ships(self.rng):
            self._log_event(
                GameEventType.SHIP_PLACED, side=side, ship_id=ship.ship_id,
                data={"position": ship.position, "ship_class": ship.ship_class},
            )

    def _decide_attacks(self, side: Side) -> None:
        enemy_views = self.player(side.opponent).views()
        orders = self.player(side).plan_attacks(enemy_views)
        self.pending_orders[side] = orders
        for order in orders:
            self._log_event(
                GameEventType.ATTACK_PLANNED, side=side, ship_id=order.ship_id,
                data={"target": order.target, "kind": order.kind, "score": order.score},
            )

    def _move(self, side: Side) -> None:
        player = self.player(side)
        # Opponent positions are frozen for the whole phase
        enemy_views = self.player(side.opponent).views()
        for ship in player.ships:
            if ship.is_dead:
                continue
            choice = player.plan_move(ship, enemy_views)
            if choice is None or choice.destination == ship.position:
                continue
            origin = ship.position
            ship.set_position(choice.destination)
            self._log_event(
                GameEventType.SHIP_MOVED, side=side, ship_id=ship.ship_id,
                data={"from": origin, "to": choice.destination, "score": choice.score},
            )

    def _resolve_attacks(self, side: Side) -> None:
        attacker = self.player(side)
        defender = self.player(side.opponent)
        orders, self.pending_orders[side] = self.pending_orders[side], []

        for order in orders:
            shooter = attacker.get_ship(order.ship_id)
            if shooter is None or shooter.is_dead:
                continue
            if not shooter.consume_ammo(order.kind):
                continue
            self._log_event(
                GameEventType.MISSILE_FIRED, side=side, ship_id=shooter.ship_id,
                data={"target": order.target, "kind": order.kind},
            )

            impact, blocker = self._impact_point(shooter, order.target)
            if blocker is not None:
                self._log_event(
                    GameEventType.MISSILE_BLOCKED, side=side, ship_id=shooter.ship_id,
                    target_id=blocker.ship_id, data={"target": order.target, "impact": impact},
                )

            area = damage_area(order.kind, impact, self.config.map_size)
            for ship in defender.live_ships():
                if ship.position not in area:
                    continue
                removed = ship.apply_damage(self.config.missile_damage)
                self._log_event(
                    GameEventType.DAMAGE_TAKEN, side=defender.side, ship_id=ship.ship_id,
                    target_id=shooter.ship_id,
                    data={"damage": removed, "health": ship.health, "cell": ship.position},
                )
                if ship.is_dead:
                    self._log_event(
                        GameEventType.SHIP_DESTROYED, side=defender.side,
                        ship_id=ship.ship_id, target_id=shooter.ship_id,
                    )

    def _impact_point(self, shooter: Ship, target: Position) -> Tuple[Position, Optional[Ship]]:
        """
        Where a missile detonates: the nearest live ship strictly between the
        shooter and the target, otherwise the target itself.

        The friendly-fire veto applies to the committed aim point. A
        detonation moved onto a blocker may cover friendly cells; resolution
        only ever damages the defending side.

        Returns:
            (impact cell, blocking ship or None)
        """
        ray = Ray.between(shooter.position, target)
        epsilon = self.config.geometry_epsilon
        nearest: Optional[Ship] = None
        nearest_t = 1.0
        for ship in self.player_a.live_ships() + self.player_b.live_ships():
            if ship is shooter:
                continue
            distance, t = ray.project(ship.position)
            if distance < epsilon and epsilon < t < nearest_t:
                nearest, nearest_t = ship, t
        if nearest is None:
            return target, None
        return nearest.position, nearest

    # -------------------------------------------------------------------------
    # Termination
    # -------------------------------------------------------------------------

    def _check_termination(self) -> Optional[TerminationReason]:
        if self.player_a.is_defeated() or self.player_b.is_defeated():
            return TerminationReason.FLEET_DESTROYED
        if not self.player_a.has_ammo() and not self.player_b.has_ammo():
            return TerminationReason.AMMO_EXHAUSTED
        if self.round >= self.config.max_rounds:
            return TerminationReason.ROUND_LIMIT
        return None

    def _finish(self, reason: TerminationReason) -> None:
        self.termination_reason = reason
        self.phase = GamePhase.FINISHED
        self.pending_orders = {Side.A: [], Side.B: []}
        self.result = self.build_result()
        self._log_event(GameEventType.MATCH_ENDED, data={
            "reason": reason.value,
            "result": self.result.to_dict(),
        })

    def build_result(self) -> MatchResult:
        """Summarise the current state as a MatchResult."""
        ships_a = len(self.player_a.live_ships())
        ships_b = len(self.player_b.live_ships())
        health_a = self.player_a.total_health()
        health_b = self.player_b.total_health()
        started = self._started_at if self._started_at is not None else time.perf_counter()
        return MatchResult(
            rounds=self.round,
            ships_remaining_a=ships_a,
            ships_remaining_b=ships_b,
            health_remaining_a=health_a,
            health_remaining_b=health_b,
            winner=determine_winner(ships_a, ships_b, health_a, health_b),
            duration_s=time.perf_counter() - started,
        )


def play_match(
    params_a: Optional[StrategyParams] = None,
    params_b: Optional[StrategyParams] = None,
    config: Optional[SimulationConfig] = None,
    seed: Optional[int] = None,
    callbacks: Optional[List[Callable[[GameEvent], None]]] = None,
    record_events: bool = False
) -> MatchResult:
    """
    Run a complete match with the given weights.

    Args:
        params_a: Side A weights
        params_b: Side B weights
        config: Simulation settings
        seed: Random seed for placement
        callbacks: Event observers to attach
        record_events: Keep the in-memory event log

    Returns:
        MatchResult of the finished match
    """
    game = Game(config, params_a, params_b, seed=seed, record_events=record_events)
    for callback in callbacks or []:
        game.add_event_callback(callback)
    return game.run()
