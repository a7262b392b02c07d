"""
Turn-by-turn narration for the naval tactics simulator.

The narrator is an event observer: it is attached to a Game through
add_event_callback and only reads state, so a match plays out identically
with or without it. Output includes:
- A round header with an ASCII map ('.' empty, '1' side A, '2' side B)
- Per-ship status lines (hull, missiles, position, enemies in sight)
- One line per notable event (attacks, hits, blocked missiles, losses)
- The final tally and winner
"""

from __future__ import annotations

from typing import List, Optional, TextIO

from .game import Game, GameEvent, GameEventType, GamePhase, MatchResult, Winner
from .geometry import has_line_of_sight
from .missiles import MissileKind
from .player import Player


# =============================================================================
# CONSTANTS
# =============================================================================

EMPTY_CELL = "."
SIDE_MARKERS = {"A": "1", "B": "2"}
REPORT_WIDTH = 28


# =============================================================================
# RENDERING
# =============================================================================

def render_map(player_a: Player, player_b: Player, map_size: int) -> List[str]:
    """
    Draw the grid, one string per row (row 0 first).

    Args:
        player_a: Side A, drawn as '1'
        player_b: Side B, drawn as '2'
        map_size: Grid side length

    Returns:
        Rows of space-separated cell characters
    """
    grid = [[EMPTY_CELL] * map_size for _ in range(map_size)]
    for player in (player_a, player_b):
        marker = SIDE_MARKERS[player.side.value]
        for ship in player.live_ships():
            if ship.is_placed:
                pos = ship.position
                grid[pos.y][pos.x] = marker
    return [" ".join(row) for row in grid]


def render_fleet_status(player: Player, enemy: Player) -> List[str]:
    """Status lines for every ship of a player, destroyed ships included."""
    occupied = {
        s.position for s in player.live_ships() + enemy.live_ships() if s.is_placed
    }
    lines = [f"{player.side.label} ships status:"]
    for index, ship in enumerate(player.ships, start=1):
        if ship.is_dead:
            lines.append(f"Ship {index}: Destroyed")
            continue
        if not ship.is_placed:
            lines.append(f"Ship {index}: Not deployed")
            continue
        in_sight = sum(
            1 for other in enemy.live_ships()
            if other.is_placed and has_line_of_sight(ship.position, other.position, occupied)
        )
        lines.append(
            f"Ship {index}: HP={ship.health}, "
            f"Missiles={ship.ammo[MissileKind.CROSS]}+{ship.ammo[MissileKind.SQUARE]}, "
            f"Position=({ship.position.x},{ship.position.y}), "
            f"InSight={in_sight}"
        )
    return lines


def render_result(result: MatchResult) -> List[str]:
    """Final tally in the same wording as the round reports."""
    if result.winner is Winner.SIDE_A:
        verdict = "Player 1 Wins!"
    elif result.winner is Winner.SIDE_B:
        verdict = "Player 2 Wins!"
    else:
        verdict = "It's a Draw!"

    return [
        "Game Over!",
        f"Total Rounds: {result.rounds}",
        "",
        f"Player 1: {result.ships_remaining_a} ships remaining, "
        f"total HP: {result.health_remaining_a}",
        f"Player 2: {result.ships_remaining_b} ships remaining, "
        f"total HP: {result.health_remaining_b}",
        "",
        verdict,
    ]


# =============================================================================
# NARRATOR
# =============================================================================

class BattleNarrator:
    """
    Collects a readable account of a match as it is played.

    Usage:
        game = Game(config, seed=3)
        narrator = BattleNarrator(game, stream=sys.stdout)
        game.run()
        text = narrator.text()

    Attributes:
        game: Observed match
        lines: Narration so far
        show_map: Include the ASCII map in round reports
        stream: Optional stream each line is echoed to
    """

    def __init__(
        self,
        game: Game,
        stream: Optional[TextIO] = None,
        show_map: bool = True,
        attach: bool = True
    ) -> None:
        self.game = game
        self.stream = stream
        self.show_map = show_map
        self.lines: List[str] = []
        if attach:
            game.add_event_callback(self)

    def detach(self) -> None:
        self.game.remove_event_callback(self)

    def text(self) -> str:
        return "\n".join(self.lines)

    def _emit(self, *lines: str) -> None:
        for line in lines:
            self.lines.append(line)
            if self.stream is not None:
                print(line, file=self.stream)

    def __call__(self, event: GameEvent) -> None:
        handler = {
            GameEventType.MATCH_STARTED: self._on_match_started,
            GameEventType.ATTACK_PLANNED: self._on_attack_planned,
            GameEventType.MISSILE_BLOCKED: self._on_missile_blocked,
            GameEventType.DAMAGE_TAKEN: self._on_damage_taken,
            GameEventType.SHIP_DESTROYED: self._on_ship_destroyed,
            GameEventType.PHASE_COMPLETED: self._on_phase_completed,
            GameEventType.ROUND_COMPLETED: self._on_round_completed,
            GameEventType.MATCH_ENDED: self._on_match_ended,
        }.get(event.event_type)
        if handler is not None:
            handler(event)

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def _on_match_started(self, event: GameEvent) -> None:
        self._emit("Naval Battle Game Simulation", "=" * REPORT_WIDTH, "")

    def _on_attack_planned(self, event: GameEvent) -> None:
        kind = event.data["kind"]
        self._emit(
            f"  [{event.ship_id}] targets {event.data['target']} "
            f"with {kind.value} missile (score {event.data['score']:.2f})"
        )

    def _on_missile_blocked(self, event: GameEvent) -> None:
        self._emit(
            f"  [{event.ship_id}] missile intercepted by {event.target_id} "
            f"at {event.data['impact']}"
        )

    def _on_damage_taken(self, event: GameEvent) -> None:
        self._emit(
            f"  >>> {event.ship_id} hit by {event.target_id}, HP={event.data['health']}"
        )

    def _on_ship_destroyed(self, event: GameEvent) -> None:
        self._emit(f"  !!! {event.ship_id} DESTROYED")

    def _on_phase_completed(self, event: GameEvent) -> None:
        if event.phase is GamePhase.PLACEMENT_B:
            self._report_status()

    def _on_round_completed(self, event: GameEvent) -> None:
        self._report_status()

    def _on_match_ended(self, event: GameEvent) -> None:
        if self.game.result is not None:
            self._emit("", *render_result(self.game.result))

    def _report_status(self) -> None:
        game = self.game
        self._emit(f"Round {game.round}", "")
        if self.show_map:
            self._emit(*render_map(game.player_a, game.player_b, game.config.map_size), "")
        self._emit(*render_fleet_status(game.player_a, game.player_b))
        self._emit(*render_fleet_status(game.player_b, game.player_a), "")


def narrate_match(game: Game, stream: Optional[TextIO] = None) -> str:
    """Play a match to completion and return its narration."""
    narrator = BattleNarrator(game, stream=stream)
    game.run()
    narrator.detach()
    return narrator.text()
