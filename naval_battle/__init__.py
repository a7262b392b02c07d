"""Naval tactics simulator: grid fleet battles with self-play weight tuning."""

from .config import (
    ConfigurationError,
    RewardCoefficients,
    SearchConfig,
    ShipClassSpec,
    SimulationConfig,
)

from .geometry import (
    GEOMETRY_EPSILON,
    DistanceMetric,
    Position,
    Ray,
    distance_and_projection,
    has_line_of_sight,
    is_blocking,
)

from .missiles import MissileKind, damage_area

from .ships import Ship, ShipView, Side, build_fleet

from .strategy import InvalidStrategyError, StrategyParams

from .planner import AttackOrder, MoveChoice, TacticalPlanner

from .player import PlacementError, Player

from .game import (
    Game,
    GameEvent,
    GameEventType,
    GamePhase,
    MatchResult,
    TerminationReason,
    Winner,
    determine_winner,
    play_match,
)

from .narration import BattleNarrator, narrate_match

from .search import (
    EpisodeRecord,
    SearchAgent,
    SelfPlayTrainer,
    ValueTable,
    compute_reward,
    discretize,
)

__all__ = [
    # Configuration
    "ConfigurationError",
    "RewardCoefficients",
    "SearchConfig",
    "ShipClassSpec",
    "SimulationConfig",
    # Geometry
    "GEOMETRY_EPSILON",
    "DistanceMetric",
    "Position",
    "Ray",
    "distance_and_projection",
    "has_line_of_sight",
    "is_blocking",
    # Missiles
    "MissileKind",
    "damage_area",
    # Ships
    "Ship",
    "ShipView",
    "Side",
    "build_fleet",
    # Strategy
    "InvalidStrategyError",
    "StrategyParams",
    # Planner
    "AttackOrder",
    "MoveChoice",
    "TacticalPlanner",
    # Player
    "PlacementError",
    "Player",
    # Game
    "Game",
    "GameEvent",
    "GameEventType",
    "GamePhase",
    "MatchResult",
    "TerminationReason",
    "Winner",
    "determine_winner",
    "play_match",
    # Narration
    "BattleNarrator",
    "narrate_match",
    # Search
    "EpisodeRecord",
    "SearchAgent",
    "SelfPlayTrainer",
    "ValueTable",
    "compute_reward",
    "discretize",
]
