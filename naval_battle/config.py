"""
Configuration for the naval tactics simulator.

All tunable constants of a match and of the self-play search live here as
immutable dataclasses that are passed into constructors:
- SimulationConfig: grid size, round limit, distance metric, tolerances,
  ship classes and the fleet composition of each side
- RewardCoefficients: linear reward applied to a finished match
- SearchConfig: exploration schedule, value-table blending and bounds

Configurations can be built in code, loaded from a JSON file, or overridden
from NAVAL_* environment variables (a local .env file is honoured).
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from .geometry import DistanceMetric, GEOMETRY_EPSILON


# =============================================================================
# CONSTANTS
# =============================================================================

ENV_PREFIX = "NAVAL_"

DEFAULT_MAP_SIZE = 40
DEFAULT_MAX_ROUNDS = 100
DEFAULT_MIN_SEPARATION = 2.0
DEFAULT_PLACEMENT_ATTEMPTS = 1000

# Default ship class names
FAST = "fast"
MEDIUM = "medium"
HEAVY = "heavy"


class ConfigurationError(ValueError):
    """Raised when a configuration value cannot produce a playable match."""


# =============================================================================
# SHIP CLASSES
# =============================================================================

@dataclass(frozen=True)
class ShipClassSpec:
    """
    Fixed stats of a ship class.

    Attributes:
        name: Class identifier used in fleet compositions
        max_health: Starting (and maximum) hull points
        move_range: Manhattan movement radius per move phase
        cross_ammo: Starting cross-pattern missiles
        square_ammo: Starting square-pattern missiles
    """
    name: str
    max_health: int
    move_range: int
    cross_ammo: int
    square_ammo: int

    def __post_init__(self) -> None:
        if self.max_health <= 0:
            raise ConfigurationError(f"Ship class {self.name!r} needs positive health")
        if self.move_range < 0:
            raise ConfigurationError(f"Ship class {self.name!r} has negative move range")
        if self.cross_ammo < 0 or self.square_ammo < 0:
            raise ConfigurationError(f"Ship class {self.name!r} has negative ammo")

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> ShipClassSpec:
        return cls(
            name=name,
            max_health=int(data["max_health"]),
            move_range=int(data["move_range"]),
            cross_ammo=int(data.get("cross_ammo", 0)),
            square_ammo=int(data.get("square_ammo", 0)),
        )


DEFAULT_SHIP_CLASSES: Tuple[ShipClassSpec, ...] = (
    # Fast ships trade the cross launcher for speed
    ShipClassSpec(FAST, max_health=3, move_range=2, cross_ammo=0, square_ammo=3),
    ShipClassSpec(MEDIUM, max_health=4, move_range=1, cross_ammo=2, square_ammo=2),
    ShipClassSpec(HEAVY, max_health=5, move_range=1, cross_ammo=2, square_ammo=1),
)

DEFAULT_FLEET_A: Tuple[Tuple[str, int], ...] = ((FAST, 2), (MEDIUM, 2), (HEAVY, 4))
DEFAULT_FLEET_B: Tuple[Tuple[str, int], ...] = ((FAST, 3), (MEDIUM, 3), (HEAVY, 3))


# =============================================================================
# SIMULATION CONFIG
# =============================================================================

@dataclass(frozen=True)
class SimulationConfig:
    """
    Immutable settings for a single match.

    Attributes:
        map_size: Side length of the square grid
        max_rounds: Round limit after which the match is scored as it stands
        distance_metric: Metric for scoring distances and ship separation
        geometry_epsilon: Tolerance for colinearity and ray parameter tests
        min_score_distance: Floor applied to distances in inverse-distance terms
        min_separation: Minimum distance between live ships of the same side
        placement_attempts: Random draws allowed per ship during placement
        missile_damage: Hull points removed per footprint hit
        ship_classes: Available ship classes
        fleet_a: (class name, count) composition of side A
        fleet_b: (class name, count) composition of side B
    """
    map_size: int = DEFAULT_MAP_SIZE
    max_rounds: int = DEFAULT_MAX_ROUNDS
    distance_metric: DistanceMetric = DistanceMetric.EUCLIDEAN
    geometry_epsilon: float = GEOMETRY_EPSILON
    min_score_distance: float = 1.0
    min_separation: float = DEFAULT_MIN_SEPARATION
    placement_attempts: int = DEFAULT_PLACEMENT_ATTEMPTS
    missile_damage: int = 1
    ship_classes: Tuple[ShipClassSpec, ...] = DEFAULT_SHIP_CLASSES
    fleet_a: Tuple[Tuple[str, int], ...] = DEFAULT_FLEET_A
    fleet_b: Tuple[Tuple[str, int], ...] = DEFAULT_FLEET_B

    def __post_init__(self) -> None:
        """Validate configuration values."""
        # Metric names given as strings are normalised to the enum
        object.__setattr__(self, "distance_metric", _parse_metric(self.distance_metric))
        if self.map_size < 3:
            raise ConfigurationError("map_size must be at least 3")
        if self.max_rounds < 0:
            raise ConfigurationError("max_rounds must be non-negative")
        if not (0 < self.geometry_epsilon < 0.5):
            raise ConfigurationError("geometry_epsilon must be in (0, 0.5)")
        if self.min_score_distance <= 0:
            raise ConfigurationError("min_score_distance must be positive")
        if self.min_separation < 0:
            raise ConfigurationError("min_separation must be non-negative")
        if self.placement_attempts <= 0:
            raise ConfigurationError("placement_attempts must be positive")
        if self.missile_damage <= 0:
            raise ConfigurationError("missile_damage must be positive")

        known = {spec.name for spec in self.ship_classes}
        if len(known) != len(self.ship_classes):
            raise ConfigurationError("Duplicate ship class names")
        for label, fleet in (("fleet_a", self.fleet_a), ("fleet_b", self.fleet_b)):
            if sum(count for _, count in fleet) <= 0:
                raise ConfigurationError(f"{label} must contain at least one ship")
            for class_name, count in fleet:
                if class_name not in known:
                    raise ConfigurationError(
                        f"{label} references unknown ship class {class_name!r}"
                    )
                if count < 0:
                    raise ConfigurationError(f"{label} has a negative count for {class_name!r}")

    @property
    def home_width(self) -> int:
        """Width of the x-band each side deploys into."""
        return max(1, self.map_size // 3)

    def ship_class(self, name: str) -> ShipClassSpec:
        """Look up a ship class by name."""
        for spec in self.ship_classes:
            if spec.name == name:
                return spec
        raise ConfigurationError(f"Unknown ship class {name!r}")

    def with_overrides(self, **changes: Any) -> SimulationConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SimulationConfig:
        """
        Create a configuration from a dictionary.

        Ship classes are given as {"name": {"max_health": .., ...}} and fleets
        as {"class_name": count}. Missing keys keep their defaults.
        """
        kwargs: Dict[str, Any] = {}
        scalar_types = {
            "map_size": int,
            "max_rounds": int,
            "geometry_epsilon": float,
            "min_score_distance": float,
            "min_separation": float,
            "placement_attempts": int,
            "missile_damage": int,
        }
        for key, cast in scalar_types.items():
            if key in data:
                kwargs[key] = cast(data[key])

        if "distance_metric" in data:
            kwargs["distance_metric"] = _parse_metric(data["distance_metric"])

        if "ship_classes" in data:
            kwargs["ship_classes"] = tuple(
                ShipClassSpec.from_dict(name, spec)
                for name, spec in data["ship_classes"].items()
            )

        for key in ("fleet_a", "fleet_b"):
            if key in data:
                kwargs[key] = tuple((name, int(count)) for name, count in data[key].items())

        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str) -> SimulationConfig:
        """Load configuration from a JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Simulation config not found: {path}")

        with open(config_path) as f:
            data = json.load(f)

        return cls.from_dict(data.get("simulation", data))

    @classmethod
    def from_env(cls, base: Optional[SimulationConfig] = None) -> SimulationConfig:
        """
        Apply NAVAL_* environment overrides on top of a base configuration.

        Recognised variables: NAVAL_MAP_SIZE, NAVAL_MAX_ROUNDS,
        NAVAL_DISTANCE_METRIC, NAVAL_GEOMETRY_EPSILON, NAVAL_MIN_SEPARATION,
        NAVAL_PLACEMENT_ATTEMPTS.
        """
        load_dotenv()
        base = base or cls()

        overrides: Dict[str, Any] = {}
        for key in ("map_size", "max_rounds", "placement_attempts"):
            raw = os.getenv(ENV_PREFIX + key.upper())
            if raw is not None:
                overrides[key] = _parse_number(key, raw, int)
        for key in ("geometry_epsilon", "min_separation"):
            raw = os.getenv(ENV_PREFIX + key.upper())
            if raw is not None:
                overrides[key] = _parse_number(key, raw, float)
        metric = os.getenv(ENV_PREFIX + "DISTANCE_METRIC")
        if metric is not None:
            overrides["distance_metric"] = _parse_metric(metric)

        return base.with_overrides(**overrides) if overrides else base


# =============================================================================
# SEARCH CONFIG
# =============================================================================

@dataclass(frozen=True)
class RewardCoefficients:
    """
    Linear reward applied to a finished match from one side's perspective.

    Losing an enemy ship is worth more than keeping one's own hull points.
    """
    own_ship: float = 5.0
    enemy_ship: float = 8.0
    own_health: float = 1.0
    enemy_health: float = 1.5
    win_bonus: float = 100.0
    loss_penalty: float = 100.0
    draw_bonus: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RewardCoefficients:
        names = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in data.items() if k in names})


@dataclass(frozen=True)
class SearchConfig:
    """
    Settings for the self-play parameter search.

    Attributes:
        exploration_rate: Initial probability of proposing a perturbed vector
        exploration_decay: Multiplicative decay applied after every episode
        exploration_floor: Lower bound for the exploration rate
        learning_rate: Blend factor for value-table updates
        discount: Weight of the bootstrapped best-value term (0 disables it)
        bucket_width: Discretisation width per parameter dimension
        perturbation_scale: Half-width of the uniform perturbation per dimension
        param_bounds: (low, high) clip range for every parameter
        rewards: Reward coefficients
    """
    exploration_rate: float = 0.3
    exploration_decay: float = 0.995
    exploration_floor: float = 0.01
    learning_rate: float = 0.1
    discount: float = 0.0
    bucket_width: float = 0.1
    perturbation_scale: float = 0.25
    param_bounds: Tuple[float, float] = (-2.0, 2.0)
    rewards: RewardCoefficients = field(default_factory=RewardCoefficients)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not (0.0 <= self.exploration_rate <= 1.0):
            raise ConfigurationError("exploration_rate must be in [0, 1]")
        if not (0.0 < self.exploration_decay <= 1.0):
            raise ConfigurationError("exploration_decay must be in (0, 1]")
        if not (0.0 <= self.exploration_floor <= 1.0):
            raise ConfigurationError("exploration_floor must be in [0, 1]")
        if not (0.0 < self.learning_rate <= 1.0):
            raise ConfigurationError("learning_rate must be in (0, 1]")
        if not (0.0 <= self.discount < 1.0):
            raise ConfigurationError("discount must be in [0, 1)")
        if not (self.bucket_width > 0 and math.isfinite(self.bucket_width)):
            raise ConfigurationError("bucket_width must be positive")
        if self.perturbation_scale < 0:
            raise ConfigurationError("perturbation_scale must be non-negative")
        low, high = self.param_bounds
        if not (math.isfinite(low) and math.isfinite(high) and low < high):
            raise ConfigurationError("param_bounds must be a finite (low, high) pair")

    def with_overrides(self, **changes: Any) -> SearchConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SearchConfig:
        kwargs: Dict[str, Any] = {}
        for key in (
            "exploration_rate", "exploration_decay", "exploration_floor",
            "learning_rate", "discount", "bucket_width", "perturbation_scale",
        ):
            if key in data:
                kwargs[key] = float(data[key])
        if "param_bounds" in data:
            low, high = data["param_bounds"]
            kwargs["param_bounds"] = (float(low), float(high))
        if "rewards" in data:
            kwargs["rewards"] = RewardCoefficients.from_dict(data["rewards"])
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str) -> SearchConfig:
        """Load configuration from a JSON file (optionally under "search")."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Search config not found: {path}")

        with open(config_path) as f:
            data = json.load(f)

        return cls.from_dict(data.get("search", data))

    @classmethod
    def from_env(cls, base: Optional[SearchConfig] = None) -> SearchConfig:
        """
        Apply NAVAL_* environment overrides (NAVAL_EXPLORATION_RATE,
        NAVAL_EXPLORATION_DECAY, NAVAL_EXPLORATION_FLOOR, NAVAL_LEARNING_RATE,
        NAVAL_DISCOUNT, NAVAL_BUCKET_WIDTH) on top of a base configuration.
        """
        load_dotenv()
        base = base or cls()

        overrides: Dict[str, Any] = {}
        for key in (
            "exploration_rate", "exploration_decay", "exploration_floor",
            "learning_rate", "discount", "bucket_width",
        ):
            raw = os.getenv(ENV_PREFIX + key.upper())
            if raw is not None:
                overrides[key] = _parse_number(key, raw, float)

        return base.with_overrides(**overrides) if overrides else base


# =============================================================================
# HELPERS
# =============================================================================

def _parse_metric(value: Any) -> DistanceMetric:
    if isinstance(value, DistanceMetric):
        return value
    try:
        return DistanceMetric(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown distance metric: {value!r}") from None


def _parse_number(key: str, raw: str, cast: type) -> Any:
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{key.upper()} is not a valid number: {raw!r}") from None
