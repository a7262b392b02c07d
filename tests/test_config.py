"""
Tests for simulation and search configuration.
"""

import json

import pytest

from naval_battle.config import (
    ConfigurationError,
    RewardCoefficients,
    SearchConfig,
    ShipClassSpec,
    SimulationConfig,
)
from naval_battle.geometry import DistanceMetric, Position
from naval_battle.planner import TacticalPlanner
from naval_battle.strategy import StrategyParams


ENV_VARS = (
    "NAVAL_MAP_SIZE", "NAVAL_MAX_ROUNDS", "NAVAL_PLACEMENT_ATTEMPTS",
    "NAVAL_GEOMETRY_EPSILON", "NAVAL_MIN_SEPARATION", "NAVAL_DISTANCE_METRIC",
    "NAVAL_EXPLORATION_RATE", "NAVAL_EXPLORATION_DECAY", "NAVAL_EXPLORATION_FLOOR",
    "NAVAL_LEARNING_RATE", "NAVAL_DISCOUNT", "NAVAL_BUCKET_WIDTH",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# SIMULATION CONFIG
# =============================================================================

class TestSimulationConfig:
    """Tests for SimulationConfig defaults and validation."""

    def test_defaults(self):
        config = SimulationConfig()
        assert config.map_size == 40
        assert config.max_rounds == 100
        assert config.distance_metric is DistanceMetric.EUCLIDEAN
        assert config.min_separation == 2.0
        assert config.home_width == 13

    def test_default_classes(self):
        config = SimulationConfig()
        fast = config.ship_class("fast")
        assert (fast.max_health, fast.move_range, fast.cross_ammo, fast.square_ammo) == (3, 2, 0, 3)
        heavy = config.ship_class("heavy")
        assert (heavy.max_health, heavy.move_range, heavy.cross_ammo, heavy.square_ammo) == (5, 1, 2, 1)

    def test_small_map_home_width(self):
        assert SimulationConfig(map_size=3).home_width == 1

    @pytest.mark.parametrize("changes", [
        {"map_size": 2},
        {"max_rounds": -1},
        {"geometry_epsilon": 0.0},
        {"min_score_distance": 0.0},
        {"placement_attempts": 0},
        {"missile_damage": 0},
        {"fleet_a": (("battleship", 1),)},
        {"fleet_b": (("fast", 0),)},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(ConfigurationError):
            SimulationConfig(**changes)

    def test_unknown_class_lookup(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig().ship_class("submarine")

    def test_invalid_ship_class(self):
        with pytest.raises(ConfigurationError):
            ShipClassSpec("wreck", max_health=0, move_range=1, cross_ammo=0, square_ammo=0)

    def test_with_overrides(self):
        config = SimulationConfig().with_overrides(map_size=12)
        assert config.map_size == 12
        assert config.max_rounds == 100

    def test_from_dict(self):
        config = SimulationConfig.from_dict({
            "map_size": 16,
            "distance_metric": "Manhattan",
            "ship_classes": {
                "scout": {"max_health": 2, "move_range": 3, "square_ammo": 1},
            },
            "fleet_a": {"scout": 2},
            "fleet_b": {"scout": 1},
        })
        assert config.map_size == 16
        assert config.distance_metric is DistanceMetric.MANHATTAN
        assert config.ship_class("scout").cross_ammo == 0
        assert config.fleet_a == (("scout", 2),)

    def test_metric_name_is_normalised(self):
        config = SimulationConfig(map_size=10).with_overrides(distance_metric="manhattan")
        assert config.distance_metric is DistanceMetric.MANHATTAN
        planner = TacticalPlanner(StrategyParams(), config)
        assert planner._distance(Position(0, 0), Position(1, 1)) == 2.0

    def test_unknown_metric_rejected(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(distance_metric="bogus")
        with pytest.raises(ConfigurationError):
            SimulationConfig().with_overrides(distance_metric="bogus")

    def test_from_dict_unknown_metric(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_dict({"distance_metric": "chebyshev"})

    def test_from_json_section(self, tmp_path):
        path = tmp_path / "battle.json"
        path.write_text(json.dumps({"simulation": {"map_size": 20, "max_rounds": 5}}))
        config = SimulationConfig.from_json(str(path))
        assert config.map_size == 20
        assert config.max_rounds == 5

    def test_from_json_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SimulationConfig.from_json(str(tmp_path / "missing.json"))

    def test_from_env(self, clean_env):
        clean_env.setenv("NAVAL_MAP_SIZE", "18")
        clean_env.setenv("NAVAL_DISTANCE_METRIC", "manhattan")
        config = SimulationConfig.from_env()
        assert config.map_size == 18
        assert config.distance_metric is DistanceMetric.MANHATTAN

    def test_from_env_keeps_base(self, clean_env):
        base = SimulationConfig(map_size=14)
        assert SimulationConfig.from_env(base) is base

    def test_from_env_bad_number(self, clean_env):
        clean_env.setenv("NAVAL_MAX_ROUNDS", "lots")
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_env()


# =============================================================================
# SEARCH CONFIG
# =============================================================================

class TestSearchConfig:
    """Tests for SearchConfig and RewardCoefficients."""

    def test_defaults(self):
        config = SearchConfig()
        assert config.exploration_rate == 0.3
        assert config.exploration_decay == 0.995
        assert config.exploration_floor == 0.01
        assert config.param_bounds == (-2.0, 2.0)

    def test_enemy_losses_outweigh_own_health(self):
        rewards = RewardCoefficients()
        assert rewards.enemy_ship > rewards.own_health
        assert rewards.enemy_health > rewards.own_health

    @pytest.mark.parametrize("changes", [
        {"exploration_rate": 1.5},
        {"exploration_decay": 0.0},
        {"learning_rate": 0.0},
        {"discount": 1.0},
        {"bucket_width": 0.0},
        {"param_bounds": (1.0, -1.0)},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(ConfigurationError):
            SearchConfig(**changes)

    def test_from_dict_with_rewards(self):
        config = SearchConfig.from_dict({
            "exploration_rate": 0.5,
            "param_bounds": [-1, 1],
            "rewards": {"win_bonus": 50, "unknown": 3},
        })
        assert config.exploration_rate == 0.5
        assert config.param_bounds == (-1.0, 1.0)
        assert config.rewards.win_bonus == 50.0
        assert config.rewards.loss_penalty == 100.0

    def test_from_json_section(self, tmp_path):
        path = tmp_path / "search.json"
        path.write_text(json.dumps({"search": {"learning_rate": 0.2}}))
        assert SearchConfig.from_json(str(path)).learning_rate == 0.2

    def test_from_env(self, clean_env):
        clean_env.setenv("NAVAL_EXPLORATION_RATE", "0.0")
        assert SearchConfig.from_env().exploration_rate == 0.0
