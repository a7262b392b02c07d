"""
Tests for move and attack scoring.

Tests cover:
- Move legality (bounds, occupancy, separation)
- Move scoring terms (distances, blocking, open lines of fire)
- Attack candidate generation and cell weighting
- Friendly-fire and blocked-path vetoes
- End-to-end two-ship attack choice
"""

import pytest

from naval_battle.config import ShipClassSpec, SimulationConfig
from naval_battle.geometry import DistanceMetric, Position
from naval_battle.missiles import MissileKind, damage_area
from naval_battle.planner import TacticalPlanner
from naval_battle.ships import Ship, ShipView, Side
from naval_battle.strategy import StrategyParams


MAP_SIZE = 10


def make_view(
    ship_id, side, x, y, health=4, move_range=1, cross=1, square=1, map_size=MAP_SIZE
):
    """Snapshot of a freshly built ship at (x, y)."""
    spec = ShipClassSpec("test", max_health=max(health, 1), move_range=move_range,
                         cross_ammo=cross, square_ammo=square)
    ship = Ship(ship_id, side, spec, map_size, position=Position(x, y))
    ship.health = health
    return ship.view()


@pytest.fixture
def config():
    return SimulationConfig(map_size=MAP_SIZE)


@pytest.fixture
def planner(config):
    return TacticalPlanner(StrategyParams(), config)


# =============================================================================
# MOVE LEGALITY
# =============================================================================

class TestMoveLegality:
    """Tests for is_legal_destination."""

    def test_separation_from_allies(self, planner):
        ship = make_view("A1", Side.A, 2, 2)
        ally = make_view("A2", Side.A, 5, 5)
        assert not planner.is_legal_destination(ship, Position(5, 5), [ship, ally])
        assert not planner.is_legal_destination(ship, Position(6, 5), [ship, ally])
        # Diagonal neighbour is closer than 2 under the Euclidean metric
        assert not planner.is_legal_destination(ship, Position(6, 6), [ship, ally])
        assert planner.is_legal_destination(ship, Position(7, 5), [ship, ally])

    def test_manhattan_metric_separation(self, config):
        planner = TacticalPlanner(
            StrategyParams(), config.with_overrides(distance_metric=DistanceMetric.MANHATTAN)
        )
        ship = make_view("A1", Side.A, 2, 2)
        ally = make_view("A2", Side.A, 5, 5)
        assert planner.is_legal_destination(ship, Position(6, 6), [ship, ally])

    def test_off_grid_is_illegal(self, planner):
        ship = make_view("A1", Side.A, 0, 0)
        assert not planner.is_legal_destination(ship, Position(-1, 0), [ship])

    def test_own_cell_is_legal(self, planner):
        ship = make_view("A1", Side.A, 4, 4)
        assert planner.is_legal_destination(ship, Position(4, 4), [ship])

    def test_dead_allies_do_not_constrain(self, planner):
        ship = make_view("A1", Side.A, 2, 2)
        wreck = make_view("A2", Side.A, 5, 5, health=0)
        assert planner.is_legal_destination(ship, Position(5, 6), [ship, wreck])


# =============================================================================
# MOVE SCORING
# =============================================================================

class TestMoveScoring:
    """Tests for evaluate_move and its terms."""

    @pytest.fixture
    def tuned(self, config):
        params = StrategyParams(
            health_weight=1.0,
            missile_weight=0.0,
            block_weight=2.0,
            target_weight=-1.0,
            enemy_distance_weight=1.0,
            ally_distance_weight=0.5,
            attack_threshold=-100.0,
        )
        return TacticalPlanner(params, config)

    def test_blocked_lines(self, planner):
        ship = make_view("A1", Side.A, 5, 5)
        ally = make_view("A2", Side.A, 4, 0)
        enemy = make_view("B1", Side.B, 0, 0)
        allies = [ship, ally]
        assert planner.count_blocked_lines(ship, Position(2, 0), allies, [enemy]) == 1
        assert planner.count_blocked_lines(ship, Position(2, 1), allies, [enemy]) == 0

    def test_directly_targeted(self, planner):
        ship = make_view("A1", Side.A, 5, 5)
        enemy = make_view("B1", Side.B, 0, 0)
        assert planner.is_directly_targeted(ship, Position(3, 0), [ship], [enemy])

    def test_line_of_fire_obstructed_by_ally(self, planner):
        ship = make_view("A1", Side.A, 5, 5)
        ally = make_view("A2", Side.A, 1, 0)
        enemy = make_view("B1", Side.B, 0, 0)
        assert not planner.is_directly_targeted(ship, Position(3, 0), [ship, ally], [enemy])

    def test_line_of_fire_obstructed_by_other_enemy(self, planner):
        ship = make_view("A1", Side.A, 5, 5)
        shooter = make_view("B1", Side.B, 0, 0)
        screen = make_view("B2", Side.B, 1, 0)
        # B2 still has its own open line onto (3, 0)
        assert planner.is_directly_targeted(ship, Position(3, 0), [ship], [shooter, screen])

    def test_score_terms(self, tuned):
        ship = make_view("A1", Side.A, 5, 5, health=3)
        ally = make_view("A2", Side.A, 4, 0)
        enemy = make_view("B1", Side.B, 0, 0)
        score = tuned.evaluate_move(ship, Position(2, 0), [ship, ally], [enemy])
        # 1/2 enemy distance + 0.5/2 ally distance + one block (2 * 3) - targeted (3)
        assert score == pytest.approx(0.5 + 0.25 + 6.0 - 3.0)

    def test_distance_floor(self, tuned):
        ship = make_view("A1", Side.A, 5, 5, health=3)
        enemy = make_view("B1", Side.B, 0, 0, health=0)
        alive = make_view("B2", Side.B, 2, 0)
        score = tuned.evaluate_move(ship, Position(2, 0), [ship], [enemy, alive])
        # Distance 0 is floored to 1; the dead enemy contributes nothing
        assert score == pytest.approx(1.0 - 3.0)

    def test_evaluation_is_pure(self, planner):
        ship = make_view("A1", Side.A, 5, 5)
        enemy = make_view("B1", Side.B, 0, 0)
        first = planner.evaluate_move(ship, Position(5, 6), [ship], [enemy])
        second = planner.evaluate_move(ship, Position(5, 6), [ship], [enemy])
        assert first == second


class TestChooseMove:
    """Tests for choose_move."""

    def test_no_move_above_threshold(self, config):
        planner = TacticalPlanner(StrategyParams(attack_threshold=1e9), config)
        ship = make_view("A1", Side.A, 5, 5)
        enemy = make_view("B1", Side.B, 0, 0)
        assert planner.choose_move(ship, [ship], [enemy]) is None

    def test_chosen_move_is_legal(self, config):
        planner = TacticalPlanner(StrategyParams(attack_threshold=-1e9), config)
        ship = make_view("A1", Side.A, 5, 5)
        ally = make_view("A2", Side.A, 5, 7)
        enemy = make_view("B1", Side.B, 9, 9)
        choice = planner.choose_move(ship, [ship, ally], [enemy])
        assert choice is not None
        assert choice.destination in ship.reachable
        assert choice.destination != Position(5, 6)
        assert planner.is_legal_destination(ship, choice.destination, [ship, ally])

    def test_dead_ship_does_not_move(self, planner):
        ship = make_view("A1", Side.A, 5, 5, health=0)
        assert planner.choose_move(ship, [ship], [make_view("B1", Side.B, 0, 0)]) is None


# =============================================================================
# ATTACK SCORING
# =============================================================================

class TestAttackScoring:
    """Tests for candidate targets, weights and vetoes."""

    def test_cell_weights_split_value(self, planner):
        enemy = make_view("B1", Side.B, 5, 5, health=4, cross=1, square=1)
        weights = planner.cell_weights([enemy])
        assert set(weights) == enemy.reachable
        assert sum(weights.values()) == pytest.approx(enemy.value(planner.params))

    def test_enemy_without_moves_contributes_nothing(self, planner):
        stuck = ShipView(
            ship_id="B9", side=Side.B, ship_class="test", position=Position(1, 1),
            health=2, move_range=0, ammo={}, reachable=frozenset(),
        )
        assert planner.cell_weights([stuck]) == {}
        assert planner.candidate_targets([stuck]) == []

    def test_candidate_targets_union(self, planner):
        first = make_view("B1", Side.B, 5, 5)
        second = make_view("B2", Side.B, 5, 6)
        targets = planner.candidate_targets([first, second])
        assert set(targets) == first.reachable | second.reachable
        assert targets == sorted(targets)

    def test_footprint_covering_ally_is_vetoed(self, planner):
        shooter = make_view("A1", Side.A, 0, 0)
        ally = make_view("A2", Side.A, 4, 1)
        enemy = make_view("B1", Side.B, 5, 1, move_range=0)
        allies = [shooter, ally]
        for kind in MissileKind:
            assert planner.evaluate_attack(shooter, Position(5, 1), kind, allies, [enemy]) is None
        assert planner.choose_attack(shooter, allies, [enemy]) is None

    def test_ally_in_path_is_vetoed(self, planner):
        shooter = make_view("A1", Side.A, 0, 0)
        ally = make_view("A2", Side.A, 2, 0)
        enemy = make_view("B1", Side.B, 5, 0, move_range=0)
        allies = [shooter, ally]
        assert not planner.is_path_clear(shooter, Position(5, 0), allies)
        assert planner.choose_attack(shooter, allies, [enemy]) is None

    def test_shooter_never_hits_itself(self, planner):
        shooter = make_view("A1", Side.A, 0, 0)
        enemy = make_view("B1", Side.B, 1, 0, move_range=0)
        assert planner.would_hit_ally(Position(1, 0), MissileKind.CROSS, [shooter])
        assert planner.choose_attack(shooter, [shooter], [enemy]) is None

    def test_no_ammo_no_attack(self, planner):
        shooter = make_view("A1", Side.A, 0, 0, cross=0, square=0)
        enemy = make_view("B1", Side.B, 5, 0)
        assert planner.choose_attack(shooter, [shooter], [enemy]) is None

    def test_empty_kind_is_not_scored(self, planner):
        shooter = make_view("A1", Side.A, 0, 0, cross=0, square=1)
        enemy = make_view("B1", Side.B, 5, 0)
        allies = [shooter]
        assert planner.evaluate_attack(shooter, Position(5, 0), MissileKind.CROSS, allies, [enemy]) is None
        assert planner.evaluate_attack(shooter, Position(5, 0), MissileKind.SQUARE, allies, [enemy]) > 0

    def test_worthless_enemies_are_not_attacked(self, config):
        params = StrategyParams(health_weight=0.0, missile_weight=0.0, attack_threshold=-10.0)
        planner = TacticalPlanner(params, config)
        shooter = make_view("A1", Side.A, 0, 0)
        enemy = make_view("B1", Side.B, 5, 0)
        assert planner.choose_attack(shooter, [shooter], [enemy]) is None

    def test_choice_is_pure(self, planner):
        shooter = make_view("A1", Side.A, 0, 0)
        enemies = [make_view("B1", Side.B, 6, 2), make_view("B2", Side.B, 7, 6)]
        first = planner.choose_attack(shooter, [shooter], enemies)
        second = planner.choose_attack(shooter, [shooter], enemies)
        assert first == second


# =============================================================================
# END-TO-END
# =============================================================================

class TestTwoShipScenario:
    """A single armed ship facing a single enemy on a 10x10 grid."""

    @pytest.fixture
    def shooter(self):
        return make_view("A1", Side.A, 0, 0, health=3, move_range=2, cross=1, square=0)

    @pytest.fixture
    def target(self):
        return make_view("B1", Side.B, 3, 0, health=4, move_range=1, cross=0, square=0)

    def test_attack_aims_at_reachable_cell(self, planner, shooter, target):
        order = planner.choose_attack(shooter, [shooter], [target])
        assert order is not None
        assert order.ship_id == "A1"
        assert order.origin == Position(0, 0)
        assert order.kind is MissileKind.CROSS
        assert order.target in target.reachable
        assert order.score > 0

    def test_attack_footprint_spares_shooter(self, planner, shooter, target):
        order = planner.choose_attack(shooter, [shooter], [target])
        assert shooter.position not in damage_area(order.kind, order.target, MAP_SIZE)

    def test_attack_score_matches_evaluation(self, planner, shooter, target):
        order = planner.choose_attack(shooter, [shooter], [target])
        score = planner.evaluate_attack(shooter, order.target, order.kind, [shooter], [target])
        assert score == pytest.approx(order.score)
