#!/usr/bin/env python3
"""
Run a single narrated naval battle.

Usage:
    python scripts/run_battle.py
    python scripts/run_battle.py --seed 7 --map-size 20 --max-rounds 50
    python scripts/run_battle.py --config battle.json --params-a weights_a.json --quiet
"""

import argparse
import json
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from naval_battle.config import ConfigurationError, SimulationConfig
from naval_battle.game import Game
from naval_battle.geometry import DistanceMetric
from naval_battle.narration import BattleNarrator, render_result
from naval_battle.player import PlacementError
from naval_battle.strategy import InvalidStrategyError, StrategyParams


def load_params(path: str) -> StrategyParams:
    """Load strategy weights from a JSON object of field -> value."""
    with open(path) as f:
        return StrategyParams.from_dict(json.load(f))


def main():
    parser = argparse.ArgumentParser(
        description="Run a single naval battle between two weighted AI fleets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_battle.py --seed 3
    python scripts/run_battle.py --map-size 16 --no-map
    python scripts/run_battle.py --params-a best_a.json --params-b best_b.json --quiet
        """,
    )

    # Configuration
    parser.add_argument("--config", help="JSON simulation config (NAVAL_* env vars apply on top)")
    parser.add_argument("--map-size", type=int, help="Grid side length (default: 40)")
    parser.add_argument("--max-rounds", type=int, help="Round limit (default: 100)")
    parser.add_argument(
        "--metric",
        choices=["euclidean", "manhattan"],
        help="Distance metric for scoring and separation (default: euclidean)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Placement seed")

    # Strategy weights
    parser.add_argument("--params-a", help="JSON weights for side A")
    parser.add_argument("--params-b", help="JSON weights for side B")

    # Output
    parser.add_argument("--no-map", action="store_true", help="Omit the ASCII map from round reports")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode (only show result)")
    parser.add_argument("--json", action="store_true", help="Print the result record as JSON")

    args = parser.parse_args()

    try:
        config = SimulationConfig.from_json(args.config) if args.config else SimulationConfig()
        config = SimulationConfig.from_env(config)
        overrides = {}
        if args.map_size is not None:
            overrides["map_size"] = args.map_size
        if args.max_rounds is not None:
            overrides["max_rounds"] = args.max_rounds
        if args.metric is not None:
            overrides["distance_metric"] = DistanceMetric(args.metric)
        if overrides:
            config = config.with_overrides(**overrides)

        params_a = load_params(args.params_a) if args.params_a else StrategyParams()
        params_b = load_params(args.params_b) if args.params_b else StrategyParams()

        game = Game(config, params_a, params_b, seed=args.seed)
        if not args.quiet:
            BattleNarrator(game, stream=sys.stdout, show_map=not args.no_map)

        result = game.run()

        if args.quiet:
            for line in render_result(result):
                print(line)
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))

        return 0

    except (ConfigurationError, InvalidStrategyError, PlacementError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
