#!/usr/bin/env python3
"""
Tune both fleets' strategy weights through repeated self-play.

Usage:
    python scripts/train_strategies.py --episodes 500 --seed 1
    python scripts/train_strategies.py --episodes 200 --map-size 20 --output results/run1
"""

import argparse
import json
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from naval_battle.config import ConfigurationError, SearchConfig, SimulationConfig
from naval_battle.player import PlacementError
from naval_battle.search import EpisodeRecord, SelfPlayTrainer


def main():
    parser = argparse.ArgumentParser(
        description="Self-play parameter search for naval battle strategy weights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--episodes", type=int, default=100, help="Episodes to play (default: 100)")
    parser.add_argument("--seed", type=int, default=None, help="Base seed (random if omitted)")
    parser.add_argument("--config", help="JSON file with optional 'simulation' and 'search' sections")
    parser.add_argument("--map-size", type=int, help="Grid side length (default: 40)")
    parser.add_argument("--max-rounds", type=int, help="Round limit (default: 100)")
    parser.add_argument("--exploration", type=float, help="Initial exploration rate (default: 0.3)")
    parser.add_argument(
        "--report-every",
        type=int,
        default=10,
        help="Print progress every N episodes (0 disables, default: 10)",
    )
    parser.add_argument("--output", help="Directory for history.json and best_a/best_b.json")

    args = parser.parse_args()

    try:
        sim_config = SimulationConfig.from_json(args.config) if args.config else SimulationConfig()
        search_config = SearchConfig.from_json(args.config) if args.config else SearchConfig()
        sim_config = SimulationConfig.from_env(sim_config)
        search_config = SearchConfig.from_env(search_config)

        sim_overrides = {}
        if args.map_size is not None:
            sim_overrides["map_size"] = args.map_size
        if args.max_rounds is not None:
            sim_overrides["max_rounds"] = args.max_rounds
        if sim_overrides:
            sim_config = sim_config.with_overrides(**sim_overrides)
        if args.exploration is not None:
            search_config = search_config.with_overrides(exploration_rate=args.exploration)

        trainer = SelfPlayTrainer(sim_config, search_config, seed=args.seed)
        print(f"Self-play search: {args.episodes} episodes, seed {trainer.seed}")

        def report(record: EpisodeRecord) -> None:
            if args.report_every and (record.episode + 1) % args.report_every == 0:
                result = record.result
                print(
                    f"  Episode {record.episode + 1:5d}: winner={result.winner.value:4s} "
                    f"rounds={result.rounds:3d} "
                    f"ships A/B={result.ships_remaining_a}/{result.ships_remaining_b} "
                    f"reward A/B={record.reward_a:+8.1f}/{record.reward_b:+8.1f} "
                    f"explore={trainer.agent_a.exploration_rate:.3f}"
                )

        trainer.train(args.episodes, on_episode=report)

        summary = trainer.summary()
        print("\n--- Summary ---")
        print(f"Wins: {summary['wins']}")
        print(f"Best A ({summary['best_value_a'] or 0.0:.2f}): {trainer.agent_a.current_best}")
        print(f"Best B ({summary['best_value_b'] or 0.0:.2f}): {trainer.agent_b.current_best}")

        if args.output:
            out_dir = Path(args.output)
            out_dir.mkdir(parents=True, exist_ok=True)
            with open(out_dir / "history.json", "w") as f:
                json.dump([r.to_dict() for r in trainer.history], f, indent=2)
            with open(out_dir / "best_a.json", "w") as f:
                json.dump(trainer.agent_a.current_best.to_dict(), f, indent=2)
            with open(out_dir / "best_b.json", "w") as f:
                json.dump(trainer.agent_b.current_best.to_dict(), f, indent=2)
            print(f"Saved results to {out_dir}")

        return 0

    except (ConfigurationError, PlacementError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
