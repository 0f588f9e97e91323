#!/usr/bin/env python3

import argparse

from gridclash.core.config import load_config
from gridclash.game.game import Game


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run headless gridclash battles")
    parser.add_argument("--config", help="Battle configuration YAML (defaults to the packaged one)")
    parser.add_argument("--seed", type=int, help="Random seed overriding the configured one")
    parser.add_argument("--battles", type=int, default=1, help="Number of battles to run")
    parser.add_argument("--max-ticks", type=int, default=200_000,
                        help="Stop after this many ticks even if battles are unfinished")
    parser.add_argument("--debug", action="store_true", help="Show debug-level log messages")
    return parser.parse_args()


def main():
    args = parse_args()
    game = Game(load_config(args.config), seed=args.seed, debug=args.debug)

    try:
        outcomes = game.run(max_ticks=args.max_ticks, battles=args.battles)
    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user")
        return
    finally:
        for entry in game.log_manager.get_messages():
            print(entry.format(include_tick=True))

    print()
    for number, outcome in enumerate(outcomes, start=1):
        winner = "nobody" if outcome.winning_team is None else f"team {outcome.winning_team}"
        print(f"Battle {number}: {winner} won after {outcome.ticks} ticks, "
              f"survivors {list(outcome.surviving_unit_ids)}")
    if len(outcomes) < args.battles:
        print(f"Only {len(outcomes)} of {args.battles} battles finished within {args.max_ticks} ticks")

    game.shutdown()


if __name__ == "__main__":
    main()
