"""
Command-line interface for playing and simulating War Faire matches.

Usage examples:

    warfaire play --players 4 --seed 7
    warfaire simulate --matches 200 --players 5 --seed 1 --output stats.json
"""
from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Optional

from .agents import RandomAgent, match_callbacks
from .game import MAX_PLAYERS, MIN_PLAYERS, run_match
from .simulate import run_simulations


def _player_count(value: str) -> int:
    count = int(value)
    if not MIN_PLAYERS <= count <= MAX_PLAYERS:
        raise argparse.ArgumentTypeError(f"players must be within {MIN_PLAYERS}..{MAX_PLAYERS}")
    return count


def _add_play_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "play",
        help="Play one match between random agents and print the result.",
    )
    parser.add_argument(
        "--players",
        type=_player_count,
        default=4,
        help="Number of seats (2-10).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the deck and the agents.",
    )
    parser.add_argument(
        "--names",
        nargs="+",
        default=None,
        help="Player names (one per seat); defaults to 'Player 1', 'Player 2', ...",
    )
    parser.set_defaults(func=_cmd_play)


def _cmd_play(args: argparse.Namespace) -> None:
    names = args.names or [f"Player {i + 1}" for i in range(args.players)]
    if len(names) != args.players:
        raise SystemExit(f"--names needs {args.players} names, got {len(names)}")

    rng = random.Random(args.seed)
    agents = [RandomAgent(seed=rng.randrange(2**31)) for _ in names]
    get_play, choose_category = match_callbacks(agents)
    game = run_match(names, get_play, choose_category, rng=rng)

    print("Final standings:")
    for place, player in enumerate(game.standings(), start=1):
        print(f"  {place}. {player.name}: {player.total_vp} VP ({len(player.ribbons)} ribbons)")
    winner = game.get_winner()
    if winner is not None:
        print(f"Winner: {winner.name}")
        for ribbon in winner.ribbons:
            print(f"  {ribbon.type.value:<6} {ribbon.category:<10} {ribbon.vp} VP")
    if game.retired_categories:
        print(f"Retired categories: {', '.join(game.retired_categories)}")


def _add_simulate_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "simulate",
        help="Play many matches between random agents and report VP statistics.",
    )
    parser.add_argument(
        "--matches",
        type=int,
        default=100,
        help="Number of matches to play.",
    )
    parser.add_argument(
        "--players",
        type=_player_count,
        default=4,
        help="Number of seats (2-10).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Master random seed.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Optional JSON file for the summary.",
    )
    parser.set_defaults(func=_cmd_simulate)


def _cmd_simulate(args: argparse.Namespace) -> None:
    summary = run_simulations(args.matches, player_count=args.players, seed=args.seed)
    stats = summary.to_dict()
    print(f"Matches: {stats['matches']}")
    for i, name in enumerate(stats["players"]):
        print(
            f"  {name}: mean VP {stats['mean_vp'][i]:.2f} "
            f"(std {stats['std_vp'][i]:.2f}), win rate {stats['win_rate'][i]:.1%}"
        )
    print(f"Mean winning VP: {stats['mean_winning_vp']:.2f}")
    print(f"Mean categories retired: {stats['mean_retirements']:.2f}")

    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8") as f:
            json.dump(stats, f, indent=2)
        print(f"Saved summary to {out_path.resolve()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="warfaire", description="War Faire match runner.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (INFO prints the match log).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_play_parser(subparsers)
    _add_simulate_parser(subparsers)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
