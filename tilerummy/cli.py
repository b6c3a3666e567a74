from __future__ import annotations

import argparse
import logging
import random
from typing import Optional

from .ai import execute_ai_turn
from .multiset import TileMultiset
from .rules import Ruleset
from .state import GameState, create_initial_game_state, tile_census
from .tiles import create_supply


def run_game(
    seed: Optional[int] = None, max_turns: int = 500, ruleset: Optional[Ruleset] = None
) -> tuple[GameState, int]:
    ruleset = ruleset or Ruleset()
    rng = random.Random(seed)
    state = create_initial_game_state(rng=rng, ruleset=ruleset, ai_players=[True] * ruleset.num_players)
    expected = TileMultiset.from_tiles(create_supply())
    turns = 0
    while not state.is_over and turns < max_turns:
        state = execute_ai_turn(state)
        turns += 1
        if tile_census(state) != expected:
            raise RuntimeError(f"tile conservation broken after turn {turns}")
    return state, turns


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Simulate a four-player tile rummy game between computer players.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible deck order.")
    parser.add_argument("--max-turns", type=int, default=500, help="Stop after this many turns.")
    parser.add_argument("--verbose", action="store_true", help="Log each game decision.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    state, turns = run_game(seed=args.seed, max_turns=args.max_turns)
    print(f"Game finished after {turns} turns")
    if state.winner is not None:
        print(f"Winner: {state.players[state.winner].name}")
    else:
        print("No winner (turn limit reached)")
    print("Rack sizes:", [len(p.rack) for p in state.players])
    print("Board sets:", len(state.board))
    print("Pool left:", len(state.pool))


if __name__ == "__main__":
    main()
