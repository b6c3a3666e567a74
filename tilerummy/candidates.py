from __future__ import annotations

from itertools import combinations
from typing import Dict, Iterable, List, Sequence

from .meld import SetKind, arrange_run, calculate_set_value, is_valid_group
from .move import Play
from .tiles import SUITS, Tile

MAX_RUN_JOKERS = 2


def _run_plays_for_window(window: Sequence[Tile], jokers: Sequence[Tile]) -> Iterable[Play]:
    for joker_count in range(min(len(jokers), MAX_RUN_JOKERS) + 1):
        if len(window) + joker_count < 3:
            continue
        arranged = arrange_run(list(window) + list(jokers[:joker_count]))
        if arranged is None:
            continue
        yield Play(tuple(arranged), calculate_set_value(arranged), SetKind.RUN)


def _run_plays(rack: Sequence[Tile], jokers: Sequence[Tile]) -> Iterable[Play]:
    for color in SUITS:
        by_number: Dict[int, Tile] = {}
        for tile in rack:
            if tile.color is color:
                # one copy per number; a second copy never fits the same run
                by_number.setdefault(tile.number, tile)
        suited = [by_number[n] for n in sorted(by_number)]
        for start in range(len(suited)):
            # pairs are included so jokers can complete them
            for end in range(start + 2, len(suited) + 1):
                yield from _run_plays_for_window(suited[start:end], jokers)


def _group_plays(rack: Sequence[Tile], jokers: Sequence[Tile]) -> Iterable[Play]:
    by_number: Dict[int, List[Tile]] = {}
    for tile in rack:
        if tile.is_joker:
            continue
        same = by_number.setdefault(tile.number, [])
        if all(t.color is not tile.color for t in same):
            same.append(tile)

    for number in sorted(by_number):
        distinct = sorted(by_number[number], key=lambda t: SUITS.index(t.color))
        for size in (3, 4):
            for combo in combinations(distinct, size):
                yield Play(tuple(combo), calculate_set_value(combo), SetKind.GROUP)
        for size in (2, 3):
            for combo in combinations(distinct, size):
                for joker_count in range(1, len(jokers) + 1):
                    tiles = combo + tuple(jokers[:joker_count])
                    if is_valid_group(tiles):
                        yield Play(tiles, calculate_set_value(tiles), SetKind.GROUP)


def find_possible_plays(rack: Sequence[Tile]) -> List[Play]:
    """Every run and group the rack can form on its own, best first.

    The sort is stable, so plays of equal value keep their enumeration order:
    runs by suit, then groups by number.
    """
    jokers = [t for t in rack if t.is_joker]
    plays = list(_run_plays(rack, jokers))
    plays.extend(_group_plays(rack, jokers))
    plays.sort(key=lambda p: p.value, reverse=True)
    return plays
