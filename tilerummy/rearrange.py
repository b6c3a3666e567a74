from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Callable, List, Optional, Sequence, Tuple

from .meld import arrange_run, is_valid_set
from .multiset import TileMultiset
from .table import TileSet, board_tiles
from .tiles import SUITS, Tile, sort_tiles

logger = logging.getLogger(__name__)

TileList = List[Tile]
_Taker = Callable[[TileList], Tuple[List[TileList], TileList]]


@dataclass(frozen=True)
class Rearrangement:
    rack_tiles: Tuple[Tile, ...]
    sets: Tuple[Tuple[Tile, ...], ...]

    def rack_tile_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self.rack_tiles)


def _take_groups(pool: TileList) -> Tuple[List[TileList], TileList]:
    found: List[TileList] = []
    remaining = list(pool)
    for number in range(1, 14):
        while True:
            distinct: TileList = []
            for tile in remaining:
                if tile.number == number and not tile.is_joker and all(t.color is not tile.color for t in distinct):
                    distinct.append(tile)
            if len(distinct) < 3:
                break
            group = distinct[:4]
            ids = {t.id for t in group}
            remaining = [t for t in remaining if t.id not in ids]
            found.append(group)
    return found, remaining


def _first_streak(numbers: Sequence[int]) -> List[int]:
    streak: List[int] = []
    for number in numbers:
        if streak and number != streak[-1] + 1:
            if len(streak) >= 3:
                return streak
            streak = []
        streak.append(number)
    return streak if len(streak) >= 3 else []


def _take_runs(pool: TileList) -> Tuple[List[TileList], TileList]:
    found: List[TileList] = []
    remaining = list(pool)
    for color in SUITS:
        while True:
            suited = [t for t in remaining if t.color is color]
            streak = _first_streak(sorted({t.number for t in suited}))
            if not streak:
                break
            run = []
            for number in streak:
                run.append(next(t for t in suited if t.number == number))
            ids = {t.id for t in run}
            remaining = [t for t in remaining if t.id not in ids]
            found.append(run)
    return found, remaining


def _attach_leftovers(sets: List[TileList], leftover: TileList) -> Tuple[List[TileList], TileList]:
    unplaced: TileList = []
    # suited tiles first so jokers stay free for whatever is still stuck
    for tile in sorted(leftover, key=lambda t: t.is_joker):
        for idx, tile_set in enumerate(sets):
            candidate = tile_set + [tile]
            if is_valid_set(candidate):
                sets[idx] = arrange_run(candidate) or candidate
                break
        else:
            unplaced.append(tile)

    jokers = [t for t in unplaced if t.is_joker]
    suited = [t for t in unplaced if not t.is_joker]
    while jokers and len(suited) >= 2:
        formed = None
        for pair in combinations(suited, 2):
            for count in range(1, len(jokers) + 1):
                candidate = list(pair) + jokers[:count]
                if is_valid_set(candidate):
                    formed = candidate
                    break
            if formed:
                break
        if formed is None:
            break
        ids = {t.id for t in formed}
        sets.append(arrange_run(formed) or formed)
        jokers = [t for t in jokers if t.id not in ids]
        suited = [t for t in suited if t.id not in ids]
    return sets, suited + jokers


def _greedy(tiles: TileList, order: Sequence[_Taker]) -> Tuple[List[TileList], TileList]:
    sets: List[TileList] = []
    pool = sort_tiles(tiles)
    for take in order:
        found, pool = take(pool)
        sets.extend(found)
    return _attach_leftovers(sets, pool)


def partition(tiles: Sequence[Tile]) -> Optional[List[TileList]]:
    """Split ``tiles`` into valid sets using every tile, or return None.

    Groups are formed before runs; if that strands tiles the runs-first order
    is tried instead.
    """
    for order in ((_take_groups, _take_runs), (_take_runs, _take_groups)):
        sets, leftover = _greedy(list(tiles), order)
        if not leftover:
            return sets
    return None


def _touches_board(tile: Tile, board_pool: Sequence[Tile]) -> bool:
    if tile.is_joker:
        return True
    for other in board_pool:
        if other.is_joker:
            return True
        if other.color is tile.color and abs(other.number - tile.number) <= 2:
            return True
        if other.number == tile.number and other.color is not tile.color:
            return True
    return False


def find_rearrangement(rack: Sequence[Tile], board: Sequence[TileSet], budget: int) -> Optional[Rearrangement]:
    """Largest rack subset that can be merged into the board, repartitioned.

    Only rack tiles with a neighbour on the board (same suit within two, or
    same number) and jokers take part. Tiles that fit the board on their own
    are tried first. At most ``budget`` partitions are attempted, shared out
    across subset sizes so the small sizes always get a turn.
    """
    board_pool = list(board_tiles(board))
    if not board_pool:
        return None
    usable = [t for t in rack if _touches_board(t, board_pool)]
    fits_alone = {t.id for t in usable if partition(board_pool + [t]) is not None}
    usable.sort(key=lambda t: t.id not in fits_alone)

    remaining = budget
    for size in range(len(usable), 0, -1):
        # unused share carries over to the smaller sizes
        share = remaining // size
        attempts = 0
        seen = set()
        for subset in combinations(usable, size):
            key = TileMultiset.from_tiles(subset).key()
            if key in seen:
                continue
            seen.add(key)
            if attempts >= share:
                logger.debug("Rearrangement search of size %d stopped after %d attempts", size, attempts)
                break
            attempts += 1
            sets = partition(board_pool + list(subset))
            if sets is not None:
                return Rearrangement(tuple(subset), tuple(tuple(s) for s in sets))
        remaining -= attempts
    return None
