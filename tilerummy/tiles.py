from __future__ import annotations

import itertools
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from .rules import DEFAULT_RULESET

JOKER_KIND = 52
MULTISET_SIZE = 53


class Color(str, Enum):
    RED = "red"
    BLUE = "blue"
    YELLOW = "yellow"
    BLACK = "black"
    JOKER = "joker"


SUITS: Tuple[Color, ...] = (Color.RED, Color.BLUE, Color.YELLOW, Color.BLACK)
_COLOR_ORDER = {color: idx for idx, color in enumerate(SUITS + (Color.JOKER,))}


@dataclass(frozen=True)
class Tile:
    id: str
    color: Color
    number: int = 0

    @property
    def is_joker(self) -> bool:
        return self.color is Color.JOKER

    def kind(self) -> int:
        """Index of the tile's (color, number) kind, 0..52; jokers share 52."""
        if self.is_joker:
            return JOKER_KIND
        return _COLOR_ORDER[self.color] * 13 + (self.number - 1)


class IdSource:
    """Deterministic id generator: ``tile-0``, ``tile-1``, ..."""

    def __init__(self, prefix: str = "tile", start: int = 0) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


def joker(tile_id: str) -> Tile:
    return Tile(tile_id, Color.JOKER, 0)


def create_supply(ids: Optional[IdSource] = None) -> List[Tile]:
    ids = ids or IdSource()
    ruleset = DEFAULT_RULESET
    tiles: List[Tile] = []
    for _ in range(ruleset.copies_per_tiletype):
        for color in SUITS[: ruleset.colors]:
            for number in range(1, ruleset.values + 1):
                tiles.append(Tile(ids(), color, number))
    for _ in range(ruleset.num_jokers):
        tiles.append(joker(ids()))
    return tiles


def shuffle(tiles: Sequence[Tile], rng: Optional[random.Random] = None) -> List[Tile]:
    rng = rng or random.Random()
    shuffled = list(tiles)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal(pool: Sequence[Tile], count: int) -> Tuple[List[Tile], List[Tile]]:
    if count < 0:
        raise ValueError("cannot deal a negative number of tiles")
    return list(pool[:count]), list(pool[count:])


def sort_tiles(tiles: Iterable[Tile]) -> List[Tile]:
    return sorted(tiles, key=lambda t: (_COLOR_ORDER[t.color], t.number))


def rack_value(tiles: Iterable[Tile], joker_penalty: int = DEFAULT_RULESET.joker_penalty) -> int:
    return sum(joker_penalty if t.is_joker else t.number for t in tiles)
