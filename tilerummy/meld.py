from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .rules import DEFAULT_RULESET
from .tiles import Tile

MAX_NUMBER = DEFAULT_RULESET.values


class SetKind(str, Enum):
    RUN = "run"
    GROUP = "group"
    INVALID = "invalid"


@dataclass(frozen=True)
class Validation:
    is_valid: bool
    kind: SetKind
    value: int


@dataclass(frozen=True)
class _RunShape:
    start: int
    end: int
    extend_before: int
    extend_after: int


def _split(tiles: Sequence[Tile]) -> Tuple[List[Tile], List[Tile]]:
    jokers = [t for t in tiles if t.is_joker]
    suited = [t for t in tiles if not t.is_joker]
    return jokers, suited


def _run_shape(tiles: Sequence[Tile]) -> Optional[_RunShape]:
    """Resolve where a run's jokers sit, or None if the tiles are not a run."""
    if len(tiles) < 3:
        return None
    jokers, suited = _split(tiles)
    if not suited:
        return None
    if len({t.color for t in suited}) != 1:
        return None

    numbers = sorted(t.number for t in suited)
    if len(set(numbers)) != len(numbers):
        return None

    gaps_needed = sum(b - a - 1 for a, b in zip(numbers, numbers[1:]))
    if gaps_needed > len(jokers):
        return None

    start, end = numbers[0], numbers[-1]
    jokers_to_extend = len(jokers) - gaps_needed
    if jokers_to_extend > (start - 1) + (MAX_NUMBER - end):
        return None
    if (end - start + 1) + jokers_to_extend != len(tiles):
        return None

    # lower numbers first
    extend_before = min(jokers_to_extend, start - 1)
    return _RunShape(start, end, extend_before, jokers_to_extend - extend_before)


def is_valid_run(tiles: Sequence[Tile]) -> bool:
    return _run_shape(tiles) is not None


def is_valid_group(tiles: Sequence[Tile]) -> bool:
    if len(tiles) not in (3, 4):
        return False
    _, suited = _split(tiles)
    if not suited:
        return False
    if len({t.number for t in suited}) != 1:
        return False
    return len({t.color for t in suited}) == len(suited)


def is_valid_set(tiles: Sequence[Tile]) -> bool:
    return is_valid_run(tiles) or is_valid_group(tiles)


def _run_value(shape: _RunShape) -> int:
    first = shape.start - shape.extend_before
    last = shape.end + shape.extend_after
    return sum(range(first, last + 1))


def _group_value(tiles: Sequence[Tile]) -> int:
    _, suited = _split(tiles)
    return suited[0].number * len(tiles)


def calculate_set_value(tiles: Sequence[Tile]) -> int:
    """Point value of a legal set, 0 for anything else.

    Jokers take the number they stand for. When a run's spare jokers could sit
    at either end they are counted below the lowest suited tile first.
    """
    shape = _run_shape(tiles)
    if shape is not None:
        return _run_value(shape)
    if is_valid_group(tiles):
        return _group_value(tiles)
    return 0


def arrange_run(tiles: Sequence[Tile]) -> Optional[List[Tile]]:
    """Canonical run order: low jokers, suited tiles with gap jokers, high jokers."""
    shape = _run_shape(tiles)
    if shape is None:
        return None
    jokers, suited = _split(tiles)
    suited = sorted(suited, key=lambda t: t.number)
    spare = iter(jokers)

    arranged: List[Tile] = [next(spare) for _ in range(shape.extend_before)]
    by_number = {t.number: t for t in suited}
    for number in range(shape.start, shape.end + 1):
        arranged.append(by_number[number] if number in by_number else next(spare))
    arranged.extend(next(spare) for _ in range(shape.extend_after))
    return arranged


def validate_tile_set(tiles: Sequence[Tile]) -> Validation:
    shape = _run_shape(tiles)
    if shape is not None:
        return Validation(True, SetKind.RUN, _run_value(shape))
    if is_valid_group(tiles):
        return Validation(True, SetKind.GROUP, _group_value(tiles))
    return Validation(False, SetKind.INVALID, 0)
