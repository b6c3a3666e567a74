from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, Iterator, Sequence, Tuple

from .meld import calculate_set_value, is_valid_set
from .tiles import Tile


@dataclass(frozen=True)
class TileSet:
    id: str
    tiles: Tuple[Tile, ...]

    def tile_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self.tiles)

    def is_valid(self) -> bool:
        return is_valid_set(self.tiles)

    def value(self) -> int:
        return calculate_set_value(self.tiles)


Board = Tuple[TileSet, ...]


def validate_board(sets: Iterable[TileSet]) -> bool:
    return all(s.is_valid() for s in sets)


def total_board_value(sets: Iterable[TileSet]) -> int:
    return sum(s.value() for s in sets)


def board_tiles(sets: Iterable[TileSet]) -> Iterator[Tile]:
    for tile_set in sets:
        yield from tile_set.tiles


def find_board_tile(sets: Iterable[TileSet], tile_id: str) -> Tile | None:
    for tile in board_tiles(sets):
        if tile.id == tile_id:
            return tile
    return None


def remove_tiles_from_board(sets: Sequence[TileSet], tile_ids: AbstractSet[str]) -> Board:
    """Drop the given tiles from their sets; sets left empty disappear."""
    remaining = []
    for tile_set in sets:
        kept = tuple(t for t in tile_set.tiles if t.id not in tile_ids)
        if kept:
            remaining.append(TileSet(tile_set.id, kept))
    return tuple(remaining)
