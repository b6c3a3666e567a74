from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .tiles import MULTISET_SIZE, Tile


def _validate_counts(counts: Sequence[int]) -> None:
    if len(counts) != MULTISET_SIZE:
        raise ValueError(f"multiset length must be {MULTISET_SIZE}")
    if any(c < 0 for c in counts):
        raise ValueError("multiset counts must be non-negative")


@dataclass
class TileMultiset:
    """Tile counts per kind: 52 suited kinds plus the joker."""

    counts: List[int]

    def __post_init__(self) -> None:
        _validate_counts(self.counts)

    @classmethod
    def from_tiles(cls, tiles: Iterable[Tile]) -> "TileMultiset":
        counts = [0] * MULTISET_SIZE
        for tile in tiles:
            counts[tile.kind()] += 1
        return cls(counts)

    def add(self, other: "TileMultiset") -> "TileMultiset":
        return TileMultiset([a + b for a, b in zip(self.counts, other.counts)])

    def key(self) -> Tuple[int, ...]:
        return tuple(self.counts)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TileMultiset) and self.counts == other.counts
