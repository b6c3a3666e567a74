from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .meld import SetKind
from .tiles import Tile


@dataclass(frozen=True)
class Play:
    """A set the planner could lay down straight from a rack."""

    tiles: Tuple[Tile, ...]
    value: int
    kind: SetKind

    def tile_ids(self) -> Tuple[str, ...]:
        return tuple(t.id for t in self.tiles)
