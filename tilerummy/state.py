from __future__ import annotations

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from .meld import SetKind
from .multiset import TileMultiset
from .rules import DEFAULT_RULESET, Ruleset
from .table import Board, board_tiles
from .tiles import IdSource, Tile, create_supply, deal, shuffle, sort_tiles


class TurnState(str, Enum):
    SELECTING = "selecting"
    STAGING = "staging"
    AI_THINKING = "ai-thinking"


class GamePhase(str, Enum):
    PLAYING = "playing"
    ENDED = "ended"


@dataclass(frozen=True)
class Player:
    id: int
    name: str
    rack: Tuple[Tile, ...]
    has_played_initial_meld: bool = False
    is_ai: bool = False


@dataclass(frozen=True)
class StagedSet:
    id: str
    tiles: Tuple[Tile, ...]
    is_valid: bool
    kind: SetKind
    value: int
    from_rack: Tuple[str, ...]
    from_board: Tuple[str, ...]


@dataclass(frozen=True)
class GameState:
    players: Tuple[Player, ...]
    current_player_index: int
    board: Board
    pool: Tuple[Tile, ...]
    selected_tiles: Tuple[str, ...] = ()
    selected_board_tiles: Tuple[str, ...] = ()
    staged_sets: Tuple[StagedSet, ...] = ()
    turn_state: TurnState = TurnState.SELECTING
    board_before_turn: Board = ()
    rack_before_turn: Tuple[Tile, ...] = ()
    points_this_turn: int = 0
    consecutive_passes: int = 0
    game_phase: GamePhase = GamePhase.PLAYING
    winner: Optional[int] = None
    ruleset: Ruleset = DEFAULT_RULESET
    next_id: int = 0

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def is_over(self) -> bool:
        return self.game_phase is GamePhase.ENDED

    def mint_id(self, prefix: str) -> Tuple[str, "GameState"]:
        """Return a fresh id and the state whose counter has moved past it."""
        return f"{prefix}-{self.next_id}", replace(self, next_id=self.next_id + 1)

    def with_player(self, index: int, **changes) -> "GameState":
        players = list(self.players)
        players[index] = replace(players[index], **changes)
        return replace(self, players=tuple(players))

    def with_current_player(self, **changes) -> "GameState":
        return self.with_player(self.current_player_index, **changes)


def create_initial_game_state(
    rng: Optional[random.Random] = None,
    ids: Optional[IdSource] = None,
    ruleset: Optional[Ruleset] = None,
    ai_players: Optional[Sequence[bool]] = None,
) -> GameState:
    ruleset = ruleset or DEFAULT_RULESET
    if ai_players is None:
        ai_players = [i != 0 for i in range(ruleset.num_players)]
    if len(ai_players) != ruleset.num_players:
        raise ValueError(f"expected {ruleset.num_players} seats, got {len(ai_players)}")

    pool = shuffle(create_supply(ids), rng)
    players = []
    for idx, is_ai in enumerate(ai_players):
        dealt, pool = deal(pool, ruleset.initial_hand_size)
        name = f"AI {idx}" if is_ai else ("You" if idx == 0 else f"Player {idx}")
        players.append(Player(id=idx, name=name, rack=tuple(sort_tiles(dealt)), is_ai=is_ai))

    first = players[0]
    return GameState(
        players=tuple(players),
        current_player_index=0,
        board=(),
        pool=tuple(pool),
        turn_state=TurnState.AI_THINKING if first.is_ai else TurnState.SELECTING,
        rack_before_turn=first.rack,
        ruleset=ruleset,
    )


def staged_tiles(staged: Iterable[StagedSet]) -> Iterable[Tile]:
    for staged_set in staged:
        yield from staged_set.tiles


def tile_census(state: GameState) -> TileMultiset:
    """Count every tile in play: pool, racks, board and staging area."""
    census = TileMultiset.from_tiles(state.pool)
    for player in state.players:
        census = census.add(TileMultiset.from_tiles(player.rack))
    census = census.add(TileMultiset.from_tiles(board_tiles(state.board)))
    return census.add(TileMultiset.from_tiles(staged_tiles(state.staged_sets)))
