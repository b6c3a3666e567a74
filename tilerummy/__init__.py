"""Tile rummy rules engine and computer opponent."""

from .rules import Ruleset
from .tiles import Color, IdSource, Tile, create_supply, deal, rack_value, shuffle, sort_tiles
from .meld import (
    SetKind,
    calculate_set_value,
    is_valid_group,
    is_valid_run,
    is_valid_set,
    validate_tile_set,
)
from .table import TileSet, validate_board
from .result import Err, ErrorKind, Ok, TurnError, unwrap
from .state import GamePhase, GameState, Player, StagedSet, TurnState, create_initial_game_state, tile_census
from .engine import (
    apply_rearrangement,
    cancel_turn,
    commit_all_staged_sets,
    draw_tile,
    end_turn,
    select_board_tile,
    select_tile,
    stage_current_selection,
    start_turn,
    unstage_all_sets,
    unstage_single_set,
)
from .candidates import find_possible_plays
from .ai import execute_ai_turn

__all__ = [
    "Ruleset",
    "Color",
    "IdSource",
    "Tile",
    "create_supply",
    "deal",
    "rack_value",
    "shuffle",
    "sort_tiles",
    "SetKind",
    "calculate_set_value",
    "is_valid_group",
    "is_valid_run",
    "is_valid_set",
    "validate_tile_set",
    "TileSet",
    "validate_board",
    "Err",
    "ErrorKind",
    "Ok",
    "TurnError",
    "unwrap",
    "GamePhase",
    "GameState",
    "Player",
    "StagedSet",
    "TurnState",
    "create_initial_game_state",
    "tile_census",
    "apply_rearrangement",
    "cancel_turn",
    "commit_all_staged_sets",
    "draw_tile",
    "end_turn",
    "select_board_tile",
    "select_tile",
    "stage_current_selection",
    "start_turn",
    "unstage_all_sets",
    "unstage_single_set",
    "find_possible_plays",
    "execute_ai_turn",
]
