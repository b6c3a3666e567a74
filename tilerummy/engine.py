from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Iterable, List, Sequence

from .meld import SetKind, arrange_run, is_valid_set, validate_tile_set
from .result import Err, ErrorKind, Ok, TurnResult
from .state import GamePhase, GameState, StagedSet, TurnState, staged_tiles
from .table import (
    TileSet,
    board_tiles,
    find_board_tile,
    remove_tiles_from_board,
    total_board_value,
    validate_board,
)
from .tiles import Tile, rack_value, sort_tiles

logger = logging.getLogger(__name__)


def _phase_for(state: GameState) -> TurnState:
    return TurnState.AI_THINKING if state.current_player.is_ai else TurnState.SELECTING


def _game_over() -> Err:
    return Err(ErrorKind.GAME_OVER, "The game has already ended.")


def start_turn(state: GameState) -> GameState:
    if state.is_over:
        return state
    state = unstage_all_sets(state)
    return replace(
        state,
        board_before_turn=state.board,
        rack_before_turn=state.current_player.rack,
        selected_tiles=(),
        selected_board_tiles=(),
        staged_sets=(),
        points_this_turn=0,
        turn_state=_phase_for(state),
    )


def cancel_turn(state: GameState) -> GameState:
    """Put the board and the actor's rack back the way they were at turn start.

    Tiles drawn since the snapshot are not in it; they stay on the rack.
    """
    if state.is_over:
        return state
    known = {t.id for t in state.rack_before_turn}
    known.update(t.id for t in board_tiles(state.board_before_turn))
    in_hand_now = list(state.current_player.rack) + list(staged_tiles(state.staged_sets))
    in_hand_now.extend(board_tiles(state.board))
    drawn = [t for t in in_hand_now if t.id not in known]

    state = state.with_current_player(rack=tuple(sort_tiles(list(state.rack_before_turn) + drawn)))
    return replace(
        state,
        board=state.board_before_turn,
        staged_sets=(),
        selected_tiles=(),
        selected_board_tiles=(),
        points_this_turn=0,
        turn_state=TurnState.SELECTING,
    )


def _end_game(state: GameState, winner: int) -> GameState:
    logger.info("Game over: %s wins", state.players[winner].name)
    return replace(
        state,
        game_phase=GamePhase.ENDED,
        winner=winner,
        selected_tiles=(),
        selected_board_tiles=(),
        staged_sets=(),
    )


def _lowest_rack(state: GameState) -> int:
    penalty = state.ruleset.joker_penalty
    totals = [rack_value(p.rack, penalty) for p in state.players]
    # min() keeps the first index on ties
    return min(range(len(totals)), key=lambda i: totals[i])


def end_turn(state: GameState, drew_tile: bool = False) -> TurnResult:
    if state.is_over:
        return _game_over()

    if state.staged_sets:
        committed = commit_all_staged_sets(state)
        if isinstance(committed, Err):
            return committed
        state = committed.state

    if not validate_board(state.board):
        return Err(
            ErrorKind.BOARD_INVALID_AFTER_COMMIT,
            "Invalid board state - every set must be a valid run or group of at least 3 tiles. "
            "Cancel to undo changes.",
        )

    player = state.current_player
    points = state.points_this_turn
    threshold = state.ruleset.initial_meld_min_points
    if not player.has_played_initial_meld and 0 < points < threshold:
        return Err(
            ErrorKind.MELD_BELOW_THRESHOLD,
            f"Initial meld must total at least {threshold} points. You've played {points} points. "
            "Play more sets or cancel.",
        )

    if points >= threshold and not player.has_played_initial_meld:
        state = state.with_current_player(has_played_initial_meld=True)
        logger.debug("%s made the initial meld with %d points", player.name, points)

    if not state.current_player.rack:
        return Ok(_end_game(state, state.current_player_index))

    acted = points > 0 or drew_tile
    passes = 0 if acted else state.consecutive_passes + 1
    state = replace(state, consecutive_passes=passes)
    if passes >= len(state.players):
        logger.debug("All %d players passed in a row", passes)
        return Ok(_end_game(state, _lowest_rack(state)))

    next_index = (state.current_player_index + 1) % len(state.players)
    return Ok(start_turn(replace(state, current_player_index=next_index)))


def draw_tile(state: GameState) -> GameState:
    if state.is_over or not state.pool:
        return state
    state = unstage_all_sets(state)
    drawn, pool = state.pool[0], state.pool[1:]
    state = state.with_current_player(rack=tuple(sort_tiles(state.current_player.rack + (drawn,))))
    return replace(state, pool=pool, selected_tiles=(), selected_board_tiles=(), staged_sets=())


def _toggle(selection: Sequence[str], tile_id: str) -> tuple:
    if tile_id in selection:
        return tuple(i for i in selection if i != tile_id)
    return tuple(selection) + (tile_id,)


def select_tile(state: GameState, tile_id: str) -> GameState:
    if state.is_over or all(t.id != tile_id for t in state.current_player.rack):
        return state
    return replace(state, selected_tiles=_toggle(state.selected_tiles, tile_id))


def select_board_tile(state: GameState, tile_id: str) -> GameState:
    if state.is_over or not state.current_player.has_played_initial_meld:
        return state
    if find_board_tile(state.board, tile_id) is None:
        return state
    return replace(state, selected_board_tiles=_toggle(state.selected_board_tiles, tile_id))


def _pick(tiles: Iterable[Tile], ids: Sequence[str]) -> List[Tile]:
    by_id = {t.id: t for t in tiles}
    return [by_id[i] for i in ids if i in by_id]


def stage_current_selection(state: GameState) -> GameState:
    if state.is_over or not (state.selected_tiles or state.selected_board_tiles):
        return state

    from_rack = _pick(state.current_player.rack, state.selected_tiles)
    from_board = _pick(board_tiles(state.board), state.selected_board_tiles)
    tiles = from_rack + from_board
    if not tiles:
        return replace(state, selected_tiles=(), selected_board_tiles=())

    validation = validate_tile_set(tiles)
    if validation.kind is SetKind.RUN:
        tiles = arrange_run(tiles)

    staged_id, state = state.mint_id("staged")
    staged = StagedSet(
        id=staged_id,
        tiles=tuple(tiles),
        is_valid=validation.is_valid,
        kind=validation.kind,
        value=validation.value,
        from_rack=tuple(t.id for t in from_rack),
        from_board=tuple(t.id for t in from_board),
    )
    rack_ids = set(staged.from_rack)
    state = state.with_current_player(rack=tuple(t for t in state.current_player.rack if t.id not in rack_ids))
    logger.debug("Staged %s (%s, %d points)", staged.id, staged.kind.value, staged.value)
    return replace(
        state,
        board=remove_tiles_from_board(state.board, set(staged.from_board)),
        staged_sets=state.staged_sets + (staged,),
        selected_tiles=(),
        selected_board_tiles=(),
        turn_state=TurnState.STAGING,
    )


def unstage_single_set(state: GameState, set_id: str) -> GameState:
    staged = next((s for s in state.staged_sets if s.id == set_id), None)
    if staged is None:
        return state

    rack_ids = set(staged.from_rack)
    returned = [t for t in staged.tiles if t.id in rack_ids]
    state = state.with_current_player(rack=tuple(sort_tiles(state.current_player.rack + tuple(returned))))

    board = state.board
    board_ids = set(staged.from_board)
    if board_ids:
        # Not re-validated: the tiles must be staged again before the turn can end.
        new_id, state = state.mint_id("set")
        board = board + (TileSet(new_id, tuple(t for t in staged.tiles if t.id in board_ids)),)

    remaining = tuple(s for s in state.staged_sets if s.id != staged.id)
    return replace(
        state,
        board=board,
        staged_sets=remaining,
        turn_state=state.turn_state if remaining else TurnState.SELECTING,
    )


def unstage_all_sets(state: GameState) -> GameState:
    for staged in state.staged_sets:
        state = unstage_single_set(state, staged.id)
    return state


def commit_all_staged_sets(state: GameState) -> TurnResult:
    if state.is_over:
        return _game_over()
    if not state.staged_sets:
        return Err(ErrorKind.NOTHING_TO_COMMIT, "No staged sets to commit.")
    if any(not s.is_valid for s in state.staged_sets):
        return Err(ErrorKind.INVALID_STAGED_SET, "Invalid set - must be a valid run or group.")

    new_sets = []
    for staged in state.staged_sets:
        set_id, state = state.mint_id("set")
        new_sets.append(TileSet(set_id, staged.tiles))
    points = sum(s.value for s in state.staged_sets)
    return Ok(
        replace(
            state,
            board=state.board + tuple(new_sets),
            points_this_turn=state.points_this_turn + points,
            staged_sets=(),
            turn_state=TurnState.SELECTING,
        )
    )


def apply_rearrangement(
    state: GameState, rack_tile_ids: Sequence[str], new_sets: Sequence[Sequence[Tile]]
) -> TurnResult:
    """Replace the board with ``new_sets``, which must use every board tile plus the named rack tiles."""
    if state.is_over:
        return _game_over()
    player = state.current_player
    if not player.has_played_initial_meld:
        return Err(ErrorKind.REARRANGEMENT_BEFORE_MELD, "The board can only be rearranged after the initial meld.")

    placed = _pick(player.rack, rack_tile_ids)
    if not placed or len(placed) != len(set(rack_tile_ids)):
        return Err(ErrorKind.INVALID_REARRANGEMENT, "Rearrangement must place tiles from the rack.")

    expected = Counter(t.id for t in board_tiles(state.board))
    expected.update(t.id for t in placed)
    got = Counter(t.id for tiles in new_sets for t in tiles)
    if got != expected:
        return Err(ErrorKind.INVALID_REARRANGEMENT, "Rearranged board must hold the same tiles plus the placed ones.")
    if not all(is_valid_set(tiles) for tiles in new_sets):
        return Err(ErrorKind.INVALID_REARRANGEMENT, "Every rearranged set must be a valid run or group.")

    board = []
    for tiles in new_sets:
        arranged = arrange_run(tiles) or list(tiles)
        set_id, state = state.mint_id("set")
        board.append(TileSet(set_id, tuple(arranged)))

    gained = total_board_value(board) - total_board_value(state.board)
    placed_ids = {t.id for t in placed}
    state = state.with_current_player(rack=tuple(t for t in player.rack if t.id not in placed_ids))
    logger.debug("%s rearranged the board with %d rack tiles", player.name, len(placed))
    return Ok(
        replace(
            state,
            board=tuple(board),
            points_this_turn=state.points_this_turn + max(gained, len(placed)),
        )
    )
