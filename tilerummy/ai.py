from __future__ import annotations

import logging
from typing import Optional

from .candidates import find_possible_plays
from .engine import (
    apply_rearrangement,
    cancel_turn,
    commit_all_staged_sets,
    draw_tile,
    end_turn,
    select_tile,
    stage_current_selection,
    start_turn,
)
from .move import Play
from .rearrange import find_rearrangement
from .result import Err
from .state import GameState

logger = logging.getLogger(__name__)


def _play_from_rack(state: GameState, play: Play) -> Optional[GameState]:
    """Lay ``play`` down through the same select/stage/commit steps a person uses."""
    rack_ids = {t.id for t in state.current_player.rack}
    if not all(tile_id in rack_ids for tile_id in play.tile_ids()):
        logger.warning("Planned %s play uses tiles no longer on the rack; skipping", play.kind.value)
        return None

    for tile_id in play.tile_ids():
        state = select_tile(state, tile_id)
    state = stage_current_selection(state)
    result = commit_all_staged_sets(state)
    if isinstance(result, Err):
        logger.warning("Planned play was rejected: %s", result.message)
        return None
    logger.debug("%s plays a %s worth %d", state.current_player.name, play.kind.value, play.value)
    return result.state


def _draw_or_pass(state: GameState) -> GameState:
    name = state.current_player.name
    drew = bool(state.pool)
    state = draw_tile(state)
    result = end_turn(state, drew_tile=drew)
    if isinstance(result, Err):
        logger.warning("Could not end turn for %s: %s", name, result.message)
        return state
    logger.debug("%s %s", name, "draws" if drew else "passes")
    return result.state


def _finish(state: GameState) -> GameState:
    result = end_turn(state, drew_tile=False)
    if isinstance(result, Err):
        logger.warning("Planned turn rejected (%s); drawing instead", result.kind.value)
        return _draw_or_pass(cancel_turn(state))
    return result.state


def _initial_meld_turn(state: GameState) -> GameState:
    ruleset = state.ruleset
    working = state
    for _ in range(ruleset.ai_initial_meld_iterations):
        plays = find_possible_plays(working.current_player.rack)
        if not plays:
            break
        played = _play_from_rack(working, plays[0])
        if played is None:
            break
        working = played
        if not working.current_player.rack:
            break

    if working.points_this_turn >= ruleset.initial_meld_min_points:
        return _finish(working)

    if working.points_this_turn:
        logger.debug(
            "%s reached only %d points; taking the sets back",
            working.current_player.name,
            working.points_this_turn,
        )
    return _draw_or_pass(cancel_turn(working))


def _regular_turn(state: GameState) -> GameState:
    ruleset = state.ruleset
    working = state
    for _ in range(ruleset.ai_max_plays):
        rack = working.current_player.rack
        if not rack:
            break

        plays = find_possible_plays(rack)
        if plays:
            played = _play_from_rack(working, plays[0])
            if played is None:
                break
            working = played
            continue

        found = find_rearrangement(rack, working.board, ruleset.rearrange_budget)
        if found is None:
            break
        result = apply_rearrangement(working, found.rack_tile_ids(), found.sets)
        if isinstance(result, Err):
            logger.warning("Rearrangement rejected: %s", result.message)
            break
        working = result.state

    if working.points_this_turn > 0:
        return _finish(working)
    return _draw_or_pass(working)


def execute_ai_turn(state: GameState) -> GameState:
    """Play one whole turn for the computer-controlled player to act."""
    if state.is_over:
        return state
    state = start_turn(state)
    if not state.current_player.has_played_initial_meld:
        return _initial_meld_turn(state)
    return _regular_turn(state)
