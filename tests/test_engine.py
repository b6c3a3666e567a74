import pathlib
import sys
from dataclasses import replace

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tilerummy.engine import (
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
from tilerummy.meld import SetKind
from tilerummy.multiset import TileMultiset
from tilerummy.result import Err, ErrorKind, Ok, TurnError, unwrap
from tilerummy.state import GamePhase, GameState, Player, TurnState, tile_census
from tilerummy.table import TileSet
from tilerummy.tiles import Color, Tile, joker, sort_tiles

_COLORS = {"r": Color.RED, "b": Color.BLUE, "y": Color.YELLOW, "k": Color.BLACK}


def _t(code: str, tag: str = "") -> Tile:
    return Tile(code + tag, _COLORS[code[0]], int(code[1:]))


def _tiles(*codes):
    return [_t(code) for code in codes]


def _state(racks, board=(), pool=(), melded=False, ai=False) -> GameState:
    players = tuple(
        Player(id=i, name=f"P{i}", rack=tuple(sort_tiles(rack)), has_played_initial_meld=melded, is_ai=ai)
        for i, rack in enumerate(racks)
    )
    state = GameState(players=players, current_player_index=0, board=tuple(board), pool=tuple(pool))
    return start_turn(state)


def _stage(state, *ids, board_ids=()):
    for tile_id in ids:
        state = select_tile(state, tile_id)
    for tile_id in board_ids:
        state = select_board_tile(state, tile_id)
    return stage_current_selection(state)


def _census(state):
    return tile_census(state).counts


def test_select_tile_toggles_and_ignores_unknown_ids():
    state = _state([_tiles("r1", "r2"), [], [], []])
    state = select_tile(state, "r1")
    assert state.selected_tiles == ("r1",)
    assert select_tile(state, "nope") is state
    state = select_tile(state, "r1")
    assert state.selected_tiles == ()


def test_board_selection_needs_initial_meld():
    board = [TileSet("s", tuple(_tiles("b4", "b5", "b6")))]
    state = _state([_tiles("r1"), [], [], []], board=board)
    assert select_board_tile(state, "b4") is state

    melded = _state([_tiles("r1"), [], [], []], board=board, melded=True)
    assert select_board_tile(melded, "b4").selected_board_tiles == ("b4",)
    assert select_board_tile(melded, "r1") is melded


def test_stage_valid_run_records_provenance():
    state = _state([[_t("r8"), joker("j"), _t("r7"), _t("b2")], [], [], []])
    before = _census(state)
    state = _stage(state, "r8", "j", "r7")

    assert state.turn_state is TurnState.STAGING
    [staged] = state.staged_sets
    assert staged.is_valid and staged.kind is SetKind.RUN
    assert staged.value == 21
    assert [t.id for t in staged.tiles] == ["j", "r7", "r8"]
    assert set(staged.from_rack) == {"r8", "j", "r7"}
    assert staged.from_board == ()
    assert [t.id for t in state.current_player.rack] == ["b2"]
    assert state.selected_tiles == ()
    assert _census(state) == before


def test_stage_without_selection_is_noop():
    state = _state([_tiles("r1"), [], [], []])
    assert stage_current_selection(state) is state


def test_commit_requires_staged_sets():
    state = _state([_tiles("r1"), [], [], []])
    result = commit_all_staged_sets(state)
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.NOTHING_TO_COMMIT


def test_commit_rejects_invalid_staged_set_and_leaves_state():
    state = _stage(_state([_tiles("r1", "b5", "k9"), [], [], []]), "r1", "b5", "k9")
    assert state.staged_sets[0].is_valid is False
    assert state.staged_sets[0].kind is SetKind.INVALID
    result = commit_all_staged_sets(state)
    assert not result.ok
    assert result.kind is ErrorKind.INVALID_STAGED_SET
    assert len(state.staged_sets) == 1
    with pytest.raises(TurnError) as excinfo:
        unwrap(result)
    assert excinfo.value.kind is ErrorKind.INVALID_STAGED_SET


def test_commit_moves_staged_sets_to_board_in_order():
    state = _state([_tiles("r1", "r2", "r3", "b7", "y7", "k7", "r13"), [], [], []])
    state = _stage(state, "r1", "r2", "r3")
    state = _stage(state, "b7", "y7", "k7")
    result = commit_all_staged_sets(state)
    assert isinstance(result, Ok)
    committed = result.state
    assert [s.tile_ids() for s in committed.board] == [("r1", "r2", "r3"), ("b7", "y7", "k7")]
    assert committed.points_this_turn == 6 + 21
    assert committed.staged_sets == ()
    assert committed.turn_state is TurnState.SELECTING
    assert len({s.id for s in committed.board}) == 2


def test_end_turn_rejects_meld_below_threshold():
    state = _stage(_state([_tiles("r1", "r2", "r3", "k9"), [], [], []]), "r1", "r2", "r3")
    result = end_turn(state)
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.MELD_BELOW_THRESHOLD
    assert "6 points" in result.message


def test_end_turn_accepts_meld_of_thirty():
    state = _stage(_state([_tiles("r9", "r10", "r11", "k9"), _tiles("b1"), [], []]), "r9", "r10", "r11")
    state = unwrap(end_turn(state))
    assert state.players[0].has_played_initial_meld is True
    assert state.current_player_index == 1
    assert state.points_this_turn == 0
    assert state.consecutive_passes == 0
    assert state.board_before_turn == state.board
    assert state.rack_before_turn == state.players[1].rack


def test_zero_point_turn_is_allowed_before_meld():
    state = _state([_tiles("r1"), _tiles("b1"), [], []])
    state = unwrap(end_turn(state))
    assert state.current_player_index == 1
    assert state.consecutive_passes == 1
    assert state.players[0].has_played_initial_meld is False


def test_emptying_the_rack_wins_regardless_of_passes():
    state = _state([_tiles("r10", "r11", "r12"), _tiles("b1"), [], []])
    state = replace(state, consecutive_passes=3)
    state = _stage(state, "r10", "r11", "r12")
    state = unwrap(end_turn(state))
    assert state.game_phase is GamePhase.ENDED
    assert state.winner == 0


def test_four_passes_end_in_stalemate_lowest_rack_wins():
    racks = [_tiles("r10"), [joker("j")], _tiles("r2"), _tiles("b2")]
    state = _state(racks)
    for expected_passes in range(1, 4):
        state = unwrap(end_turn(state, drew_tile=False))
        assert state.consecutive_passes == expected_passes
        assert state.game_phase is GamePhase.PLAYING
    state = unwrap(end_turn(state, drew_tile=False))
    assert state.game_phase is GamePhase.ENDED
    # players 2 and 3 tie on 2 points; seat order decides
    assert state.winner == 2


def test_draw_resets_pass_counter():
    state = _state([_tiles("r10"), _tiles("b1"), [], []], pool=_tiles("y4", "y5"))
    state = replace(state, consecutive_passes=2)
    state = draw_tile(state)
    assert [t.id for t in state.current_player.rack] == ["r10", "y4"]
    assert [t.id for t in state.pool] == ["y5"]
    state = unwrap(end_turn(state, drew_tile=True))
    assert state.consecutive_passes == 0


def test_draw_from_empty_pool_is_noop():
    state = _state([_tiles("r10"), [], [], []])
    assert draw_tile(state) is state


def test_draw_returns_staged_tiles_to_rack():
    state = _state([_tiles("r1", "r2", "r3"), [], [], []], pool=_tiles("k1"))
    state = _stage(state, "r1", "r2", "r3")
    state = draw_tile(state)
    assert state.staged_sets == ()
    assert [t.id for t in state.current_player.rack] == ["r1", "r2", "r3", "k1"]


def test_end_turn_commits_remaining_staged_sets():
    state = _stage(_state([_tiles("r10", "r11", "r12", "b3"), [], [], []]), "r10", "r11", "r12")
    state = unwrap(end_turn(state))
    assert len(state.board) == 1
    assert state.players[0].has_played_initial_meld


def test_end_turn_propagates_invalid_staged_set():
    state = _stage(_state([_tiles("r1", "b5", "k9", "k10"), [], [], []]), "r1", "b5", "k9")
    result = end_turn(state)
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.INVALID_STAGED_SET


def test_unstage_returns_rack_tiles_and_leaves_board_tile_alone():
    board = [TileSet("s", tuple(_tiles("r3", "r4", "r5", "r6")))]
    state = _state([_tiles("b1", "r8", "r7"), [], [], []], board=board, melded=True)
    before = _census(state)

    state = _stage(state, "r7", "r8", board_ids=["r6"])
    [staged] = state.staged_sets
    assert staged.is_valid
    assert [t.id for t in staged.tiles] == ["r6", "r7", "r8"]
    assert staged.from_board == ("r6",)
    assert [s.tile_ids() for s in state.board] == [("r3", "r4", "r5")]

    state = unstage_single_set(state, staged.id)
    assert state.staged_sets == ()
    assert state.turn_state is TurnState.SELECTING
    assert [s.tile_ids() for s in state.board] == [("r3", "r4", "r5"), ("r6",)]
    assert [t.id for t in state.current_player.rack] == ["r7", "r8", "b1"]
    assert _census(state) == before

    result = end_turn(state)
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.BOARD_INVALID_AFTER_COMMIT

    restored = cancel_turn(state)
    assert restored.board == tuple(board)
    assert unwrap(end_turn(restored)).current_player_index == 1


def test_unstage_unknown_set_is_noop():
    state = _state([_tiles("r1"), [], [], []])
    assert unstage_single_set(state, "missing") is state


def test_unstage_all_sets_keeps_staging_until_empty():
    state = _state([_tiles("r1", "r2", "r3", "b7", "y7", "k7"), [], [], []])
    state = _stage(state, "r1", "r2", "r3")
    state = _stage(state, "b7", "y7", "k7")
    first = unstage_single_set(state, state.staged_sets[0].id)
    assert first.turn_state is TurnState.STAGING
    state = unstage_all_sets(state)
    assert state.staged_sets == ()
    assert state.turn_state is TurnState.SELECTING
    assert len(state.current_player.rack) == 6


def test_board_emptied_by_staging_is_dropped():
    board = [TileSet("s", tuple(_tiles("y2", "y3", "y4")))]
    state = _state([_tiles("y5"), [], [], []], board=board, melded=True)
    state = _stage(state, "y5", board_ids=["y2", "y3", "y4"])
    assert state.board == ()
    state = unwrap(end_turn(state))
    assert [s.tile_ids() for s in state.board] == [("y2", "y3", "y4", "y5")]
    assert state.players[0].rack == ()
    assert state.winner == 0


def test_cancel_turn_restores_snapshot():
    state = _state([_tiles("r9", "r10", "r11", "b2"), [], [], []])
    snapshot_rack = state.current_player.rack
    state = unwrap(commit_all_staged_sets(_stage(state, "r9", "r10", "r11")))
    assert state.points_this_turn == 30
    state = cancel_turn(state)
    assert state.board == ()
    assert state.current_player.rack == snapshot_rack
    assert state.points_this_turn == 0
    assert state.turn_state is TurnState.SELECTING


def test_cancel_turn_keeps_tiles_drawn_this_turn():
    state = _state([_tiles("r9"), [], [], []], pool=_tiles("b3"))
    state = cancel_turn(draw_tile(state))
    assert [t.id for t in state.current_player.rack] == ["r9", "b3"]


def test_apply_rearrangement_splits_a_run():
    board = [TileSet("s", tuple(_tiles("r2", "r3", "r4", "r5", "r6", "r7", "r8")))]
    state = _state([_tiles("b5", "y5", "k13"), [], [], []], board=board, melded=True)
    before = _census(state)
    new_sets = [_tiles("r2", "r3", "r4"), [_t("r5"), _t("b5"), _t("y5")], _tiles("r6", "r7", "r8")]
    state = unwrap(apply_rearrangement(state, ["b5", "y5"], new_sets))
    assert len(state.board) == 3
    assert [t.id for t in state.current_player.rack] == ["k13"]
    assert state.points_this_turn > 0
    assert _census(state) == before
    assert unwrap(end_turn(state)).current_player_index == 1


def test_apply_rearrangement_errors():
    board = [TileSet("s", tuple(_tiles("r2", "r3", "r4")))]
    new_sets = [_tiles("r2", "r3", "r4", "r5")]

    state = _state([_tiles("r5"), [], [], []], board=board)
    result = apply_rearrangement(state, ["r5"], new_sets)
    assert result.kind is ErrorKind.REARRANGEMENT_BEFORE_MELD

    melded = _state([_tiles("r5", "b9"), [], [], []], board=board, melded=True)
    assert apply_rearrangement(melded, [], new_sets).kind is ErrorKind.INVALID_REARRANGEMENT
    assert apply_rearrangement(melded, ["b9"], new_sets).kind is ErrorKind.INVALID_REARRANGEMENT
    dropped = [_tiles("r3", "r4", "r5")]
    assert apply_rearrangement(melded, ["r5"], dropped).kind is ErrorKind.INVALID_REARRANGEMENT
    assert unwrap(apply_rearrangement(melded, ["r5"], new_sets)).current_player.rack == (_t("b9"),)


def test_transitions_after_game_end():
    state = replace(_state([_tiles("r1"), [], [], []], pool=_tiles("b1")), game_phase=GamePhase.ENDED, winner=1)
    assert draw_tile(state) is state
    assert select_tile(state, "r1") is state
    assert start_turn(state) is state
    assert end_turn(state).kind is ErrorKind.GAME_OVER
    assert commit_all_staged_sets(state).kind is ErrorKind.GAME_OVER


def test_conservation_through_a_full_human_turn():
    board = [TileSet("s", tuple(_tiles("k1", "k2", "k3")))]
    state = _state([_tiles("k4", "b1", "y1", "r1", "r13"), _tiles("b13"), [], []], board=board, melded=True, pool=_tiles("y9"))
    expected = TileMultiset.from_tiles(list(_tiles("k1", "k2", "k3", "k4", "b1", "y1", "r1", "r13", "b13", "y9")))
    state = _stage(state, "k4", board_ids=["k1", "k2", "k3"])
    state = _stage(state, "b1", "y1", "r1")
    assert tile_census(state) == expected
    state = unwrap(end_turn(state))
    assert tile_census(state) == expected
    assert state.current_player_index == 1
