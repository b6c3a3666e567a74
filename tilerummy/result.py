from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .state import GameState


class ErrorKind(str, Enum):
    NOTHING_TO_COMMIT = "nothing-to-commit"
    INVALID_STAGED_SET = "invalid-staged-set"
    BOARD_INVALID_AFTER_COMMIT = "board-invalid-after-commit"
    MELD_BELOW_THRESHOLD = "meld-below-threshold"
    INVALID_REARRANGEMENT = "invalid-rearrangement"
    REARRANGEMENT_BEFORE_MELD = "rearrangement-before-meld"
    GAME_OVER = "game-over"


class TurnError(ValueError):
    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class Ok:
    state: "GameState"

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


TurnResult = Union[Ok, Err]


def unwrap(result: TurnResult) -> "GameState":
    if isinstance(result, Err):
        raise TurnError(result.kind, result.message)
    return result.state
