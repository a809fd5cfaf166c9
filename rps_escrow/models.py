from __future__ import annotations

from enum import IntEnum, StrEnum

from pydantic import BaseModel, Field


class Move(IntEnum):
    NONE = 0
    ROCK = 1
    PAPER = 2
    SCISSORS = 3


class Winner(IntEnum):
    TIE = 0
    PLAYER1 = 1
    PLAYER2 = 2


class GamePhase(StrEnum):
    created = "created"
    joined = "joined"
    resolved = "resolved"
    expired = "expired"


class TimeoutPolicy(StrEnum):
    # Each player gets their own wager back.
    refund = "refund"
    # The player who kept waiting takes the whole pot.
    forfeit = "forfeit"


class GameRecord(BaseModel):
    game_hash: str
    price: int = Field(..., gt=0)
    player1: str
    player2: str

    # None means the game hash itself is player 1's move commitment.
    move1_hash: str | None = None

    move1: Move = Move.NONE
    move2: Move = Move.NONE

    phase: GamePhase = GamePhase.created
    winner: Winner | None = None

    # Block budgets: player2 has `player2_max_block` blocks after creation to join,
    # player1 has `player1_max_block` blocks after the join to reveal.
    player1_max_block: int | None = None
    player2_max_block: int | None = None

    created_block: int = 0
    joined_block: int | None = None
    resolved_block: int | None = None

    @property
    def commitment(self) -> str:
        return self.move1_hash or self.game_hash

    @property
    def has_timeouts(self) -> bool:
        return self.player1_max_block is not None and self.player2_max_block is not None

    def join_deadline(self) -> int | None:
        if self.player2_max_block is None:
            return None
        return self.created_block + self.player2_max_block

    def reveal_deadline(self) -> int | None:
        if self.player1_max_block is None or self.joined_block is None:
            return None
        return self.joined_block + self.player1_max_block
