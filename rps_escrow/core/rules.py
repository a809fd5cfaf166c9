from __future__ import annotations

from rps_escrow.errors import InvalidArgument
from rps_escrow.models import Move, Winner


# move -> the move it beats
BEATS: dict[Move, Move] = {
    Move.ROCK: Move.SCISSORS,
    Move.SCISSORS: Move.PAPER,
    Move.PAPER: Move.ROCK,
}


def resolve(move1: Move, move2: Move) -> Winner:
    """Return which player wins a round.

    NONE is never a playable move; callers reject it before getting here.
    """

    if move1 == Move.NONE or move2 == Move.NONE:
        raise InvalidArgument("NONE is not a playable move")

    if move1 == move2:
        return Winner.TIE
    if BEATS[Move(move1)] == move2:
        return Winner.PLAYER1
    return Winner.PLAYER2


def payouts(*, winner: Winner, price: int) -> tuple[int, int]:
    """Split the pot (2 x price) as (player1 credit, player2 credit)."""

    if winner == Winner.TIE:
        return price, price
    if winner == Winner.PLAYER1:
        return 2 * price, 0
    return 0, 2 * price
