from __future__ import annotations

from rps_escrow.errors import InvalidArgument, InvalidState, Unauthorized
from rps_escrow.models import GamePhase, GameRecord, TimeoutPolicy


def validate_budgets(
    player1_max_block: int | None,
    player2_max_block: int | None,
    *,
    required: bool,
) -> tuple[int | None, int | None]:
    """Both budgets or neither; a supplied budget must be positive."""

    if player1_max_block is None and player2_max_block is None:
        if required:
            raise InvalidArgument("player1_max_block and player2_max_block are required")
        return None, None

    for name, budget in (("player1_max_block", player1_max_block), ("player2_max_block", player2_max_block)):
        if budget is None:
            raise InvalidArgument(f"{name} is required when the other block budget is set")
        if budget <= 0:
            raise InvalidArgument(f"{name} must be positive")
    return player1_max_block, player2_max_block


def plan_timeout_claim(
    *,
    state: GameRecord,
    sender: str,
    height: int,
    policy: TimeoutPolicy,
) -> dict[str, int]:
    """Return the balance credits a timeout claim earns, or raise why it is not allowed.

    - created: player2 never joined, player1 takes back their wager.
    - joined: player1 never revealed, player2 is paid per `policy`.
    """

    if not state.has_timeouts:
        raise InvalidState("game has no block budgets")

    if state.phase == GamePhase.created:
        if sender != state.player1:
            raise Unauthorized("only player1 can reclaim an unjoined game")
        deadline = state.join_deadline()
        credits = {state.player1: state.price}
    elif state.phase == GamePhase.joined:
        if sender != state.player2:
            raise Unauthorized("only player2 can claim an unrevealed game")
        deadline = state.reveal_deadline()
        if policy == TimeoutPolicy.forfeit:
            credits = {state.player2: 2 * state.price}
        else:
            credits = {state.player1: state.price, state.player2: state.price}
    else:
        raise InvalidState(f"game already {state.phase.value}")

    if deadline is None or height <= deadline:
        raise InvalidState(f"deadline not reached (block {height}, deadline {deadline})")
    return credits
