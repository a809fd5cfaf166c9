from __future__ import annotations

from statemachine import State, StateMachine

from rps_escrow.models import GamePhase, GameRecord


class GameFSM(StateMachine):
    """FSM wrapper around a GameRecord.

    EMPTY is the absence of a record, so the machine starts at `created`.
    Operations do the domain checks; the FSM only guards transitions.
    """

    created = State(GamePhase.created.value, value=GamePhase.created.value, initial=True)
    joined = State(GamePhase.joined.value, value=GamePhase.joined.value)
    resolved = State(GamePhase.resolved.value, value=GamePhase.resolved.value, final=True)
    expired = State(GamePhase.expired.value, value=GamePhase.expired.value, final=True)

    join = created.to(joined)
    resolve = joined.to(resolved)
    expire = created.to(expired) | joined.to(expired)

    def __init__(self, game: GameRecord):
        self.game = game
        super().__init__(start_value=game.phase.value)

    def sync_phase_to_model(self) -> None:
        self.game.phase = GamePhase(str(self.current_state.value))
