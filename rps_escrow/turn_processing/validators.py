from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from rps_escrow.errors import InvalidArgument, InvalidState, Unauthorized
from rps_escrow.models import GamePhase, GameRecord, Move


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    game_hash: str
    sender: str
    action: str
    move: Move | int | None = None
    value: int | None = None


class ActionValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class MoveProvidedValidator(ActionValidator):
    """The move must name ROCK, PAPER or SCISSORS."""

    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        try:
            move = Move(int(ctx.move)) if ctx.move is not None else Move.NONE
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"unknown move: {ctx.move!r}") from e
        if move == Move.NONE:
            raise InvalidArgument(f"Action '{ctx.action}' requires a move other than NONE")


@dataclass(frozen=True, slots=True)
class PlayerValidator(ActionValidator):
    """The sender must be the player holding the given seat."""

    seat: Literal["player1", "player2"]

    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        expected = getattr(state, self.seat)
        if ctx.sender != expected:
            raise Unauthorized(f"Action '{ctx.action}' is reserved for {self.seat}")


@dataclass(frozen=True, slots=True)
class WagerValidator(ActionValidator):
    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        if ctx.value != state.price:
            raise InvalidArgument(f"wager must equal the game price ({state.price}), got {ctx.value}")


@dataclass(frozen=True, slots=True)
class PhaseValidator(ActionValidator):
    allowed_phases: frozenset[GamePhase]

    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        if state.phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise InvalidState(f"Action '{ctx.action}' not allowed in phase '{state.phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class OpponentMovedValidator(ActionValidator):
    """Player 1 may only reveal once player 2's move is locked in."""

    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        if state.move2 == Move.NONE:
            raise InvalidState("player2 has not joined yet")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[ActionValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: GameRecord) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "join": ValidatorPipeline(
        validators=(
            MoveProvidedValidator(),
            PlayerValidator(seat="player2"),
            WagerValidator(),
            PhaseValidator(allowed_phases=frozenset({GamePhase.created})),
        )
    ),
    "result": ValidatorPipeline(
        validators=(
            MoveProvidedValidator(),
            PlayerValidator(seat="player1"),
            OpponentMovedValidator(),
            PhaseValidator(allowed_phases=frozenset({GamePhase.joined})),
        )
    ),
    "claim_timeout": ValidatorPipeline(
        validators=(PhaseValidator(allowed_phases=frozenset({GamePhase.created, GamePhase.joined})),)
    ),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
