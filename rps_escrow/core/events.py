from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, Field, TypeAdapter

from rps_escrow.models import Move, TimeoutPolicy, Winner


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _Event(BaseModel):
    block: int = 0
    ts: datetime = Field(default_factory=_now)

    # Fields observers can filter on; also decide which feeds receive the event.
    indexed: ClassVar[tuple[str, ...]] = ()

    def participants(self) -> list[str]:
        return []

    def to_fields(self) -> dict[str, str]:
        """Redis stream fields: type + indexed fields in the clear, full payload as JSON."""

        dumped = self.model_dump(mode="json")
        out = {"type": str(dumped["type"])}
        for k in self.indexed:
            out[k] = str(dumped[k])
        out["data"] = self.model_dump_json()
        return out


class GameCreated(_Event):
    type: Literal["GameCreated"] = "GameCreated"
    player1: str
    player2: str
    price: int
    game_hash: str

    indexed: ClassVar[tuple[str, ...]] = ("player1", "player2", "game_hash")

    def participants(self) -> list[str]:
        return [self.player1, self.player2]


class GameJoined(_Event):
    type: Literal["GameJoined"] = "GameJoined"
    player1: str
    player2: str
    game_hash: str
    move2: Move

    indexed: ClassVar[tuple[str, ...]] = ("player1", "player2", "game_hash")

    def participants(self) -> list[str]:
        return [self.player1, self.player2]


class GameResult(_Event):
    type: Literal["GameResult"] = "GameResult"
    player1: str
    player2: str
    move1: Move
    move2: Move
    game_hash: str
    winner_id: Winner

    indexed: ClassVar[tuple[str, ...]] = ("player1", "player2", "game_hash")

    def participants(self) -> list[str]:
        return [self.player1, self.player2]


class GameExpired(_Event):
    type: Literal["GameExpired"] = "GameExpired"
    player1: str
    player2: str
    game_hash: str
    claimant: str
    policy: TimeoutPolicy

    indexed: ClassVar[tuple[str, ...]] = ("player1", "player2", "game_hash")

    def participants(self) -> list[str]:
        return [self.player1, self.player2]


class Withdrawal(_Event):
    type: Literal["Withdrawal"] = "Withdrawal"
    player: str
    amount: int

    indexed: ClassVar[tuple[str, ...]] = ("player",)

    def participants(self) -> list[str]:
        return [self.player]


GameEvent = Annotated[
    GameCreated | GameJoined | GameResult | GameExpired | Withdrawal,
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[GameEvent] = TypeAdapter(GameEvent)


def event_from_fields(fields: dict[str, str]) -> GameEvent:
    """Inverse of `to_fields` for entries read back from a stream."""

    return _EVENT_ADAPTER.validate_json(fields["data"])
