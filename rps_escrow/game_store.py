from __future__ import annotations

import redis
from redis.client import Pipeline

from rps_escrow.errors import NotFound
from rps_escrow.models import GameRecord


def games_set_key(prefix: str) -> str:
    return f"{prefix}:games"


def game_key(prefix: str, game_hash: str) -> str:
    return f"{prefix}:game:{game_hash.lower()}"


def save_game(*, r: redis.Redis | Pipeline, prefix: str, state: GameRecord) -> None:
    """Write a record; on a MULTI pipeline this only queues the commands."""

    r.set(game_key(prefix, state.game_hash), state.model_dump_json())
    r.sadd(games_set_key(prefix), state.game_hash.lower())


def get_game(*, r: redis.Redis | Pipeline, prefix: str, game_hash: str) -> GameRecord | None:
    raw = r.get(game_key(prefix, game_hash))
    if not raw:
        return None
    return GameRecord.model_validate_json(raw)


def require_game(*, r: redis.Redis | Pipeline, prefix: str, game_hash: str) -> GameRecord:
    state = get_game(r=r, prefix=prefix, game_hash=game_hash)
    if state is None:
        raise NotFound("Game not found")
    return state


def list_games(*, r: redis.Redis, prefix: str, player: str | None = None) -> list[GameRecord]:
    out: list[GameRecord] = []
    for game_hash in sorted(r.smembers(games_set_key(prefix))):
        state = get_game(r=r, prefix=prefix, game_hash=game_hash)
        if state is None:
            continue
        if player is not None and player not in (state.player1, state.player2):
            continue
        out.append(state)
    out.sort(key=lambda s: (s.created_block, s.game_hash))
    return out
