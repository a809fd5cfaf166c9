from __future__ import annotations

import os
from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path

import fakeredis
import pytest
from web3 import Web3

from rps_escrow.engine import RockPaperScissors
from rps_escrow.models import Move
from rps_escrow.settings import EngineSettings


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs.

    In CI, we *don't* auto-load `.env` by default so a developer's REDIS_URL or
    RPS_* overrides never leak into the suite. Opt-in with RPS_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("RPS_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@dataclass(frozen=True, slots=True)
class Accounts:
    alice: str
    bob: str
    carol: str


ALICE_SECRET = "aliceSecret"
PRICE = Web3.to_wei("0.01", "ether")


@pytest.fixture()
def accounts() -> Accounts:
    return Accounts(
        alice=Web3.to_checksum_address("0x" + "a1" * 20),
        bob=Web3.to_checksum_address("0x" + "b2" * 20),
        carol=Web3.to_checksum_address("0x" + "c3" * 20),
    )


@pytest.fixture()
def r() -> Generator[fakeredis.FakeRedis, None, None]:
    # Own server per test so state never leaks between tests.
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.close()


@pytest.fixture()
def engine(r: fakeredis.FakeRedis) -> RockPaperScissors:
    return RockPaperScissors(r=r, settings=EngineSettings())


@dataclass(frozen=True, slots=True)
class StartedGame:
    game_hash: str
    move1_hash: str


@pytest.fixture()
def start_game(engine: RockPaperScissors, accounts: Accounts) -> Callable[..., StartedGame]:
    """Alice invites Bob with a committed move and a 0.01 ether wager."""

    def _start(move: Move = Move.ROCK, **kwargs: int) -> StartedGame:
        game_hash = engine.game_hash(accounts.bob, sender=accounts.alice)
        move1_hash = engine.hash(accounts.alice, move, ALICE_SECRET)
        engine.start_game(game_hash, move1_hash, accounts.bob, sender=accounts.alice, value=PRICE, **kwargs)
        return StartedGame(game_hash=game_hash, move1_hash=move1_hash)

    return _start
