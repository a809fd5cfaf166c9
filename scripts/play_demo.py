"""Play one commit-reveal round against a live Redis.

Contract
- Inputs: REDIS_URL and the RPS_* settings from the environment.
- Alice commits ROCK with "aliceSecret" and invites Bob for 0.01 ether,
  Bob joins with SCISSORS, Alice reveals and withdraws.
- Uses a throwaway key prefix so repeated runs never collide.

Usage:
    uv run python scripts/play_demo.py
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from web3 import Web3

from rps_escrow.engine import RockPaperScissors
from rps_escrow.infra.redis_client import create_redis
from rps_escrow.models import Move
from rps_escrow.settings import configure_logging, settings_from_env


logger = logging.getLogger("play_demo")

ALICE = Web3.to_checksum_address("0x" + "a1" * 20)
BOB = Web3.to_checksum_address("0x" + "b2" * 20)


def main() -> None:
    settings = settings_from_env()
    configure_logging(settings.log_level)

    settings = replace(settings, key_prefix=f"{settings.key_prefix}-demo-{uuid.uuid4().hex[:8]}")
    engine = RockPaperScissors(r=create_redis(settings), settings=settings)
    price = Web3.to_wei("0.01", "ether")

    game_hash = engine.game_hash(BOB, sender=ALICE)
    move1_hash = engine.hash(ALICE, Move.ROCK, "aliceSecret")

    engine.start_game(game_hash, move1_hash, BOB, sender=ALICE, value=price)
    engine.join_game(game_hash, Move.SCISSORS, sender=BOB, value=price)
    state = engine.game_result(game_hash, Move.ROCK, "aliceSecret", sender=ALICE)

    logger.info("winner=%s alice balance=%s", state.winner, engine.balance_of(ALICE))
    paid = engine.withdraw(sender=ALICE)
    logger.info("alice withdrew %s wei under prefix %s", paid, settings.key_prefix)

    for event in engine.events():
        logger.info("%s block=%s", event.type, event.block)


if __name__ == "__main__":
    main()
