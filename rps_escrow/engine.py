from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import redis
from redis.client import Pipeline
from web3 import Web3

from rps_escrow.clock import BlockClock, RedisBlockClock
from rps_escrow.core.commitment import DEFAULT_SCHEME, CommitmentScheme, Secret, verify_move_commitment
from rps_escrow.core.encoding import is_zero, normalize_address, to_bytes32, to_hex32
from rps_escrow.core.events import GameCreated, GameEvent, GameExpired, GameJoined, GameResult
from rps_escrow.core.rules import payouts, resolve
from rps_escrow.errors import AlreadyExists, EscrowError, InvalidArgument, NotFound
from rps_escrow.fsm import GameFSM
from rps_escrow.game_store import game_key, get_game, list_games, require_game, save_game
from rps_escrow.infra.redis_client import create_redis
from rps_escrow.ledger import BalanceLedger, PayoutSink, StreamPayoutSink
from rps_escrow.models import GameRecord, Move
from rps_escrow.settings import EngineSettings, settings_from_env
from rps_escrow.streams import EventLog, entries_for_event, publish_many
from rps_escrow.timeouts import plan_timeout_claim, validate_budgets
from rps_escrow.turn_processing.validators import ValidationContext, pipeline_for_action


logger = logging.getLogger(__name__)


def _as_move(value: Move | int) -> Move:
    try:
        return Move(int(value))
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"unknown move: {value!r}") from e


@contextmanager
def _operation(action: str) -> Iterator[None]:
    try:
        yield
    except EscrowError as e:
        logger.info("%s rejected: %s: %s", action, type(e).__name__, e)
        raise


class RockPaperScissors:
    """Commit-reveal Rock-Paper-Scissors escrow.

    All state lives in Redis under `settings.key_prefix`: game records, pending
    balances, the event stream and per-player feeds. Every state-changing call is
    one WATCH/MULTI/EXEC transaction, so a rejected call writes nothing and emits
    nothing, and racing calls are applied one after the other.

    The caller identity (`sender`) and attached funds (`value`) are supplied by the
    execution environment.
    """

    def __init__(
        self,
        *,
        r: redis.Redis,
        settings: EngineSettings | None = None,
        clock: BlockClock | None = None,
        scheme: CommitmentScheme | None = None,
        payouts: PayoutSink | None = None,
    ) -> None:
        self.r = r
        self.settings = settings or EngineSettings()
        self.prefix = self.settings.key_prefix
        self.clock: BlockClock = clock or RedisBlockClock(r=r, prefix=self.prefix)
        self.scheme: CommitmentScheme = scheme or DEFAULT_SCHEME
        self.ledger = BalanceLedger(
            r=r,
            prefix=self.prefix,
            payouts=payouts or StreamPayoutSink(r=r, prefix=self.prefix),
        )
        self.event_log = EventLog(r=r, prefix=self.prefix)

    @classmethod
    def from_env(cls) -> "RockPaperScissors":
        settings = settings_from_env()
        return cls(r=create_redis(settings), settings=settings)

    # -- commitments -------------------------------------------------------

    def hash(self, address: str, move: Move | int, secret: Secret) -> str:
        """Player 1's move commitment."""

        return self.scheme.move_commitment(address, _as_move(move), secret)

    def game_hash(self, counterparty: str, *, sender: str) -> str:
        """Game identifier for `sender` inviting `counterparty`."""

        return self.scheme.pairing_commitment(sender, counterparty)

    # -- game ledger ---------------------------------------------------------

    def start_game(
        self,
        game_hash: str | bytes,
        move1_hash: str | bytes | None,
        player2: str,
        *,
        sender: str,
        value: int,
        player1_max_block: int | None = None,
        player2_max_block: int | None = None,
    ) -> GameRecord:
        """Open a game and escrow player 1's wager.

        `move1_hash=None` makes `game_hash` itself the move commitment.
        """

        with _operation("start_game"):
            player1 = normalize_address(sender, what="sender")

            gh = to_bytes32(game_hash)
            if is_zero(gh):
                raise InvalidArgument("game hash must not be zero")
            gh_hex = to_hex32(gh)

            commitment_hex: str | None = None
            if move1_hash is not None:
                m1 = to_bytes32(move1_hash)
                if is_zero(m1):
                    raise InvalidArgument("move1 hash must not be zero")
                commitment_hex = to_hex32(m1)

            p2 = normalize_address(player2, what="player2")

            if not value or value <= 0:
                raise InvalidArgument("wager must be positive")

            p1_budget, p2_budget = validate_budgets(
                player1_max_block,
                player2_max_block,
                required=self.settings.require_timeouts,
            )

            key = game_key(self.prefix, gh_hex)

            def _apply(pipe: Pipeline) -> GameRecord:
                if pipe.exists(key):
                    raise AlreadyExists("Game already exists")

                height = self.clock.height()
                state = GameRecord(
                    game_hash=gh_hex,
                    price=value,
                    player1=player1,
                    player2=p2,
                    move1_hash=commitment_hex,
                    player1_max_block=p1_budget,
                    player2_max_block=p2_budget,
                    created_block=height,
                )
                event = GameCreated(player1=player1, player2=p2, price=value, game_hash=gh_hex, block=height)

                pipe.multi()
                save_game(r=pipe, prefix=self.prefix, state=state)
                self._queue_event(pipe, event)
                return state

            state = self.r.transaction(_apply, key, value_from_callable=True)

        logger.info("game created game_hash=%s player1=%s player2=%s price=%s", gh_hex, player1, p2, value)
        return state

    def join_game(self, game_hash: str | bytes, move: Move | int, *, sender: str, value: int) -> GameRecord:
        """Player 2 locks in a move in the clear and matches the wager."""

        with _operation("join_game"):
            gh_hex = self._existing_hash(game_hash)
            caller = normalize_address(sender, what="sender")
            key = game_key(self.prefix, gh_hex)

            def _apply(pipe: Pipeline) -> GameRecord:
                state = require_game(r=pipe, prefix=self.prefix, game_hash=gh_hex)
                ctx = ValidationContext(game_hash=gh_hex, sender=caller, action="join", move=move, value=value)
                pipeline_for_action("join").validate(ctx=ctx, state=state)
                move2 = Move(int(move))

                fsm = GameFSM(state)
                fsm.join()
                fsm.sync_phase_to_model()
                state.move2 = move2
                state.joined_block = self.clock.height()

                event = GameJoined(
                    player1=state.player1,
                    player2=state.player2,
                    game_hash=gh_hex,
                    move2=move2,
                    block=state.joined_block,
                )

                pipe.multi()
                save_game(r=pipe, prefix=self.prefix, state=state)
                self._queue_event(pipe, event)
                return state

            state = self.r.transaction(_apply, key, value_from_callable=True)

        logger.info("game joined game_hash=%s player2=%s move2=%s", gh_hex, caller, state.move2.name)
        return state

    def game_result(self, game_hash: str | bytes, move: Move | int, secret: Secret, *, sender: str) -> GameRecord:
        """Player 1 reveals; the game resolves and the pot is credited."""

        with _operation("game_result"):
            gh_hex = self._existing_hash(game_hash)
            caller = normalize_address(sender, what="sender")
            if not isinstance(secret, (str, bytes)):
                raise InvalidArgument("secret must be str or bytes")
            key = game_key(self.prefix, gh_hex)

            def _apply(pipe: Pipeline) -> GameRecord:
                state = require_game(r=pipe, prefix=self.prefix, game_hash=gh_hex)
                ctx = ValidationContext(game_hash=gh_hex, sender=caller, action="result", move=move)
                pipeline_for_action("result").validate(ctx=ctx, state=state)
                move1 = Move(int(move))

                # Wrong secret and wrong move are indistinguishable on purpose.
                if not verify_move_commitment(state.commitment, caller, move1, secret, scheme=self.scheme):
                    raise InvalidArgument("invalid move or secret")

                winner = resolve(move1, state.move2)
                p1_credit, p2_credit = payouts(winner=winner, price=state.price)
                balances = self.ledger.prepare_credits(pipe, {state.player1: p1_credit, state.player2: p2_credit})

                fsm = GameFSM(state)
                fsm.resolve()
                fsm.sync_phase_to_model()
                state.move1 = move1
                state.winner = winner
                state.resolved_block = self.clock.height()

                event = GameResult(
                    player1=state.player1,
                    player2=state.player2,
                    move1=move1,
                    move2=state.move2,
                    game_hash=gh_hex,
                    winner_id=winner,
                    block=state.resolved_block,
                )

                pipe.multi()
                save_game(r=pipe, prefix=self.prefix, state=state)
                self.ledger.queue_balances(pipe, balances)
                self._queue_event(pipe, event)
                return state

            state = self.r.transaction(_apply, key, self.ledger.key, value_from_callable=True)

        logger.info("game resolved game_hash=%s winner=%s", gh_hex, state.winner.name if state.winner is not None else None)
        return state

    def claim_timeout(self, game_hash: str | bytes, *, sender: str) -> GameRecord:
        """Reclaim escrow from a game whose counterparty let its block budget run out."""

        with _operation("claim_timeout"):
            gh_hex = self._existing_hash(game_hash)
            caller = normalize_address(sender, what="sender")
            policy = self.settings.timeout_policy
            key = game_key(self.prefix, gh_hex)

            def _apply(pipe: Pipeline) -> GameRecord:
                state = require_game(r=pipe, prefix=self.prefix, game_hash=gh_hex)
                ctx = ValidationContext(game_hash=gh_hex, sender=caller, action="claim_timeout")
                pipeline_for_action("claim_timeout").validate(ctx=ctx, state=state)
                height = self.clock.height()
                credits = plan_timeout_claim(state=state, sender=caller, height=height, policy=policy)
                balances = self.ledger.prepare_credits(pipe, credits)

                fsm = GameFSM(state)
                fsm.expire()
                fsm.sync_phase_to_model()
                state.resolved_block = height

                event = GameExpired(
                    player1=state.player1,
                    player2=state.player2,
                    game_hash=gh_hex,
                    claimant=caller,
                    policy=policy,
                    block=height,
                )

                pipe.multi()
                save_game(r=pipe, prefix=self.prefix, state=state)
                self.ledger.queue_balances(pipe, balances)
                self._queue_event(pipe, event)
                return state

            state = self.r.transaction(_apply, key, self.ledger.key, value_from_callable=True)

        logger.info("game expired game_hash=%s claimant=%s policy=%s", gh_hex, caller, policy.value)
        return state

    # -- escrow ----------------------------------------------------------------

    def withdraw(self, *, sender: str) -> int:
        with _operation("withdraw"):
            caller = normalize_address(sender, what="sender")
            return self.ledger.withdraw(caller, block=self.clock.height())

    # -- read-only projections -------------------------------------------------

    def get_game(self, game_hash: str | bytes) -> GameRecord | None:
        gh = to_bytes32(game_hash)
        if is_zero(gh):
            return None
        return get_game(r=self.r, prefix=self.prefix, game_hash=to_hex32(gh))

    def list_games(self, *, player: str | None = None) -> list[GameRecord]:
        if player is not None:
            player = self._checksum(player)
        return list_games(r=self.r, prefix=self.prefix, player=player)

    def balance_of(self, address: str) -> int:
        return self.ledger.balance_of(self._checksum(address))

    def events(self, type: str | None = None, **indexed: str) -> list[GameEvent]:
        return self.event_log.events(type, **indexed)

    # -- helpers -----------------------------------------------------------------

    def _existing_hash(self, game_hash: str | bytes) -> str:
        gh = to_bytes32(game_hash)
        if is_zero(gh):
            raise NotFound("Game not found")
        return to_hex32(gh)

    @staticmethod
    def _checksum(address: str) -> str:
        if not isinstance(address, str) or not Web3.is_address(address):
            raise InvalidArgument(f"not a valid address: {address!r}")
        return Web3.to_checksum_address(address)

    def _queue_event(self, pipe: Pipeline, event: GameEvent) -> None:
        publish_many(r=pipe, entries=entries_for_event(prefix=self.prefix, event=event))
