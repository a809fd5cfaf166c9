from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

import redis
from redis.client import Pipeline

from rps_escrow.core.events import Withdrawal
from rps_escrow.errors import InvalidState
from rps_escrow.streams import entries_for_event, publish_many


logger = logging.getLogger(__name__)


class PayoutSink(Protocol):
    """Moves funds out of escrow to an address (the accounts service)."""

    def send(self, *, to: str, amount: int) -> None: ...


@runtime_checkable
class QueuedPayoutSink(Protocol):
    """A sink whose payout can be queued inside the withdrawing transaction."""

    def queue(self, pipe: Pipeline, *, to: str, amount: int) -> None: ...


class StreamPayoutSink:
    """Outbox: payouts are appended to a stream the accounts service consumes."""

    def __init__(self, *, r: redis.Redis, prefix: str) -> None:
        self._r = r
        self.key = f"{prefix}:payouts"

    def queue(self, pipe: Pipeline, *, to: str, amount: int) -> None:
        publish_many(r=pipe, entries=[(self.key, {"to": to, "amount": str(amount)})])

    def send(self, *, to: str, amount: int) -> None:
        publish_many(r=self._r, entries=[(self.key, {"to": to, "amount": str(amount)})])


class BalanceLedger:
    """Pending-withdrawal balances, credited by game resolution and drained by `withdraw`.

    Amounts are stored as decimal strings in one hash; wei values overflow HINCRBY's
    64-bit range, so updates are read-modify-write inside WATCH/MULTI transactions.
    """

    def __init__(self, *, r: redis.Redis, prefix: str, payouts: PayoutSink) -> None:
        self._r = r
        self._prefix = prefix
        self._payouts = payouts
        self.key = f"{prefix}:balances"

    def balance_of(self, address: str, *, r: redis.Redis | Pipeline | None = None) -> int:
        client = self._r if r is None else r
        raw = client.hget(self.key, address)
        return int(raw) if raw else 0

    def prepare_credits(self, pipe: Pipeline, credits: Mapping[str, int]) -> dict[str, str]:
        """Read current balances (pipe must be watching `key`) and compute the new ones."""

        new: dict[str, int] = {}
        for address, amount in credits.items():
            if amount < 0:
                raise ValueError("credits are never negative")
            if amount == 0:
                continue
            base = new.get(address, self.balance_of(address, r=pipe))
            new[address] = base + amount
        return {a: str(v) for a, v in new.items()}

    def queue_balances(self, pipe: Pipeline, balances: Mapping[str, str]) -> None:
        if balances:
            pipe.hset(self.key, mapping=dict(balances))

    def credit(self, credits: Mapping[str, int]) -> None:
        def _apply(pipe: Pipeline) -> None:
            balances = self.prepare_credits(pipe, credits)
            pipe.multi()
            self.queue_balances(pipe, balances)

        self._r.transaction(_apply, self.key)

    def withdraw(self, sender: str, *, block: int = 0) -> int:
        """Zero the sender's balance and pay it out.

        With a `QueuedPayoutSink` the balance delete, the payout entry and the
        Withdrawal event commit in one MULTI/EXEC. Any other sink is called after
        the delete commits; a reentrant withdraw from inside it observes zero, and
        a failing sink gets the balance restored.
        """

        def _take(pipe: Pipeline) -> int:
            amount = self.balance_of(sender, r=pipe)
            if amount <= 0:
                raise InvalidState("zero balance")
            pipe.multi()
            pipe.hdel(self.key, sender)
            if isinstance(self._payouts, QueuedPayoutSink):
                self._payouts.queue(pipe, to=sender, amount=amount)
                self._queue_withdrawal(pipe, Withdrawal(player=sender, amount=amount, block=block))
            return amount

        amount = self._r.transaction(_take, self.key, value_from_callable=True)

        if not isinstance(self._payouts, QueuedPayoutSink):
            try:
                self._payouts.send(to=sender, amount=amount)
            except Exception:
                logger.exception("payout of %s to %s failed; restoring balance", amount, sender)
                self.credit({sender: amount})
                raise
            self._queue_withdrawal(self._r, Withdrawal(player=sender, amount=amount, block=block))

        logger.info("withdrawal player=%s amount=%s", sender, amount)
        return amount

    def _queue_withdrawal(self, r: redis.Redis | Pipeline, event: Withdrawal) -> None:
        publish_many(r=r, entries=entries_for_event(prefix=self._prefix, event=event))
