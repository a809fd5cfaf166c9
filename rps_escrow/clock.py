from __future__ import annotations

from typing import Protocol

import redis


class BlockClock(Protocol):
    """Monotonic block height supplied by the ledger the engine runs on."""

    def height(self) -> int: ...


class RedisBlockClock:
    """Block height kept in Redis; `mine` is how tests and local runs advance it."""

    def __init__(self, *, r: redis.Redis, prefix: str) -> None:
        self._r = r
        self.key = f"{prefix}:block_height"

    def height(self) -> int:
        raw = self._r.get(self.key)
        return int(raw) if raw else 0

    def mine(self, blocks: int = 1) -> int:
        if blocks < 1:
            raise ValueError("blocks must be >= 1")
        return int(self._r.incrby(self.key, blocks))
