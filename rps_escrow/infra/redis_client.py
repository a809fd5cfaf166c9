from __future__ import annotations

import redis

from rps_escrow.settings import EngineSettings


def create_redis(settings: EngineSettings) -> redis.Redis:
    """Client for the store at `settings.redis_url`.

    Game records, balances and stream fields are all read back as `str`, so
    responses are always decoded.
    """

    return redis.Redis.from_url(settings.redis_url, decode_responses=True)
