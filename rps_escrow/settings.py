from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from rps_escrow.models import TimeoutPolicy


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class EngineSettings:
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "rps"
    # When set, every game must carry both block budgets.
    require_timeouts: bool = False
    timeout_policy: TimeoutPolicy = TimeoutPolicy.refund
    log_level: str = "INFO"


def settings_from_env() -> EngineSettings:
    policy_raw = os.environ.get("RPS_TIMEOUT_POLICY", TimeoutPolicy.refund.value).strip().lower()
    try:
        policy = TimeoutPolicy(policy_raw)
    except ValueError as e:
        allowed = ",".join(p.value for p in TimeoutPolicy)
        raise RuntimeError(f"RPS_TIMEOUT_POLICY must be one of: {allowed}") from e

    return EngineSettings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        key_prefix=os.environ.get("RPS_KEY_PREFIX", "rps"),
        require_timeouts=os.environ.get("RPS_REQUIRE_TIMEOUTS", "").strip().lower() in _TRUTHY,
        timeout_policy=policy,
        log_level=os.environ.get("RPS_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str | int = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
